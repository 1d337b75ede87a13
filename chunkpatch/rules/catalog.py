"""
Rule catalog for the xCloud web player.

Each rule targets a substring of one of the player's webpack chunks.
Anchors are minified output and drift between host releases; when a
rule stops matching, it simply never fires (the signature changes with
the host version, so stale cache entries are dropped as well).
"""

from __future__ import annotations

import json
import re

from ..config import SIGL_GALLERIES, PrefKey
from ..signals import VIBRATION_RECONFIGURE
from ..textutil import index_of, insert_at, last_index_of, preceded_by, replace_with
from . import payloads as P
from .base import Catalog, Rule, RuleContext

DEFERRED_PHASE = "deferred"
ENDING_CHUNKS_RULE = "loading-ending-chunks"

TOUCH_LAYOUT_MANAGER_READY = "bx-touch-layout-manager-ready"


def _swap(text: str, old: str, new: str) -> str | None:
    """Replace the first `old` with `new`; None if absent or already swapped."""
    if old not in text:
        return None
    if old in new and new in text:
        return None
    return text.replace(old, new, 1)


def _insert_before(text: str, anchor: str, code: str) -> str | None:
    return _swap(text, anchor, code + anchor)


def _insert_after(text: str, anchor: str, code: str) -> str | None:
    return _swap(text, anchor, anchor + code)


def _insert_after_all(text: str, anchor: str, code: str) -> str | None:
    if anchor not in text or anchor + code in text:
        return None
    return text.replace(anchor, anchor + code)


def _insert_at_once(text: str, index: int, code: str) -> str | None:
    if index < 0 or preceded_by(text, index, code) or text.startswith(code, index):
        return None
    return insert_at(text, index, code)


# -----------------------------------------------------------------------------
# Tracking
# -----------------------------------------------------------------------------


def disable_ai_track(text: str, ctx: RuleContext) -> str | None:
    """Turn ApplicationInsights.track() into a no-op."""
    anchor = ".track=function("
    index = text.find(anchor)
    if index < 0:
        return None

    if index_of(text, '"AppInsightsCore', index, 200) < 0:
        return None

    replacement = ".track=function(e){},!!function("
    if text.startswith(replacement, index):
        return None
    return replace_with(text, index, anchor, replacement)


def disable_telemetry(text: str, ctx: RuleContext) -> str | None:
    return _swap(text, ".disableTelemetry=function(){return!1}", ".disableTelemetry=function(){return!0}")


def disable_telemetry_provider(text: str, ctx: RuleContext) -> str | None:
    stubs = "=".join([
        "this.trackEvent",
        "this.trackPageView",
        "this.trackHttpCompleted",
        "this.trackHttpFailed",
        "this.trackError",
        "this.trackErrorLike",
        "this.onTrackEvent",
        "()=>{}",
    ])
    return _insert_before(text, "this.enableLightweightTelemetry=!", stubs + ";")


def disable_index_db_logging(text: str, ctx: RuleContext) -> str | None:
    return _insert_before(text, ",this.logsDb=new", ",this.log=()=>{}")


def block_webrtc_stats_collector(text: str, ctx: RuleContext) -> str | None:
    return _swap(text, "this.shouldCollectStats=!0", "this.shouldCollectStats=!1")


# -----------------------------------------------------------------------------
# Site layout & home page
# -----------------------------------------------------------------------------


def website_layout(text: str, ctx: RuleContext) -> str | None:
    layout = "tv" if ctx.prefs.get(PrefKey.UI_LAYOUT) == "tv" else "default"
    return _swap(text, '?"tv":"default"', f'?"{layout}":"{layout}"')


def enable_tv_routes(text: str, ctx: RuleContext) -> str | None:
    """Let the TV-only device code login route render on any browser."""
    index = text.find(".LoginDeviceCode.path,")
    if index < 0:
        return None

    match = re.search(r"render:.*?jsx\)\(([^,]+),", text[index:index + 100])
    if not match:
        return None

    # `return isTV && isSupportedTVBrowser ? children : redirect`
    #   => `return isTV && isSupportedTVBrowser || true ? ...`
    index = text.find(f"const {match.group(1)}=e=>{{")
    if index > -1:
        index = text.find("return ", index)
    if index > -1:
        index = text.find("?", index)
    if index < 0 or preceded_by(text, index, "|| true"):
        return None

    return insert_at(text, index, "|| true")


def ignore_play_with_friends_section(text: str, ctx: RuleContext) -> str | None:
    index = text.find('location:"PlayWithFriendsRow",')
    if index < 0:
        return None

    index = last_index_of(text, "return", index, 50)
    if index < 0 or text.startswith("return null;", index):
        return None

    return replace_with(text, index, "return", "return null;")


def ignore_all_games_section(text: str, ctx: RuleContext) -> str | None:
    index = text.find('className:"AllGamesRow-module__allGamesRowContainer')
    if index < 0:
        return None

    index = index_of(text, "grid:!0,", index, 1500)
    if index < 0:
        return None

    index = last_index_of(text, "(0,", index, 70)
    return _insert_at_once(text, index, "true ? null :")


def ignore_play_with_touch_section(text: str, ctx: RuleContext) -> str | None:
    index = text.find('("Play_With_Touch"),')
    if index < 0:
        return None

    index = last_index_of(text, "const ", index, 30)
    return _insert_at_once(text, index, "return null;")


def ignore_sigl_sections(text: str, ctx: RuleContext) -> str | None:
    index = text.find("SiglRow-module__heroCard___")
    if index < 0:
        return None

    index = last_index_of(text, "const[", index, 300)
    if index < 0:
        return None

    hidden = ctx.prefs.hidden_sections()
    sigl_ids = [gallery for section, gallery in SIGL_GALLERIES.items() if section.value in hidden]
    check = " || ".join(f'siglId === "{sigl_id}"' for sigl_id in sigl_ids) or "false"

    code = f"""
if (e && e.id) {{
    const siglId = e.id;
    if ({check}) {{
        return null;
    }}
}}
"""
    return _insert_at_once(text, index, code)


def patch_set_currently_focused_interactable(text: str, ctx: RuleContext) -> str | None:
    index = text.find(".setCurrentlyFocusedInteractable=(")
    if index < 0:
        return None

    index = text.find("{", index)
    if index < 0:
        return None
    return _insert_at_once(text, index + 1, ctx.payloads.get(P.SET_CURRENTLY_FOCUSED_INTERACTABLE))


def detect_product_details_page(text: str, ctx: RuleContext) -> str | None:
    index = text.find('{location:"ProductDetailPage",')
    if index < 0:
        return None

    index = text.find("return", max(index - 40, 0))
    code = 'BxEvent.dispatch(window, BxEvent.XCLOUD_RENDERING_COMPONENT, {component: "product-details"});'
    return _insert_at_once(text, index, code)


def detect_browser_router_ready(text: str, ctx: RuleContext) -> str | None:
    if "BrowserRouter:()=>" not in text:
        return None

    index = text.find("{history:this.history,")
    if index < 0:
        return None

    index = last_index_of(text, "return", index, 100)
    code = "window.BxEvent.dispatch(window, window.BxEvent.XCLOUD_ROUTER_HISTORY_READY, {history: this.history});"
    return _insert_at_once(text, index, code)


# -----------------------------------------------------------------------------
# Site internals
# -----------------------------------------------------------------------------


def disable_stream_gate(text: str, ctx: RuleContext) -> str | None:
    index = text.find('case"partially-ready":')
    if index < 0:
        return None

    code = "return 0;"
    if index_of(text, "=>{" + code, max(index - 150 - len(code), 0), 150 + len(code)) > -1:
        return None

    index = text.find("=>{", max(index - 150, 0))
    if index < 0:
        return None
    return _insert_at_once(text, index + 3, code)


def override_settings(text: str, ctx: RuleContext) -> str | None:
    """Append feature gate overrides to the site's settings object."""
    index = text.find(",EnableStreamGate:")
    if index < 0:
        return None

    end_index = text.find("},", index)
    if end_index < 0:
        return None

    gates = json.dumps(ctx.flags.merged_feature_gates(), separators=(",", ":"))[1:-1]
    if not gates:
        return None
    return _insert_at_once(text, end_index, "," + gates)


def override_storage_get_settings(text: str, ctx: RuleContext) -> str | None:
    code = """
if (this.baseStorageKey in window.BX_EXPOSED.overrideSettings) {
    const settings = window.BX_EXPOSED.overrideSettings[this.baseStorageKey];
    if (e in settings) {
        return settings[e];
    }
}
"""
    return _insert_after(text, "}getSetting(e){", code)


def patch_request_info_crash(text: str, ctx: RuleContext) -> str | None:
    """Avoid crashing when RequestInfo.origin is empty."""
    return _swap(
        text,
        'if(!e)throw new Error("RequestInfo.origin is falsy");',
        'if (!e) e = "https://www.xbox.com";',
    )


def expose_dialog_routes(text: str, ctx: RuleContext) -> str | None:
    return _swap(
        text,
        "return{goBack:function(){",
        "return window.BX_EXPOSED.dialogRoutes = {goBack:function(){",
    )


def expose_stream_session(text: str, ctx: RuleContext) -> str | None:
    anchor = ",this._connectionType="
    return _swap(text, anchor, ";\n" + ctx.payloads.get(P.EXPOSE_STREAM_SESSION) + "\ntrue" + anchor)


def enable_xcloud_logger(text: str, ctx: RuleContext) -> str | None:
    code = """
const [logTag, logLevel, logMessage] = Array.from(arguments);
const logFunc = [console.debug, console.log, console.warn, console.error][logLevel];
logFunc(logTag, '//', logMessage);
"""
    return _insert_after_all(text, "this.telemetryProvider=e}log(e,t,r){", code)


def enable_console_logging(text: str, ctx: RuleContext) -> str | None:
    return _insert_after_all(text, "static isConsoleLoggingAllowed(){", "return true;")


def loading_ending_chunks(text: str, ctx: RuleContext) -> str | None:
    """Marker: this chunk is only loaded once the host starts streaming."""
    return text if '"FamilySagaManager"' in text else None


# -----------------------------------------------------------------------------
# Remote Play
# -----------------------------------------------------------------------------


def remote_play_direct_connect_url(text: str, ctx: RuleContext) -> str | None:
    """Point the "/direct-connect" link back at "/play"."""
    index = text.find("/direct-connect")
    if index < 9:
        return None
    return text[:index - 9] + "https://www.xbox.com/play" + text[index + 15:]


def remote_play_keep_alive(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(text, "onServerDisconnectMessage(e){", ctx.payloads.get(P.REMOTE_PLAY_KEEP_ALIVE))


def remote_play_connect_mode(text: str, ctx: RuleContext) -> str | None:
    return _swap(text, 'connectMode:"cloud-connect",', ctx.payloads.get(P.REMOTE_PLAY_ENABLE))


def remote_play_disable_achievement_toast(text: str, ctx: RuleContext) -> str | None:
    code = """
if (!!window.BX_REMOTE_PLAY_CONFIG) {
    return;
}
"""
    return _insert_after(text, ".AchievementUnlock:{", code)


def patch_update_input_configuration_async(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(text, "async updateInputConfigurationAsync(e){", "e.enableTouchInput = true;")


def patch_remote_play_mkb(text: str, ctx: RuleContext) -> str | None:
    index = text.find("async homeConsoleConnect")
    if index < 0:
        return None

    brace_index = text.find("{", index)
    if brace_index < 0:
        return None

    match = re.search(r"\(([^)]+)\)", text[index:brace_index])
    if not match:
        return None
    params = match.group(1).split(",")
    if len(params) < 2:
        return None
    configs_var = params[1].strip()

    code = f"""
Object.assign({configs_var}.inputConfiguration, {{
    enableMouseInput: false,
    enableKeyboardInput: false,
    enableAbsoluteMouse: false,
}});
BxLogger.info('patchRemotePlayMkb', {configs_var});
"""
    return _insert_at_once(text, brace_index + 1, code)


# -----------------------------------------------------------------------------
# Stream
# -----------------------------------------------------------------------------


def patch_xcloud_title_info(text: str, ctx: RuleContext) -> str | None:
    index = text.find("async cloudConnect")
    if index < 0:
        return None

    brace_index = text.find("{", index)
    if brace_index < 0:
        return None

    match = re.search(r"\(([^)]+)\)", text[index:brace_index])
    if not match:
        return None
    title_info_var = match.group(1).split(",")[0].strip()

    code = f"""
{title_info_var} = window.BX_EXPOSED.modifyTitleInfo({title_info_var});
BxLogger.info('patchXcloudTitleInfo', {title_info_var});
"""
    return _insert_at_once(text, brace_index + 1, code)


def disable_gamepad_disconnected_screen(text: str, ctx: RuleContext) -> str | None:
    index = text.find('"GamepadDisconnected_Title",')
    if index < 0:
        return None

    const_index = text.find("const", max(index - 30, 0))
    return _insert_at_once(text, const_index, "e.onClose();return null;")


def patch_stream_hud(text: str, ctx: RuleContext) -> str | None:
    code = """
// Expose onShowStreamMenu
window.BX_EXPOSED.showStreamMenu = e.onShowStreamMenu;
// Restore the "..." button
e.guideUI = null;
"""
    # Drop the TAK Edit button when the touch controller is off
    if ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER) == "off":
        code += "e.canShowTakHUD = false;"

    return _insert_before(text, "let{onCollapse", code)


def always_show_stream_hud(text: str, ctx: RuleContext) -> str | None:
    index = text.find(",{onShowStreamMenu:")
    if index < 0:
        return None

    index = text.find("&&(0,", max(index - 100, 0))
    if index < 0 or preceded_by(text, index, ",true"):
        return None

    comma_index = text.find(",", max(index - 10, 0))
    if comma_index < 0 or comma_index > index:
        return None
    return text[:comma_index] + ",true" + text[index:]


def play_vibration(text: str, ctx: RuleContext) -> str | None:
    return _insert_after_all(text, "}playVibration(e){", ctx.payloads.get(P.VIBRATION_ADJUST))


def patch_audio_media_stream(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(
        text,
        ".srcObject=this.audioMediaStream,",
        "window.BX_EXPOSED.setupGainNode(arguments[1], this.audioMediaStream),",
    )


def patch_combined_audio_video_media_stream(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(
        text,
        ".srcObject=this.combinedAudioVideoStream",
        ",window.BX_EXPOSED.setupGainNode(arguments[0], this.combinedAudioVideoStream)",
    )


def stream_combine_sources(text: str, ctx: RuleContext) -> str | None:
    return _swap(
        text,
        "this.useCombinedAudioVideoStream=!!this.deviceInformation.isTizen",
        "this.useCombinedAudioVideoStream=true",
    )


def skip_feedback_dialog(text: str, ctx: RuleContext) -> str | None:
    anchor = "&&this.shouldTransitionToFeedback("
    return _swap(text, anchor, "&& false " + anchor)


# -----------------------------------------------------------------------------
# Input
# -----------------------------------------------------------------------------


def patch_poll_gamepads(text: str, ctx: RuleContext) -> str | None:
    index = text.find("},this.pollGamepads=()=>{")
    if index < 0:
        return None

    next_index = text.find("setTimeout(this.pollGamepads", index)
    if next_index < 0:
        return None

    block = text[index:next_index]

    # Stop collecting gamepad polling stats
    if ctx.prefs.get(PrefKey.BLOCK_TRACKING):
        block = block.replace("this.inputPollingIntervalStats.addValue", "")

    # Map the Share button to controller shortcuts
    setter = "this.gamepadTimestamps.set"
    match = re.search(r"this\.gamepadTimestamps\.set\((\w+)\.index", block)
    if match and ctx.payloads.has(P.CONTROLLER_SHORTCUTS):
        code = ctx.payloads.render(P.CONTROLLER_SHORTCUTS, gamepadVar=match.group(1))
        if code + setter not in block:
            block = block.replace(setter, code + setter, 1)

    return text[:index] + block + text[next_index:]


def patch_gamepad_polling(text: str, ctx: RuleContext) -> str | None:
    index = text.find(".shouldHandleGamepadInput)())return void")
    if index < 0:
        return None

    code = "if (window.BX_EXPOSED.disableGamepadPolling) return;"
    if code in text:
        return None

    index = text.find("{", max(index - 20, 0))
    if index < 0:
        return None
    return _insert_at_once(text, index + 1, code)


def broadcast_polling_mode(text: str, ctx: RuleContext) -> str | None:
    code = """
BxEvent.dispatch(window, BxEvent.XCLOUD_POLLING_MODE_CHANGED, {mode: e});
"""
    return _insert_after(text, ".setPollingMode=e=>{", code)


def enable_native_mkb(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(text, "e.mouseSupported&&e.keyboardSupported&&e.fullscreenSupported;", "return true;")


def patch_mouse_and_keyboard_enabled(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(text, "get mouseAndKeyboardEnabled(){", "return true;")


def expose_input_sink(text: str, ctx: RuleContext) -> str | None:
    return _insert_before(text, "this.controlChannel=null,this.inputChannel=null", "window.BX_EXPOSED.inputSink = this;")


def disable_native_request_pointer_lock(text: str, ctx: RuleContext) -> str | None:
    return _insert_after(text, "async requestPointerLock(){", "return;")


def support_local_co_op(text: str, ctx: RuleContext) -> str | None:
    code = f"true; {ctx.payloads.get(P.LOCAL_CO_OP_ENABLE)}; true,"
    return _insert_after(text, "this.gamepadMappingsToSend=[],", code)


def force_fortnite_console(text: str, ctx: RuleContext) -> str | None:
    code = "window.location.pathname.includes('/launch/fortnite/') && (e = false);"
    return _insert_after(text, "sendTouchInputEnabledMessage(e){", code)


# -----------------------------------------------------------------------------
# Touch
# -----------------------------------------------------------------------------


def expose_touch_layout_manager(text: str, ctx: RuleContext) -> str | None:
    code = f"""
true;
window.BX_EXPOSED["touchLayoutManager"] = this;
window.dispatchEvent(new Event("{TOUCH_LAYOUT_MANAGER_READY}"));
"""
    return _insert_before(text, "this._perScopeLayoutsStream=new", code)


def patch_babylon_renderer_class(text: str, ctx: RuleContext) -> str | None:
    # ()=>{a.current.render(),h.current=window.requestAnimationFrame(l)
    index = text.find(".current.render(),")
    if index < 1:
        return None

    index -= 1
    renderer_var = text[index]

    code = f"""
if (window.BX_EXPOSED.stopTakRendering) {{
    try {{
        document.getElementById('BabylonCanvasContainer-main')?.parentElement.classList.add('bx-offscreen');

        {renderer_var}.current.dispose();
    }} catch (e) {{}}

    window.BX_EXPOSED.stopTakRendering = false;
    return;
}}
"""
    return _insert_at_once(text, index, code)


def disable_tak_renderer(text: str, ctx: RuleContext) -> str | None:
    remote_play_code = ""
    touch_controller = ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER)
    if touch_controller != "off" and ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER_AUTO_OFF):
        remote_play_code = """
const gamepads = window.navigator.getGamepads();
let gamepadFound = false;

for (let gamepad of gamepads) {
    if (gamepad && gamepad.connected) {
        gamepadFound = true;
        break;
    }
}

if (gamepadFound) {
    return;
}
"""

    code = f"""
if (!!window.BX_REMOTE_PLAY_CONFIG) {{
    {remote_play_code}
}} else {{
    const titleInfo = window.BX_EXPOSED.getTitleInfo();
    if (titleInfo && !titleInfo.details.hasTouchSupport && !titleInfo.details.hasFakeTouchSupport) {{
        return;
    }}
}}
"""
    return _insert_before(text, "const{TakRenderer:", code)


def patch_touch_control_default_opacity(text: str, ctx: RuleContext) -> str | None:
    opacity = ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER_DEFAULT_OPACITY) / 100
    return _swap(text, "opacityMultiplier:1", f"opacityMultiplier: {opacity:.1f}")


def patch_show_sensor_controls(text: str, ctx: RuleContext) -> str | None:
    return _swap(
        text,
        "{shouldShowSensorControls:",
        "{shouldShowSensorControls: (window.BX_EXPOSED && window.BX_EXPOSED.shouldShowSensorControls) ||",
    )


RULES: list[Rule] = [
    Rule("disable-ai-track", disable_ai_track, "Disable ApplicationInsights.track()"),
    Rule("disable-telemetry", disable_telemetry, "Make disableTelemetry() return true"),
    Rule("disable-telemetry-provider", disable_telemetry_provider, "Stub out the telemetry provider's trackers"),
    Rule("disable-index-db-logging", disable_index_db_logging, "Disable IndexedDB logging"),
    Rule("website-layout", website_layout, "Force the configured site layout"),
    Rule("remote-play-direct-connect-url", remote_play_direct_connect_url, 'Replace "/direct-connect" with "/play"'),
    Rule("remote-play-keep-alive", remote_play_keep_alive, "Keep Remote Play sessions alive", payload=P.REMOTE_PLAY_KEEP_ALIVE),
    Rule("remote-play-connect-mode", remote_play_connect_mode, "Enable Remote Play connect mode", payload=P.REMOTE_PLAY_ENABLE),
    Rule("remote-play-disable-achievement-toast", remote_play_disable_achievement_toast, "Hide achievement toasts in Remote Play"),
    Rule("block-webrtc-stats-collector", block_webrtc_stats_collector, "Block the WebRTC stats collector"),
    Rule("patch-poll-gamepads", patch_poll_gamepads, "Gamepad polling: drop stats, add controller shortcuts"),
    Rule("enable-xcloud-logger", enable_xcloud_logger, "Forward the site's logger to the console"),
    Rule("enable-console-logging", enable_console_logging, "Allow console logging"),
    Rule(
        "play-vibration",
        play_vibration,
        "Route controller vibration through the vibration adjuster",
        payload=P.VIBRATION_ADJUST,
        publishes=VIBRATION_RECONFIGURE,
    ),
    Rule("override-settings", override_settings, "Append feature gate overrides"),
    Rule("disable-gamepad-disconnected-screen", disable_gamepad_disconnected_screen, "Skip the gamepad disconnected screen"),
    Rule("patch-update-input-configuration-async", patch_update_input_configuration_async, "Enable touch input in Remote Play"),
    Rule(
        ENDING_CHUNKS_RULE,
        loading_ending_chunks,
        "Detect play-time chunks and unlock deferred rules",
        unlocks=DEFERRED_PHASE,
        marker=True,
    ),
    Rule("disable-stream-gate", disable_stream_gate, "Disable StreamGate"),
    Rule("expose-touch-layout-manager", expose_touch_layout_manager, "Expose the touch layout manager"),
    Rule("patch-babylon-renderer-class", patch_babylon_renderer_class, "Allow stopping the touch renderer"),
    Rule("support-local-co-op", support_local_co_op, "Enable local co-op", payload=P.LOCAL_CO_OP_ENABLE),
    Rule("force-fortnite-console", force_fortnite_console, "Force console UI in Fortnite"),
    Rule("disable-tak-renderer", disable_tak_renderer, "Skip touch controls when not needed"),
    Rule("stream-combine-sources", stream_combine_sources, "Combine audio and video streams"),
    Rule("patch-stream-hud", patch_stream_hud, "Expose the stream menu and restore the guide button"),
    Rule("broadcast-polling-mode", broadcast_polling_mode, "Broadcast gamepad polling mode changes"),
    Rule("patch-gamepad-polling", patch_gamepad_polling, "Allow pausing gamepad polling"),
    Rule("patch-xcloud-title-info", patch_xcloud_title_info, "Allow modifying title info before connecting"),
    Rule("patch-remote-play-mkb", patch_remote_play_mkb, "Disable mouse & keyboard in Remote Play"),
    Rule("patch-audio-media-stream", patch_audio_media_stream, "Volume control for the audio stream"),
    Rule(
        "patch-combined-audio-video-media-stream",
        patch_combined_audio_video_media_stream,
        "Volume control for the combined stream",
    ),
    Rule("patch-touch-control-default-opacity", patch_touch_control_default_opacity, "Default touch control opacity"),
    Rule("patch-show-sensor-controls", patch_show_sensor_controls, "Show sensor controls on demand"),
    Rule("expose-stream-session", expose_stream_session, "Expose the stream session", payload=P.EXPOSE_STREAM_SESSION),
    Rule("skip-feedback-dialog", skip_feedback_dialog, "Skip the post-stream feedback dialog"),
    Rule("enable-native-mkb", enable_native_mkb, "Report native mouse & keyboard support"),
    Rule("patch-mouse-and-keyboard-enabled", patch_mouse_and_keyboard_enabled, "Force mouseAndKeyboardEnabled"),
    Rule("expose-input-sink", expose_input_sink, "Expose the input sink"),
    Rule("disable-native-request-pointer-lock", disable_native_request_pointer_lock, "Disable native pointer lock"),
    Rule("patch-request-info-crash", patch_request_info_crash, "Fix crash on empty RequestInfo.origin"),
    Rule("expose-dialog-routes", expose_dialog_routes, "Expose dialog routes"),
    Rule("enable-tv-routes", enable_tv_routes, "Enable TV-only routes"),
    Rule("ignore-play-with-friends-section", ignore_play_with_friends_section, 'Hide "Play With Friends"'),
    Rule("ignore-all-games-section", ignore_all_games_section, 'Hide "All Games"'),
    Rule("ignore-play-with-touch-section", ignore_play_with_touch_section, 'Hide "Play With Touch"'),
    Rule("ignore-sigl-sections", ignore_sigl_sections, "Hide selected gallery rows"),
    Rule("override-storage-get-settings", override_storage_get_settings, "Override Storage.getSetting()"),
    Rule("always-show-stream-hud", always_show_stream_hud, "Always show the stream HUD"),
    Rule(
        "patch-set-currently-focused-interactable",
        patch_set_currently_focused_interactable,
        "Track the focused game card",
        payload=P.SET_CURRENTLY_FOCUSED_INTERACTABLE,
    ),
    Rule("detect-product-details-page", detect_product_details_page, "Signal when the product details page renders"),
    Rule("detect-browser-router-ready", detect_browser_router_ready, "Signal when the router history is ready"),
]


def build_catalog() -> Catalog:
    return Catalog(RULES)
