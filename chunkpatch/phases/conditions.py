from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..config import DEFAULT_FLAGS, Flags, PrefKey, Preferences, SessionContext, UiSection


@dataclass(frozen=True)
class ConditionContext:
    prefs: Preferences
    flags: Flags = DEFAULT_FLAGS
    session: SessionContext = SessionContext()


ConditionFn = Callable[[ConditionContext], bool]


def _pref_is(key: PrefKey, value: object) -> ConditionFn:
    return lambda ctx: ctx.prefs.get(key) == value


def _pref_enabled(key: PrefKey) -> ConditionFn:
    return lambda ctx: bool(ctx.prefs.get(key))


def _section_hidden(*sections: UiSection) -> ConditionFn:
    return lambda ctx: any(s.value in ctx.prefs.hidden_sections() for s in sections)


def touch_controller_can_hide(ctx: ConditionContext) -> bool:
    return (
        ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER) == "off"
        or bool(ctx.prefs.get(PrefKey.STREAM_TOUCH_CONTROLLER_AUTO_OFF))
        or not ctx.session.touch_capable
    )


CONDITIONS: dict[str, ConditionFn] = {
    "native-mkb-on": _pref_is(PrefKey.NATIVE_MKB_ENABLED, "on"),
    "app-interface": lambda ctx: ctx.session.app_interface,
    "touch-capable": lambda ctx: ctx.session.touch_capable,
    "game-card-wait-time": _pref_enabled(PrefKey.UI_GAME_CARD_SHOW_WAIT_TIME),
    "default-layout": _pref_is(PrefKey.UI_LAYOUT, "default"),
    "local-co-op": _pref_enabled(PrefKey.LOCAL_CO_OP_ENABLED),
    "fortnite-force-console": _pref_enabled(PrefKey.GAME_FORTNITE_FORCE_CONSOLE),
    "hide-friends": _section_hidden(UiSection.FRIENDS),
    "hide-all-games": _section_hidden(UiSection.ALL_GAMES),
    "hide-touch": _section_hidden(UiSection.TOUCH),
    "hide-sigl": _section_hidden(UiSection.NATIVE_MKB, UiSection.MOST_POPULAR),
    "block-tracking": _pref_enabled(PrefKey.BLOCK_TRACKING),
    "remote-play": _pref_enabled(PrefKey.REMOTE_PLAY_ENABLED),
    "xcloud-logging": lambda ctx: ctx.flags.enable_xcloud_logging,
    "volume-control": _pref_enabled(PrefKey.AUDIO_ENABLE_VOLUME_CONTROL),
    "combine-sources": _pref_enabled(PrefKey.STREAM_COMBINE_SOURCES),
    "disable-feedback-dialog": _pref_enabled(PrefKey.STREAM_DISABLE_FEEDBACK_DIALOG),
    "touch-controller-all": _pref_is(PrefKey.STREAM_TOUCH_CONTROLLER, "all"),
    "touch-controller-can-hide": touch_controller_can_hide,
    "touch-opacity-default": _pref_is(PrefKey.STREAM_TOUCH_CONTROLLER_DEFAULT_OPACITY, 100),
}


def split_condition(expr: str) -> tuple[str, bool]:
    """'!name' -> ('name', True)."""
    expr = expr.strip()
    if expr.startswith("!"):
        return expr[1:].strip(), True
    return expr, False


def evaluate(expr: str, ctx: ConditionContext) -> bool:
    name, negated = split_condition(expr)
    fn = CONDITIONS.get(name)
    if fn is None:
        raise ValueError(f"Unknown condition: {name}")
    result = bool(fn(ctx))
    return not result if negated else result
