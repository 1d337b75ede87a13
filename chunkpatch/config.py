"""
Read-only configuration surface consulted by the patch engine.

Provides:
- PrefKey / Preferences: user preferences with defaults
- Flags: developer flags (logging, feature gate overrides)
- SessionContext: facts about the host session (version, play context)
- Settings: everything above, loadable from a TOML or YAML file

Values are read once when the engine is built; later edits to the
settings file do not affect a running session.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class PrefKey(str, Enum):
    """Preference keys known to the phase layout and catalog."""

    NATIVE_MKB_ENABLED = "native_mkb.enabled"
    UI_GAME_CARD_SHOW_WAIT_TIME = "ui.game_card.show_wait_time"
    UI_LAYOUT = "ui.layout"
    LOCAL_CO_OP_ENABLED = "local_co_op.enabled"
    GAME_FORTNITE_FORCE_CONSOLE = "game.fortnite.force_console"
    UI_HIDE_SECTIONS = "ui.hide_sections"
    BLOCK_TRACKING = "block_tracking"
    REMOTE_PLAY_ENABLED = "remote_play.enabled"
    AUDIO_ENABLE_VOLUME_CONTROL = "audio.volume_control.enabled"
    STREAM_COMBINE_SOURCES = "stream.combine_sources"
    STREAM_DISABLE_FEEDBACK_DIALOG = "stream.disable_feedback_dialog"
    STREAM_TOUCH_CONTROLLER = "stream.touch_controller"
    STREAM_TOUCH_CONTROLLER_AUTO_OFF = "stream.touch_controller.auto_off"
    STREAM_TOUCH_CONTROLLER_DEFAULT_OPACITY = "stream.touch_controller.default_opacity"


class UiSection(str, Enum):
    """Home page sections that can be hidden."""

    FRIENDS = "friends"
    ALL_GAMES = "all-games"
    TOUCH = "touch"
    NATIVE_MKB = "native-mkb"
    MOST_POPULAR = "most-popular"


# Gallery ids of the "SIGL" rows that correspond to hideable sections.
SIGL_GALLERIES: dict[UiSection, str] = {
    UiSection.NATIVE_MKB: "8fa264dd-124f-4af3-97e8-596fcdf4b486",
    UiSection.MOST_POPULAR: "e7590b22-e299-44db-ae22-25c61405454c",
}


PREF_DEFAULTS: dict[PrefKey, Any] = {
    PrefKey.NATIVE_MKB_ENABLED: "default",
    PrefKey.UI_GAME_CARD_SHOW_WAIT_TIME: False,
    PrefKey.UI_LAYOUT: "default",
    PrefKey.LOCAL_CO_OP_ENABLED: False,
    PrefKey.GAME_FORTNITE_FORCE_CONSOLE: False,
    PrefKey.UI_HIDE_SECTIONS: [],
    PrefKey.BLOCK_TRACKING: False,
    PrefKey.REMOTE_PLAY_ENABLED: False,
    PrefKey.AUDIO_ENABLE_VOLUME_CONTROL: False,
    PrefKey.STREAM_COMBINE_SOURCES: False,
    PrefKey.STREAM_DISABLE_FEEDBACK_DIALOG: False,
    PrefKey.STREAM_TOUCH_CONTROLLER: "all",
    PrefKey.STREAM_TOUCH_CONTROLLER_AUTO_OFF: False,
    PrefKey.STREAM_TOUCH_CONTROLLER_DEFAULT_OPACITY: 100,
}

_PREF_CHOICES: dict[PrefKey, tuple[str, ...]] = {
    PrefKey.NATIVE_MKB_ENABLED: ("default", "on", "off"),
    PrefKey.UI_LAYOUT: ("default", "normal", "tv"),
    PrefKey.STREAM_TOUCH_CONTROLLER: ("default", "all", "off"),
}

# Injected by the override-settings rule; Flags.feature_gates is merged over it.
FEATURE_GATES: dict[str, bool] = {
    "PwaPrompt": False,
}


def _coerce_pref(key: PrefKey, value: Any) -> Any:
    default = PREF_DEFAULTS[key]

    if key in _PREF_CHOICES:
        value = str(value)
        if value not in _PREF_CHOICES[key]:
            raise ValueError(f"{key.value}: expected one of {', '.join(_PREF_CHOICES[key])}, got {value!r}")
        return value

    if key == PrefKey.UI_HIDE_SECTIONS:
        if not isinstance(value, list):
            raise ValueError(f"{key.value}: expected a list")
        try:
            return [UiSection(str(v)).value for v in value]
        except ValueError as e:
            raise ValueError(f"{key.value}: {e}") from e

    if key == PrefKey.STREAM_TOUCH_CONTROLLER_DEFAULT_OPACITY:
        if isinstance(value, bool) or not isinstance(value, int) or not 10 <= value <= 100:
            raise ValueError(f"{key.value}: expected an integer between 10 and 100")
        return value

    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{key.value}: expected true/false")
        return value

    return value


class Preferences:
    """Opaque key -> value provider with defaults for every key."""

    def __init__(self, overrides: Mapping[str | PrefKey, Any] | None = None):
        self._values: dict[PrefKey, Any] = {}
        for raw_key, value in (overrides or {}).items():
            try:
                key = PrefKey(raw_key)
            except ValueError:
                raise ValueError(f"Unknown preference: {raw_key}") from None
            self._values[key] = _coerce_pref(key, value)

    def get(self, key: PrefKey | str) -> Any:
        key = PrefKey(key)
        if key in self._values:
            return self._values[key]
        default = PREF_DEFAULTS[key]
        return list(default) if isinstance(default, list) else default

    def hidden_sections(self) -> set[str]:
        return set(self.get(PrefKey.UI_HIDE_SECTIONS))

    def to_dict(self) -> dict[str, Any]:
        return {key.value: self.get(key) for key in PrefKey}


@dataclass(frozen=True)
class Flags:
    """Developer flags; not exposed as user preferences."""

    enable_xcloud_logging: bool = False
    feature_gates: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Flags":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown flags: {', '.join(unknown)}")

        gates = data.get("feature_gates") or {}
        if not isinstance(gates, dict):
            raise ValueError("flags.feature_gates must be a table")

        return replace(
            DEFAULT_FLAGS,
            enable_xcloud_logging=bool(data.get("enable_xcloud_logging", DEFAULT_FLAGS.enable_xcloud_logging)),
            feature_gates={str(k): bool(v) for k, v in gates.items()},
        )

    def merged_feature_gates(self) -> dict[str, bool]:
        return {**FEATURE_GATES, **self.feature_gates}


DEFAULT_FLAGS = Flags()


@dataclass(frozen=True)
class SessionContext:
    """Facts about the host session the engine is patching."""

    host_version: str | None = None
    in_play: bool = False
    touch_capable: bool = False
    app_interface: bool = False

    @classmethod
    def from_url(cls, url: str | None, **kwargs: Any) -> "SessionContext":
        """Build a session; a URL under /play/ means play already started."""
        in_play = bool(url) and "/play/" in urlparse(url).path
        return cls(in_play=in_play, **kwargs)


_META_VERSION_RE = re.compile(
    r"""<meta\s+name=["']?gamepass-app-version["']?\s+content=["']([^"']+)["']""",
    re.IGNORECASE,
)


def detect_host_version(html: str) -> str | None:
    """Read the host version from the page's gamepass-app-version meta tag."""
    match = _META_VERSION_RE.search(html)
    return match.group(1) if match else None


@dataclass(frozen=True)
class Settings:
    preferences: Preferences = field(default_factory=Preferences)
    flags: Flags = DEFAULT_FLAGS
    session: SessionContext = field(default_factory=SessionContext)
    payload_dir: Path | None = None


_TOP_LEVEL_KEYS = {"preferences", "flags", "session", "host_version", "payload_dir"}


def settings_from_dict(data: Mapping[str, Any], base_dir: Path | None = None) -> Settings:
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")

    prefs_raw = data.get("preferences") or {}
    if not isinstance(prefs_raw, dict):
        raise ValueError("preferences must be a table")

    session_raw = data.get("session") or {}
    if not isinstance(session_raw, dict):
        raise ValueError("session must be a table")
    session_known = {"touch_capable", "app_interface", "in_play"}
    unknown = sorted(set(session_raw) - session_known)
    if unknown:
        raise ValueError(f"Unknown session keys: {', '.join(unknown)}")

    host_version = data.get("host_version")
    session = SessionContext(
        host_version=str(host_version) if host_version is not None else None,
        in_play=bool(session_raw.get("in_play", False)),
        touch_capable=bool(session_raw.get("touch_capable", False)),
        app_interface=bool(session_raw.get("app_interface", False)),
    )

    payload_dir = data.get("payload_dir")
    payload_path: Path | None = None
    if payload_dir:
        payload_path = Path(str(payload_dir)).expanduser()
        if base_dir is not None and not payload_path.is_absolute():
            payload_path = base_dir / payload_path

    return Settings(
        preferences=Preferences(prefs_raw),
        flags=Flags.from_dict(data.get("flags")),
        session=session,
        payload_dir=payload_path,
    )


def load_settings(path: Path) -> Settings:
    """
    Load settings from a TOML or YAML file.

    Relative payload_dir values resolve against the settings file's directory.
    """
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()

    if suffix in (".yml", ".yaml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported settings format: {path.suffix or '(none)'}")

    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    return settings_from_dict(data, base_dir=path.parent)
