from __future__ import annotations

from pathlib import Path

import pytest

from chunkpatch.config import (
    FEATURE_GATES,
    Flags,
    PrefKey,
    Preferences,
    SessionContext,
    detect_host_version,
    load_settings,
    settings_from_dict,
)


class TestPreferences:
    def test_defaults(self) -> None:
        prefs = Preferences()
        assert prefs.get(PrefKey.UI_LAYOUT) == "default"
        assert prefs.get("stream.touch_controller.default_opacity") == 100
        assert prefs.hidden_sections() == set()

    def test_default_lists_are_copies(self) -> None:
        prefs = Preferences()
        prefs.get(PrefKey.UI_HIDE_SECTIONS).append("friends")
        assert prefs.get(PrefKey.UI_HIDE_SECTIONS) == []

    def test_overrides_are_validated(self) -> None:
        prefs = Preferences({"ui.layout": "tv", "ui.hide_sections": ["touch"], "block_tracking": True})
        assert prefs.get(PrefKey.UI_LAYOUT) == "tv"
        assert prefs.hidden_sections() == {"touch"}
        assert prefs.to_dict()["block_tracking"] is True

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"no.such.pref": 1}, "Unknown preference"),
            ({"ui.layout": "wide"}, "expected one of"),
            ({"ui.hide_sections": "friends"}, "expected a list"),
            ({"ui.hide_sections": ["sofa"]}, "ui.hide_sections"),
            ({"stream.touch_controller.default_opacity": 5}, "between 10 and 100"),
            ({"stream.touch_controller.default_opacity": True}, "between 10 and 100"),
            ({"block_tracking": "yes"}, "true/false"),
        ],
    )
    def test_invalid_overrides(self, overrides, message) -> None:
        with pytest.raises(ValueError, match=message):
            Preferences(overrides)


class TestFlags:
    def test_feature_gates_merge_over_defaults(self) -> None:
        flags = Flags.from_dict({"feature_gates": {"PwaPrompt": True, "Other": 0}})
        assert flags.merged_feature_gates() == {"PwaPrompt": True, "Other": False}
        assert FEATURE_GATES == {"PwaPrompt": False}

    def test_unknown_flags_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown flags: nope"):
            Flags.from_dict({"nope": True})

    def test_feature_gates_must_be_table(self) -> None:
        with pytest.raises(ValueError, match="must be a table"):
            Flags.from_dict({"feature_gates": ["a"]})


class TestSessionContext:
    def test_play_url_means_in_play(self) -> None:
        assert SessionContext.from_url("https://www.xbox.com/en-US/play/launch/halo/123").in_play
        assert not SessionContext.from_url("https://www.xbox.com/en-US/play").in_play
        assert not SessionContext.from_url(None).in_play

    def test_extra_fields_pass_through(self) -> None:
        session = SessionContext.from_url(None, host_version="2.1", touch_capable=True)
        assert session.host_version == "2.1"
        assert session.touch_capable


def test_detect_host_version() -> None:
    html = '<head><meta name="gamepass-app-version" content="9.8.7"></head>'
    assert detect_host_version(html) == "9.8.7"
    assert detect_host_version("<META NAME='gamepass-app-version' CONTENT='1.0'>") == "1.0"
    assert detect_host_version("<head></head>") is None


class TestLoadSettings:
    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text(
            'host_version = "5.0"\n'
            'payload_dir = "payloads"\n\n'
            "[preferences]\n"
            '"ui.layout" = "tv"\n\n'
            "[flags]\n"
            "enable_xcloud_logging = true\n\n"
            "[session]\n"
            "touch_capable = true\n",
            encoding="utf-8",
        )

        settings = load_settings(path)

        assert settings.session.host_version == "5.0"
        assert settings.session.touch_capable
        assert settings.preferences.get(PrefKey.UI_LAYOUT) == "tv"
        assert settings.flags.enable_xcloud_logging
        assert settings.payload_dir == tmp_path / "payloads"

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(
            "preferences:\n"
            "  block_tracking: true\n"
            "  ui.hide_sections: [friends, all-games]\n"
            "flags:\n"
            "  feature_gates:\n"
            "    Extra: true\n",
            encoding="utf-8",
        )

        settings = load_settings(path)

        assert settings.preferences.get(PrefKey.BLOCK_TRACKING)
        assert settings.preferences.hidden_sections() == {"friends", "all-games"}
        assert settings.flags.merged_feature_gates()["Extra"] is True
        assert settings.payload_dir is None

    def test_empty_yaml_is_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yml"
        path.write_text("", encoding="utf-8")
        assert load_settings(path).session.host_version is None

    def test_bad_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text("[preferences\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_settings(path)

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.ini"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported settings format"):
            load_settings(path)

    def test_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="Unknown settings keys: extra"):
            settings_from_dict({"extra": 1})
        with pytest.raises(ValueError, match="Unknown session keys: url"):
            settings_from_dict({"session": {"url": "x"}})
