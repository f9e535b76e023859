"""Tests for preference storage and configuration loading."""

import json

from voxaid.config import AppConfig, load_config
from voxaid.preferences import PreferenceStore, merge_preferences


DEFAULTS = {"speech": {"language": "en-US", "sensitivity": 0.7}, "visual": {"font_scale": 1.0}}


class TestMerge:
    def test_shallow_merge_per_area(self):
        merged = merge_preferences(DEFAULTS, {"speech": {"sensitivity": 0.9}})
        assert merged["speech"] == {"language": "en-US", "sensitivity": 0.9}
        assert merged["visual"] == {"font_scale": 1.0}

    def test_malformed_area_ignored(self):
        merged = merge_preferences(DEFAULTS, {"visual": "big"})
        assert merged["visual"] == {"font_scale": 1.0}

    def test_defaults_not_mutated(self):
        merge_preferences(DEFAULTS, {"speech": {"language": "de-DE"}})
        assert DEFAULTS["speech"]["language"] == "en-US"


class TestPreferenceStore:
    def test_missing_file_gives_defaults(self, tmp_path):
        store = PreferenceStore(str(tmp_path / "none.json"), DEFAULTS)
        assert store.load() == DEFAULTS

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "prefs.json"
        store = PreferenceStore(str(path), DEFAULTS)
        store.save("visual", {"font_scale": 1.5})
        store.save("speech", {"language": "fr-FR"})
        loaded = store.load()
        assert loaded["visual"]["font_scale"] == 1.5
        assert loaded["speech"] == {"language": "fr-FR", "sensitivity": 0.7}

    def test_corrupt_file_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        assert PreferenceStore(str(path), DEFAULTS).load() == DEFAULTS

    def test_non_object_file_gives_defaults(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps([1, 2]), encoding="utf-8")
        assert PreferenceStore(str(path), DEFAULTS).load() == DEFAULTS


class TestConfig:
    def test_areas_round_trip_into_settings(self):
        config = AppConfig()
        config.apply_areas({"screenReader": {"rate": 1.4, "unknown": 1}, "visual": {"high_contrast": True}})
        assert config.screen_reader.rate == 1.4
        assert config.visual.high_contrast is True
        assert "unknown" not in config.areas()["screenReader"]

    def test_active_modules_are_copied(self):
        stored = {"modules": {"active_modules": ["motor", "highContrast"]}}
        config = AppConfig()
        config.apply_areas(stored)
        assert config.modules.active_modules == ["motor", "highContrast"]
        config.modules.active_modules.append("visual")
        assert stored["modules"]["active_modules"] == ["motor", "highContrast"]

    def test_load_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("VOXAID_COMMAND_PREFIX", "  Computer ")
        monkeypatch.setenv("VOXAID_SENSITIVITY", "0.4")
        monkeypatch.setenv("VOXAID_CONTINUOUS", "off")
        monkeypatch.setenv("VOXAID_RESTART_DELAY_MS", "not a number")
        monkeypatch.setenv("LLM_MODEL", "mistral")
        config = load_config(dotenv=False)
        assert config.speech.command_prefix == "computer"
        assert config.speech.sensitivity == 0.4
        assert config.speech.continuous_listening is False
        assert config.speech.restart_delay_ms == 500
        assert config.llm_model == "mistral"
