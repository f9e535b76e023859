"""
Runtime configuration for VoxAid.

Values come from the process environment, after ``.env`` has been loaded
with python-dotenv.  Per-feature user settings (speech, screen reader,
visual, active modules) start from the dataclass defaults below, may be
overridden by the environment, and are finally merged with the user's
preference file by :mod:`voxaid.preferences`.
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv


@dataclass
class SpeechSettings:
    language: str = "en-US"
    continuous_listening: bool = True
    command_prefix: str = ""
    sensitivity: float = 0.7
    restart_delay_ms: int = 500
    interim_results: bool = True


@dataclass
class ScreenReaderSettings:
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Optional[str] = None


@dataclass
class VisualSettings:
    high_contrast: bool = False
    font_scale: float = 1.0


@dataclass
class ModuleSettings:
    # FeatureId values switched on when the session last changed them; voice control is not kept
    active_modules: List[str] = field(default_factory=list)


@dataclass
class AppConfig:
    speech: SpeechSettings = field(default_factory=SpeechSettings)
    screen_reader: ScreenReaderSettings = field(default_factory=ScreenReaderSettings)
    visual: VisualSettings = field(default_factory=VisualSettings)
    modules: ModuleSettings = field(default_factory=ModuleSettings)

    prefs_path: str = os.path.join(os.path.expanduser("~"), ".voxaid", "preferences.json")
    queue_size: int = 64

    stt_model_size: str = "small"
    stt_device: str = "auto"
    stt_compute_type: Optional[str] = None

    llm_model: str = "llama3"
    ollama_url: str = "http://localhost:11434/api/generate"
    llm_timeout: float = 30.0
    message_url: Optional[str] = None

    def areas(self) -> Dict[str, Dict[str, Any]]:
        """Per-area settings as plain dicts, keyed the way the preference file is."""
        return {
            "speech": asdict(self.speech),
            "screenReader": asdict(self.screen_reader),
            "visual": asdict(self.visual),
            "modules": asdict(self.modules),
        }

    def apply_areas(self, areas: Mapping[str, Mapping[str, Any]]) -> None:
        """Overwrite per-area settings with known keys from ``areas``."""
        for area, target in (
            ("speech", self.speech),
            ("screenReader", self.screen_reader),
            ("visual", self.visual),
            ("modules", self.modules),
        ):
            values = areas.get(area) or {}
            known = {f.name for f in fields(target)}
            for key, value in values.items():
                if key in known:
                    setattr(target, key, list(value) if isinstance(value, list) else value)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_config(*, dotenv: bool = True) -> AppConfig:
    """Build an :class:`AppConfig` from the environment."""
    if dotenv:
        load_dotenv()

    config = AppConfig()
    speech = config.speech
    speech.language = os.getenv("VOXAID_LANGUAGE", speech.language)
    speech.command_prefix = os.getenv("VOXAID_COMMAND_PREFIX", speech.command_prefix).strip().lower()
    speech.sensitivity = _env_float("VOXAID_SENSITIVITY", speech.sensitivity)
    speech.continuous_listening = _env_bool("VOXAID_CONTINUOUS", speech.continuous_listening)
    speech.restart_delay_ms = _env_int("VOXAID_RESTART_DELAY_MS", speech.restart_delay_ms)

    config.prefs_path = os.getenv("VOXAID_PREFS_PATH", config.prefs_path)
    config.queue_size = _env_int("VOXAID_QUEUE_SIZE", config.queue_size)

    config.stt_model_size = os.getenv("STT_MODEL_SIZE", config.stt_model_size)
    config.stt_device = os.getenv("STT_DEVICE", config.stt_device)
    config.stt_compute_type = os.getenv("STT_COMPUTE_TYPE") or None

    config.llm_model = os.getenv("LLM_MODEL", config.llm_model)
    config.ollama_url = os.getenv("OLLAMA_URL", config.ollama_url)
    config.llm_timeout = _env_float("LLM_TIMEOUT", config.llm_timeout)
    config.message_url = os.getenv("VOXAID_MESSAGE_URL") or None
    return config
