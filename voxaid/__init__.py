"""
VoxAid assistant package.

VoxAid turns spoken phrases into actions on a web page: scrolling, clicking,
filling forms, switching accessibility features and reading content aloud.
It includes voice recognition, the command grammar and registry, the
screen reader, LLM-backed interpretation and summaries, text‑to‑speech and
a small HTTP control API.
"""

from .assistant_session import AssistantSession, DispatchOutcome, DispatchStatus  # noqa: F401
from .commands import CommandGrammar, CommandRegistry  # noqa: F401
from .config import AppConfig, load_config  # noqa: F401
from .features import FeatureId, FeatureStateMachine  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "AssistantSession",
    "CommandGrammar",
    "CommandRegistry",
    "DispatchOutcome",
    "DispatchStatus",
    "FeatureId",
    "FeatureStateMachine",
    "load_config",
]
