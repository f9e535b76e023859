"""
Exception types and error classifications used across VoxAid.

Action failures raise :class:`CommandError` subclasses; the session turns
them into feedback messages so a failed command never ends the session.
Recognition errors are reported as :class:`RecognitionErrorKind` values
rather than exceptions because they arrive asynchronously from the backend.
"""
from __future__ import annotations

from enum import Enum


class VoxAidError(Exception):
    """Base class for all VoxAid errors."""


class CapabilityUnavailableError(VoxAidError):
    """The host offers no speech-to-text (or speech synthesis) capability."""


class CommandError(VoxAidError):
    """A command action could not be carried out."""


class UnknownCommandError(CommandError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name


class TargetNotFoundError(CommandError):
    """The target resolver found no element for a spoken phrase."""

    def __init__(self, kind: str, phrase: str) -> None:
        super().__init__(f"No {kind} found matching: {phrase}")
        self.kind = kind
        self.phrase = phrase


class RecognitionErrorKind(str, Enum):
    PERMISSION_DENIED = "not-allowed"
    NO_SPEECH = "no-speech"
    AUDIO_CAPTURE = "audio-capture"
    NETWORK = "network"
    OTHER = "other"

    @property
    def is_permanent(self) -> bool:
        return self is RecognitionErrorKind.PERMISSION_DENIED
