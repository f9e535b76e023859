"""Voice recognition for VoxAid.

``Recognizer`` owns the listening lifecycle (interim feedback, confidence
gate, auto-restart, permission errors).  ``WhisperSpeechBackend`` is the
microphone backend built on Faster Whisper and WebRTC VAD.
"""

from .recognizer import Recognizer, SpeechToTextBackend, Utterance  # noqa: F401
from .stt_engine import STTConfig, WhisperSpeechBackend  # noqa: F401

__all__ = ["Recognizer", "STTConfig", "SpeechToTextBackend", "Utterance", "WhisperSpeechBackend"]
