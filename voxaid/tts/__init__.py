"""Text‑to‑speech (TTS) support for VoxAid.

This package exposes the :class:`~voxaid.tts.tts_engine.SpeechSynthesizer`
interface, the Chatterbox-backed :class:`~voxaid.tts.tts_engine.TTSPlayer`
and a log-only :class:`~voxaid.tts.tts_engine.ConsoleSynthesizer`.
"""

from .tts_engine import ConsoleSynthesizer, SpeechSynthesizer, TTSPlayer  # noqa: F401

__all__ = ["ConsoleSynthesizer", "SpeechSynthesizer", "TTSPlayer"]
