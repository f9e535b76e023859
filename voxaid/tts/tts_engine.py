"""
Speech synthesis for VoxAid.

:class:`SpeechSynthesizer` is what the screen reader and the feedback surface
talk to.  Speaking is fire-and-forget and last-write-wins: a new ``speak``
call cancels whatever is being generated or played.

:class:`TTSPlayer` wraps the Chatterbox TTS model and plays through
``sounddevice``.  Set ``TTS_AUDIO_PROMPT_PATH`` to a short WAV file to clone
a voice and ``TTS_DEVICE`` to ``cuda``, ``mps``, ``cpu`` or ``auto``.  If
Chatterbox or its dependencies are not installed the player logs the import
error and stays silent.

Volume scales the samples.  Rate scales the playback sample rate, which
also shifts pitch; Chatterbox has no separate pitch control, so ``pitch`` is
accepted and ignored.
"""
from __future__ import annotations

import os
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..utils.logging_system import setup_log_system

# Importing heavy dependencies lazily to avoid slowing down module import.
try:
    import torch  # type: ignore[import]
    from chatterbox.tts import ChatterboxTTS  # type: ignore[import]
    import sounddevice as sd  # type: ignore[import]
except Exception as _exc:
    # Failure will be handled in TTSPlayer initialisation
    torch = None  # type: ignore[assignment]
    ChatterboxTTS = None  # type: ignore[assignment]
    sd = None  # type: ignore[assignment]
    _import_error: Optional[Exception] = _exc
else:
    _import_error = None

logger = setup_log_system("tts_engine")


class SpeechSynthesizer(ABC):
    """Text-to-speech output as seen by the rest of VoxAid."""

    @abstractmethod
    def speak(
        self,
        text: str,
        *,
        language: Optional[str] = None,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
        voice: Optional[str] = None,
    ) -> None:
        """Start speaking ``text``, cancelling any current utterance."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop speaking immediately."""

    @property
    @abstractmethod
    def is_speaking(self) -> bool: ...


class ConsoleSynthesizer(SpeechSynthesizer):
    """Writes speech to the log instead of the speakers (``--no-tts``)."""

    def speak(self, text, *, language=None, rate=1.0, pitch=1.0, volume=1.0, voice=None) -> None:
        if text:
            logger.info(f"Speaking: {text}")

    def cancel(self) -> None:
        pass

    @property
    def is_speaking(self) -> bool:
        return False


def _pick_device(requested: str) -> str:
    requested = requested.lower()
    if requested != "auto":
        return requested
    if torch and torch.cuda.is_available():
        return "cuda"
    if torch and hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return "mps"
    return "cpu"


class TTSPlayer(SpeechSynthesizer):
    """Chatterbox TTS with cancellable, non-blocking playback."""

    def __init__(self, device: Optional[str] = None, audio_prompt_path: Optional[str] = None) -> None:
        self.model = None
        self.audio_prompt_path: Optional[str] = None
        if _import_error is not None:
            logger.error(f"Chatterbox TTS dependencies are missing: {_import_error}")
        else:
            device = _pick_device(device or os.getenv("TTS_DEVICE", "auto"))
            try:
                self.model = ChatterboxTTS.from_pretrained(device=device)
                logger.info(f"Chatterbox TTS model loaded on {device}.")
            except Exception as e:
                logger.error(f"Failed to load Chatterbox TTS model: {e}", exc_info=True)
            prompt = audio_prompt_path or os.getenv("TTS_AUDIO_PROMPT_PATH")
            if prompt and os.path.isfile(prompt):
                self.audio_prompt_path = prompt
                logger.info(f"Using custom TTS audio prompt: {prompt}")
        # Serialises generation; _state_lock guards the generation counter
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._generation = 0
        self._speaking_until = 0.0

    @property
    def available(self) -> bool:
        return self.model is not None

    @property
    def is_speaking(self) -> bool:
        return time.monotonic() < self._speaking_until

    def speak(self, text, *, language=None, rate=1.0, pitch=1.0, volume=1.0, voice=None) -> None:
        if not text:
            return
        if self.model is None:
            logger.debug("TTS model not available; skipping speech.")
            return
        with self._state_lock:
            self._generation += 1
            generation = self._generation
        self._stop_playback()
        threading.Thread(
            target=self._render,
            args=(generation, text, rate, volume),
            name="TTSThread",
            daemon=True,
        ).start()

    def cancel(self) -> None:
        with self._state_lock:
            self._generation += 1
        self._stop_playback()

    def _stop_playback(self) -> None:
        self._speaking_until = 0.0
        if sd is None:
            return
        try:
            sd.stop()
        except Exception as e:
            logger.error(f"Failed to stop audio playback: {e}", exc_info=True)

    def _superseded(self, generation: int) -> bool:
        with self._state_lock:
            return generation != self._generation

    def _render(self, generation: int, text: str, rate: float, volume: float) -> None:
        with self._lock:
            if self._superseded(generation):
                return
            try:
                # Generate speech; returns a torch tensor with shape [channels, samples]
                wav = self.model.generate(text, audio_prompt_path=self.audio_prompt_path)
                wav_np = wav.cpu().numpy() if hasattr(wav, "cpu") else np.array(wav, dtype=np.float32)
                if wav_np.ndim > 1:
                    wav_np = wav_np[0]
                audio = np.clip(wav_np.astype(np.float32) * float(volume), -1.0, 1.0)
                sample_rate = int(self.model.sr * max(0.1, float(rate)))
                if self._superseded(generation):
                    logger.debug("Speech superseded before playback.")
                    return
                sd.play(audio, sample_rate)
                self._speaking_until = time.monotonic() + len(audio) / sample_rate
            except Exception as e:
                logger.error(f"Error during TTS generation/playback: {e}", exc_info=True)
