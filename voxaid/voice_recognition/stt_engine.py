"""
Speech‑to‑text backend using Faster Whisper and WebRTC VAD.

A session records from the microphone until a period of silence is detected,
transcribes the audio with Faster Whisper and reports the result.  In
continuous mode the session keeps going utterance after utterance; it ends
when the user stays silent for ``no_speech_timeout`` seconds, when the
microphone fails, or when :meth:`WhisperSpeechBackend.stop` is called.

Each transcribed segment is reported as an interim result.  The final
result's confidence is ``exp(mean(avg_logprob))`` over its segments.

If ``sounddevice``, ``webrtcvad`` or ``faster_whisper`` cannot be imported
the backend reports itself unavailable when started.
"""
from __future__ import annotations

import math
import threading
import time
import warnings
from dataclasses import dataclass
from collections.abc import Iterable
from typing import List, Optional, Sequence

import numpy as np

from ..errors import CapabilityUnavailableError, RecognitionErrorKind
from ..utils.logging_system import setup_log_system
from .recognizer import SpeechToTextBackend, Utterance

try:
    import sounddevice as sd  # type: ignore[import]
    import webrtcvad  # type: ignore[import]
    from faster_whisper import WhisperModel  # type: ignore[import]
except Exception as _exc:
    sd = None  # type: ignore[assignment]
    webrtcvad = None  # type: ignore[assignment]
    WhisperModel = None  # type: ignore[assignment]
    _import_error: Optional[Exception] = _exc
else:
    _import_error = None

logger = setup_log_system("stt_engine")

_PERMISSION_HINTS = ("permission", "denied", "not allowed", "not authorized")


@dataclass
class STTConfig:
    sample_rate: int = 16_000
    channels: int = 1
    frame_ms: int = 30  # VAD supports 10, 20, or 30 ms
    vad_aggressiveness: int = 2  # 0..3
    max_record_seconds: int = 20
    min_silence_time: float = 1.2  # seconds of continuous silence to stop
    pre_speech_padding_ms: int = 300  # keep a bit before first detected speech
    no_speech_timeout: float = 8.0  # end the session if nobody speaks
    beam_size: int = 5


def language_code(tag: str) -> Optional[str]:
    """``en-US`` -> ``en``; Whisper wants bare ISO 639-1 codes."""
    return tag.split("-")[0].lower() if tag else None


def confidence_from_logprobs(logprobs: Sequence[float]) -> float:
    if not logprobs:
        return 0.0
    return min(1.0, max(0.0, math.exp(sum(logprobs) / len(logprobs))))


def classify_audio_error(error: Exception) -> RecognitionErrorKind:
    message = str(error).lower()
    if any(hint in message for hint in _PERMISSION_HINTS):
        return RecognitionErrorKind.PERMISSION_DENIED
    return RecognitionErrorKind.AUDIO_CAPTURE


class WhisperSpeechBackend(SpeechToTextBackend):
    """
    Microphone capture with WebRTC VAD end‑of‑speech detection, transcribed
    by Faster Whisper.  The model is loaded on the first ``start``.
    """

    def __init__(
        self,
        model_size: str = "small",
        device: str = "auto",  # 'auto' | 'cpu' | 'cuda'
        compute_type: str | None = None,  # None => smart fallback
        cfg: STTConfig | None = None,
    ) -> None:
        super().__init__()
        # Suppress noisy warnings from dependencies
        warnings.filterwarnings("ignore", category=UserWarning)
        self.cfg = cfg or STTConfig()
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.model = None
        self._frame_samples = int(self.cfg.sample_rate * self.cfg.frame_ms / 1000)
        self._pre_pad_frames = max(1, int(self.cfg.pre_speech_padding_ms / self.cfg.frame_ms))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------- Model -------------------
    def _load_model(self) -> None:
        # Smart compute_type fallback to avoid CPU float16 errors when 'auto' picks CPU
        if self.compute_type is not None:
            preferred: Iterable[str] = (self.compute_type,)
        elif self.device == "cpu":
            preferred = ("int8", "int16", "float32")
        else:
            preferred = ("float16", "int8", "int16", "float32")

        last_err: Exception | None = None
        for ct in preferred:
            try:
                self.model = WhisperModel(self.model_size, device=self.device, compute_type=ct)
                logger.info(f"Loaded Whisper model='{self.model_size}' (device={self.device}, compute_type={ct}).")
                return
            except Exception as e:  # try next compute type
                last_err = e
                logger.warning(f"Failed loading compute_type={ct}, trying next… ({e})")
        logger.error("Could not initialize Whisper model with any compute_type.")
        raise CapabilityUnavailableError(f"Whisper model initialization failed: {last_err}")

    # ------------------- Session -------------------
    def start(self) -> None:
        if _import_error is not None:
            raise CapabilityUnavailableError(f"audio dependencies are missing: {_import_error}")
        if self._thread is not None and self._thread.is_alive():
            logger.debug("Recognition session already running.")
            return
        if self.model is None:
            self._load_model()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="STTThread", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                audio = self.record_until_silence()
                if self._stop_event.is_set():
                    break
                if audio.size == 0:
                    self.emit_error(RecognitionErrorKind.NO_SPEECH, "no speech detected")
                    break
                self._transcribe_and_emit(audio)
                if not self.continuous:
                    break
        except sd.PortAudioError as e:
            logger.error(f"Microphone error: {e}", exc_info=True)
            self.emit_error(classify_audio_error(e), str(e))
        except Exception as e:
            logger.error(f"Speech recognition session failed: {e}", exc_info=True)
            self.emit_error(RecognitionErrorKind.OTHER, str(e))
        finally:
            self.emit_end()

    # ------------------- Recording -------------------
    def _vad_is_speech(self, frame_int16: np.ndarray, vad: "webrtcvad.Vad") -> bool:
        """Return True if the frame contains speech. Expects 1‑D int16 mono samples of length ``_frame_samples``."""
        return vad.is_speech(frame_int16.tobytes(), self.cfg.sample_rate)

    def record_until_silence(self) -> np.ndarray:
        """
        Record from the default microphone until VAD registers ``min_silence_time``
        after any speech, the session is stopped, or nobody speaks within
        ``no_speech_timeout``.

        Returns a 1‑D int16 numpy array (mono, ``cfg.sample_rate``); empty if
        no speech was heard.
        """
        vad = webrtcvad.Vad(self.cfg.vad_aggressiveness)

        # Ring buffer to keep some audio before first speech (for non‑clipped start)
        pad_buffer: List[np.ndarray] = []
        audio_frames: List[np.ndarray] = []
        have_detected_speech = False
        silence_started_at: float | None = None
        start_time = time.time()

        def on_audio(indata, frames, time_info, status) -> None:
            nonlocal have_detected_speech, silence_started_at
            if status:
                logger.warning(f"Recording input status flag: {status}")

            mono = indata[:, 0].copy()  # channels=1 in our stream config

            if not have_detected_speech:
                pad_buffer.append(mono)
                if len(pad_buffer) > self._pre_pad_frames:
                    pad_buffer.pop(0)

            if self._vad_is_speech(mono, vad):
                if not have_detected_speech:
                    audio_frames.extend(pad_buffer)
                    pad_buffer.clear()
                have_detected_speech = True
                silence_started_at = None
                audio_frames.append(mono)
            elif have_detected_speech:
                audio_frames.append(mono)
                if silence_started_at is None:
                    silence_started_at = time.time()

        with sd.InputStream(
            samplerate=self.cfg.sample_rate,
            channels=self.cfg.channels,
            dtype="int16",
            blocksize=self._frame_samples,
            callback=on_audio,
        ):
            logger.debug("Voice recording started (waiting for silence or timeout)…")
            while not self._stop_event.is_set():
                now = time.time()
                if now - start_time > self.cfg.max_record_seconds:
                    logger.info("Maximum recording duration reached, stopping.")
                    break
                if not have_detected_speech and now - start_time > self.cfg.no_speech_timeout:
                    break
                if have_detected_speech and silence_started_at is not None:
                    if now - silence_started_at >= self.cfg.min_silence_time:
                        logger.debug("Silence detected, stopping recording.")
                        break
                time.sleep(0.02)

        if not have_detected_speech or not audio_frames:
            return np.array([], dtype=np.int16)
        audio = np.concatenate(audio_frames, axis=0).astype(np.int16)
        logger.debug(f"Captured {len(audio)} samples (~{len(audio)/self.cfg.sample_rate:.2f}s).")
        return audio

    # ------------------- Transcription -------------------
    def _transcribe_and_emit(self, audio_int16: np.ndarray) -> None:
        audio_f32 = (audio_int16.astype(np.float32) / 32768.0).clip(-1.0, 1.0)
        segments, _info = self.model.transcribe(
            audio_f32,
            beam_size=self.cfg.beam_size,
            language=language_code(self.language),
        )
        texts: List[str] = []
        logprobs: List[float] = []
        for seg in segments:
            texts.append(seg.text.strip())
            logprobs.append(seg.avg_logprob)
            if self.interim_results:
                self.emit_result(Utterance(" ".join(texts).strip(), confidence_from_logprobs(logprobs), False))
        text = " ".join(texts).strip()
        logger.debug(f"Transcription result: '{text}'")
        if text:
            self.emit_result(Utterance(text, confidence_from_logprobs(logprobs), True))
