"""
Recognition front-end.

:class:`SpeechToTextBackend` is the host's speech-to-text capability: it runs
a recognition session and reports results, session end and errors through
callbacks bound with :meth:`SpeechToTextBackend.bind`.

:class:`Recognizer` sits on top of a backend and owns the listening
lifecycle:

- interim results only produce interim feedback;
- final results below the sensitivity threshold are dropped with a "Low
  confidence" message, the rest go to the utterance sink;
- when a session ends while continuous listening is wanted, exactly one
  restart is scheduled after ``restart_delay_ms``; ``stop`` cancels it;
- permission-denied errors turn continuous listening off for the session;
- a missing backend is reported once and never retried.
- when capture stops for good without a ``stop`` call (permission denied,
  a failed restart, a session ending with continuous listening off), the
  ``on_gave_up`` callback lets the owner mark voice control inactive.

The recognizer itself is single-threaded: the session feeds it backend
callbacks and timer expiry from its event queue.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol

from ..config import SpeechSettings
from ..errors import CapabilityUnavailableError, RecognitionErrorKind
from ..feedback import Feedback
from ..utils.logging_system import setup_log_system

logger = setup_log_system("recognizer")


@dataclass(frozen=True)
class Utterance:
    text: str
    confidence: float = 1.0
    is_final: bool = True


ResultCallback = Callable[[Utterance], None]
EndCallback = Callable[[], None]
ErrorCallback = Callable[[RecognitionErrorKind, str], None]
UtteranceSink = Callable[[Utterance], None]
GaveUpCallback = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def thread_timer_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    """Run ``callback`` on a daemon ``threading.Timer`` after ``delay`` seconds."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class SpeechToTextBackend(ABC):
    """A continuous speech-to-text session offered by the host."""

    def __init__(self) -> None:
        self.language = "en-US"
        self.continuous = True
        self.interim_results = True
        self._on_result: Optional[ResultCallback] = None
        self._on_end: Optional[EndCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    def configure(self, settings: SpeechSettings) -> None:
        self.language = settings.language
        self.continuous = settings.continuous_listening
        self.interim_results = settings.interim_results

    def bind(self, on_result: ResultCallback, on_end: EndCallback, on_error: ErrorCallback) -> None:
        self._on_result, self._on_end, self._on_error = on_result, on_end, on_error

    def unbind(self) -> None:
        self._on_result = self._on_end = self._on_error = None

    @abstractmethod
    def start(self) -> None:
        """Begin a session.  Raises :class:`CapabilityUnavailableError` if the host cannot."""

    @abstractmethod
    def stop(self) -> None:
        """End the current session; ``on_end`` follows."""

    # Helpers for subclasses
    def emit_result(self, utterance: Utterance) -> None:
        if self._on_result is not None:
            self._on_result(utterance)

    def emit_end(self) -> None:
        if self._on_end is not None:
            self._on_end()

    def emit_error(self, kind: RecognitionErrorKind, message: str = "") -> None:
        if self._on_error is not None:
            self._on_error(kind, message)


class Recognizer:
    """Listening lifecycle on top of a :class:`SpeechToTextBackend`."""

    def __init__(
        self,
        backend: Optional[SpeechToTextBackend],
        settings: SpeechSettings,
        feedback: Feedback,
        on_utterance: UtteranceSink,
        scheduler: Scheduler = thread_timer_scheduler,
        on_gave_up: Optional[GaveUpCallback] = None,
    ) -> None:
        self.backend = backend
        # Own copy: permission errors switch continuous listening off for this session only
        self.settings = replace(settings)
        self.feedback = feedback
        self.on_utterance = on_utterance
        self.scheduler = scheduler
        self.on_gave_up = on_gave_up

        self._capturing = False
        self._wanted = False
        self._unavailable_reported = False
        self._restart_handle: Optional[Cancellable] = None
        self._restart_token = 0

        if backend is not None:
            backend.configure(self.settings)

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @property
    def is_available(self) -> bool:
        return self.backend is not None

    @property
    def restart_pending(self) -> bool:
        return self._restart_handle is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Begin capture.  Returns True if capture is running afterwards."""
        if self._capturing:
            return True
        if self.backend is None:
            self._report_unavailable("no speech-to-text backend configured")
            return False
        self._cancel_restart()
        self._wanted = True
        try:
            self.backend.start()
        except CapabilityUnavailableError as e:
            self._wanted = False
            self.backend = None
            self._report_unavailable(str(e))
            return False
        except Exception as e:
            self._wanted = False
            logger.error(f"Failed to start speech recognition: {e}", exc_info=True)
            self.feedback.error(f"Could not start voice control: {e}")
            return False
        self._capturing = True
        self.feedback.show("Listening...")
        return True

    def stop(self) -> None:
        """End capture and cancel any pending restart."""
        self._wanted = False
        self._cancel_restart()
        if not self._capturing:
            return
        self._capturing = False
        try:
            self.backend.stop()
        except Exception as e:
            logger.error(f"Failed to stop speech recognition: {e}", exc_info=True)
        self.feedback.show("Voice control paused")

    def cleanup(self) -> None:
        self.stop()
        if self.backend is not None:
            self.backend.unbind()

    def _report_unavailable(self, reason: str) -> None:
        if self._unavailable_reported:
            logger.debug(f"Speech recognition still unavailable: {reason}")
            return
        self._unavailable_reported = True
        logger.error(f"Speech recognition not available: {reason}")
        self.feedback.error("Speech recognition is not available on this system")

    # ------------------------------------------------------------------
    # Backend events
    # ------------------------------------------------------------------
    def handle_result(self, utterance: Utterance) -> None:
        text = utterance.text.strip()
        if not text:
            return
        if not utterance.is_final:
            if self.settings.interim_results:
                self.feedback.interim(f"Hearing: {text}")
            return
        if utterance.confidence < self.settings.sensitivity:
            logger.info(f"Dropped '{text}' (confidence {utterance.confidence:.2f} < {self.settings.sensitivity:.2f})")
            self.feedback.show(f'Low confidence: "{text}"')
            return
        self.feedback.show(f'Recognized: "{text}"')
        self.on_utterance(Utterance(text, utterance.confidence, True))

    def handle_end(self) -> None:
        self._capturing = False
        if not self._wanted:
            logger.debug("Recognition session ended.")
            return
        if not self.settings.continuous_listening:
            logger.debug("Recognition session ended; continuous listening is off.")
            self._give_up()
            return
        if self._restart_handle is not None:
            return
        self._restart_token += 1
        token = self._restart_token
        delay = self.settings.restart_delay_ms / 1000.0
        logger.debug(f"Recognition session ended; restarting in {delay:.2f}s.")
        self._restart_handle = self.scheduler(delay, lambda: self.restart(token))

    def handle_error(self, kind: RecognitionErrorKind, message: str = "") -> None:
        if kind.is_permanent:
            logger.error(f"Microphone access denied: {message}")
            self.settings.continuous_listening = False
            self._cancel_restart()
            self._give_up()
            self.feedback.error("Microphone access denied")
            return
        # Transient: the session end that follows triggers the auto-restart
        logger.warning(f"Speech recognition error: {kind.value} {message}".rstrip())

    def restart(self, token: Optional[int] = None) -> None:
        """Timer expiry: begin a new session if still wanted."""
        if token is not None and token != self._restart_token:
            logger.debug("Stale restart ignored.")
            return
        self._restart_handle = None
        if not self._wanted or self._capturing or self.backend is None:
            return
        try:
            self.backend.start()
        except Exception as e:
            logger.error(f"Failed to restart speech recognition: {e}", exc_info=True)
            self._give_up()
            self.feedback.error("Voice control stopped")
            return
        self._capturing = True
        logger.debug("Speech recognition restarted.")

    def _give_up(self) -> None:
        self._wanted = False
        if self.on_gave_up is not None:
            self.on_gave_up()

    def _cancel_restart(self) -> None:
        self._restart_token += 1
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None
