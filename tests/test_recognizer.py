"""Tests for the recognition lifecycle: feedback, confidence gating and auto-restart."""

import pytest

from voxaid.config import SpeechSettings
from voxaid.errors import CapabilityUnavailableError, RecognitionErrorKind
from voxaid.feedback import Feedback, FeedbackKind
from voxaid.voice_recognition.recognizer import Recognizer, Utterance

from .conftest import FakeBackend


@pytest.fixture
def feedback():
    return Feedback()


@pytest.fixture
def heard():
    return []


def _recognizer(backend, feedback, heard, scheduler, **settings):
    return Recognizer(backend, SpeechSettings(**settings), feedback, heard.append, scheduler=scheduler)


class TestStartStop:
    def test_start_shows_listening(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        assert recognizer.start() is True
        assert recognizer.is_capturing
        assert backend.starts == 1
        assert feedback.last.text == "Listening..."

    def test_start_twice_is_noop(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.start()
        assert backend.starts == 1

    def test_stop_shows_paused(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.stop()
        assert not recognizer.is_capturing
        assert backend.stops == 1
        assert feedback.last.text == "Voice control paused"

    def test_missing_backend_reported_once(self, feedback, heard, scheduler):
        recognizer = _recognizer(None, feedback, heard, scheduler)
        assert recognizer.start() is False
        assert recognizer.start() is False
        errors = [m for m in feedback.messages() if m.kind is FeedbackKind.ERROR]
        assert len(errors) == 1
        assert not recognizer.is_available

    def test_capability_unavailable_drops_backend(self, feedback, heard, scheduler):
        backend = FakeBackend(start_error=CapabilityUnavailableError("no microphone"))
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        assert recognizer.start() is False
        assert not recognizer.is_available

    def test_start_failure_gives_feedback(self, feedback, heard, scheduler):
        backend = FakeBackend(start_error=RuntimeError("device busy"))
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        assert recognizer.start() is False
        assert feedback.last.text == "Could not start voice control: device busy"

    def test_settings_are_copied(self, backend, feedback, heard, scheduler):
        settings = SpeechSettings()
        recognizer = Recognizer(backend, settings, feedback, heard.append, scheduler=scheduler)
        recognizer.handle_error(RecognitionErrorKind.PERMISSION_DENIED)
        assert settings.continuous_listening is True
        assert recognizer.settings.continuous_listening is False


class TestResults:
    def test_interim_only_gives_feedback(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.handle_result(Utterance("scroll", 0.9, is_final=False))
        assert heard == []
        assert feedback.last.text == "Hearing: scroll"
        assert feedback.last.kind is FeedbackKind.INTERIM

    def test_interim_suppressed_when_disabled(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler, interim_results=False)
        recognizer.handle_result(Utterance("scroll", 0.9, is_final=False))
        assert feedback.last is None

    def test_low_confidence_dropped(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler, sensitivity=0.8)
        recognizer.handle_result(Utterance("scroll down", 0.5))
        assert heard == []
        assert feedback.last.text == 'Low confidence: "scroll down"'

    @pytest.mark.parametrize("confidence,accepted", [(0.69, False), (0.70, True)])
    def test_default_threshold_boundary(self, backend, feedback, heard, scheduler, confidence, accepted):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.handle_result(Utterance("scroll down", confidence))
        assert bool(heard) is accepted

    def test_final_result_forwarded(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.handle_result(Utterance("  scroll down ", 0.95))
        assert heard == [Utterance("scroll down", 0.95, True)]
        assert feedback.last.text == 'Recognized: "scroll down"'

    def test_blank_result_ignored(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.handle_result(Utterance("   "))
        assert heard == []
        assert feedback.last is None


class TestAutoRestart:
    def test_one_restart_scheduled(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler, restart_delay_ms=250)
        recognizer.start()
        recognizer.handle_end()
        recognizer.handle_end()
        assert len(scheduler.pending) == 1
        assert scheduler.pending[0].delay == pytest.approx(0.25)
        assert recognizer.restart_pending

    def test_restart_fires(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.handle_end()
        scheduler.fire_all()
        assert backend.starts == 2
        assert recognizer.is_capturing
        assert not recognizer.restart_pending

    def test_stop_cancels_pending_restart(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.handle_end()
        handle = scheduler.pending[0]
        recognizer.stop()
        assert handle.cancelled
        # A timer that already fired still finds a stale token
        handle.callback()
        assert backend.starts == 1

    def test_no_restart_without_continuous_listening(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler, continuous_listening=False)
        recognizer.start()
        recognizer.handle_end()
        assert scheduler.pending == []
        assert not recognizer.is_capturing

    def test_no_restart_after_stop(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.stop()
        recognizer.handle_end()
        assert scheduler.pending == []

    def test_permission_denied_disables_restart(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.handle_error(RecognitionErrorKind.PERMISSION_DENIED, "blocked")
        recognizer.handle_end()
        assert scheduler.pending == []
        assert feedback.last.text == "Microphone access denied"

    def test_transient_error_still_restarts(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.handle_error(RecognitionErrorKind.NO_SPEECH)
        recognizer.handle_end()
        assert len(scheduler.pending) == 1

    def test_failed_restart_stops_listening(self, backend, feedback, heard, scheduler):
        recognizer = _recognizer(backend, feedback, heard, scheduler)
        recognizer.start()
        recognizer.handle_end()
        backend.start_error = RuntimeError("device gone")
        scheduler.fire_all()
        assert not recognizer.is_capturing
        assert feedback.last.text == "Voice control stopped"


class TestGaveUp:
    def _recognizer(self, backend, feedback, heard, scheduler, gave_up, **settings):
        return Recognizer(
            backend,
            SpeechSettings(**settings),
            feedback,
            heard.append,
            scheduler=scheduler,
            on_gave_up=lambda: gave_up.append(True),
        )

    def test_permission_denied(self, backend, feedback, heard, scheduler):
        gave_up = []
        recognizer = self._recognizer(backend, feedback, heard, scheduler, gave_up)
        recognizer.start()
        recognizer.handle_error(RecognitionErrorKind.PERMISSION_DENIED, "blocked")
        recognizer.handle_end()
        assert gave_up == [True]

    def test_failed_restart(self, backend, feedback, heard, scheduler):
        gave_up = []
        recognizer = self._recognizer(backend, feedback, heard, scheduler, gave_up)
        recognizer.start()
        recognizer.handle_end()
        backend.start_error = RuntimeError("device gone")
        scheduler.fire_all()
        assert gave_up == [True]

    def test_session_end_without_continuous_listening(self, backend, feedback, heard, scheduler):
        gave_up = []
        recognizer = self._recognizer(backend, feedback, heard, scheduler, gave_up, continuous_listening=False)
        recognizer.start()
        recognizer.handle_end()
        assert gave_up == [True]

    def test_not_called_after_explicit_stop(self, backend, feedback, heard, scheduler):
        gave_up = []
        recognizer = self._recognizer(backend, feedback, heard, scheduler, gave_up, continuous_listening=False)
        recognizer.start()
        recognizer.stop()
        recognizer.handle_end()
        assert gave_up == []

    def test_transient_error_keeps_capture_wanted(self, backend, feedback, heard, scheduler):
        gave_up = []
        recognizer = self._recognizer(backend, feedback, heard, scheduler, gave_up)
        recognizer.start()
        recognizer.handle_error(RecognitionErrorKind.NETWORK)
        recognizer.handle_end()
        assert gave_up == []
        assert recognizer.restart_pending
