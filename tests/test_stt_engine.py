"""Tests for the speech backend helpers that do not need audio hardware."""

import math

import pytest

from voxaid.errors import RecognitionErrorKind
from voxaid.tts.tts_engine import ConsoleSynthesizer
from voxaid.voice_recognition.stt_engine import (
    classify_audio_error,
    confidence_from_logprobs,
    language_code,
)


@pytest.mark.parametrize("tag,expected", [("en-US", "en"), ("DE", "de"), ("pt-BR", "pt"), ("", None)])
def test_language_code(tag, expected):
    assert language_code(tag) == expected


class TestConfidence:
    def test_empty(self):
        assert confidence_from_logprobs([]) == 0.0

    def test_mean_of_logprobs(self):
        assert confidence_from_logprobs([-0.1, -0.3]) == pytest.approx(math.exp(-0.2))

    def test_clipped_to_one(self):
        assert confidence_from_logprobs([0.5]) == 1.0


@pytest.mark.parametrize(
    "message,kind",
    [
        ("Permission denied by the OS", RecognitionErrorKind.PERMISSION_DENIED),
        ("Microphone access not allowed", RecognitionErrorKind.PERMISSION_DENIED),
        ("Error opening InputStream: Invalid device", RecognitionErrorKind.AUDIO_CAPTURE),
    ],
)
def test_classify_audio_error(message, kind):
    assert classify_audio_error(OSError(message)) is kind


def test_console_synthesizer_logs(caplog):
    synth = ConsoleSynthesizer()
    with caplog.at_level("INFO", logger="voxaid.tts_engine"):
        synth.speak("Hello there")
    assert "Speaking: Hello there" in caplog.text
    assert synth.is_speaking is False
