"""Tests for messages, the local channel, the HTTP channel and the in-memory browser."""

from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from voxaid.llm.ollama_client import OllamaClient
from voxaid.messaging.channel import (
    BrowserState,
    HttpMessageChannel,
    LocalMessageChannel,
    Message,
    MessageType,
    build_local_channel,
)


class TestMessage:
    def test_to_dict_flattens_payload(self):
        message = Message(MessageType.SWITCH_TAB, {"index": 2})
        assert message.to_dict() == {"type": "SWITCH_TAB", "index": 2}

    def test_from_dict(self):
        message = Message.from_dict({"type": "TOGGLE_FEATURE", "feature": "speech"})
        assert message.type is MessageType.TOGGLE_FEATURE
        assert message.payload == {"feature": "speech"}

    @pytest.mark.parametrize("data", [{}, {"type": "NOT_A_TYPE"}])
    def test_from_dict_invalid(self, data):
        with pytest.raises(ValueError):
            Message.from_dict(data)


class TestLocalChannel:
    def test_unhandled_message(self):
        assert LocalMessageChannel().send(Message(MessageType.OPEN_NEW_TAB)) is None

    def test_handler_error_gives_none(self):
        channel = LocalMessageChannel()

        def broken(_):
            raise RuntimeError("boom")

        channel.register(MessageType.OPEN_NEW_TAB, broken)
        assert channel.send(Message(MessageType.OPEN_NEW_TAB)) is None

    def test_llm_wiring(self):
        llm = Mock(spec=OllamaClient)
        llm.interpret.return_value = {"command": "scroll_down", "params": {}}
        llm.summarize.return_value = "Summary."
        channel = build_local_channel(llm)
        response = channel.send(
            Message(MessageType.INTERPRET_VOICE_COMMAND, {"text": "down", "commands": ["scroll_down"]})
        )
        assert response == {"command": "scroll_down", "params": {}}
        llm.interpret.assert_called_once_with("down", ["scroll_down"])
        assert channel.send(Message(MessageType.PROCESS_SUMMARY, {"text": "page"})) == {"summary": "Summary."}

    def test_summary_failure_gives_none(self):
        llm = Mock(spec=OllamaClient)
        llm.summarize.return_value = None
        channel = build_local_channel(llm)
        assert channel.send(Message(MessageType.PROCESS_SUMMARY, {"text": "page"})) is None


class TestBrowserState:
    def test_tabs(self):
        browser = BrowserState("https://a.example/")
        assert browser.close_tab({}) == {"success": False, "error": "Cannot close the last tab"}
        assert browser.open_tab({"url": "https://b.example/"}) == {"success": True, "index": 1}
        assert browser.switch_tab({"index": 0}) == {"success": True, "index": 0}
        assert browser.switch_tab({"index": 5})["success"] is False
        assert browser.close_tab({}) == {"success": True, "index": 0}
        assert browser.tabs == ["https://b.example/"]

    def test_assistant_and_status(self):
        browser = BrowserState()
        channel = build_local_channel(Mock(spec=OllamaClient), browser)
        channel.send(Message(MessageType.OPEN_ASSISTANT))
        assert browser.assistant_open
        channel.send(Message(MessageType.SPEECH_RECOGNITION_STATUS, {"listening": True}))
        assert browser.listening


class TestHttpChannel:
    def test_posts_json(self):
        response = MagicMock()
        response.json.return_value = {"success": True}
        with patch("voxaid.messaging.channel.requests.post", return_value=response) as post:
            result = HttpMessageChannel("http://host.test/msg", timeout=3).send(
                Message(MessageType.SWITCH_TAB, {"index": 1})
            )
        assert result == {"success": True}
        post.assert_called_once_with("http://host.test/msg", json={"type": "SWITCH_TAB", "index": 1}, timeout=3)

    def test_timeout_gives_none(self):
        with patch("voxaid.messaging.channel.requests.post", side_effect=requests.Timeout()):
            assert HttpMessageChannel("http://host.test/msg").send(Message(MessageType.OPEN_NEW_TAB)) is None

    def test_non_object_reply_gives_none(self):
        response = MagicMock()
        response.json.return_value = ["not", "a", "dict"]
        with patch("voxaid.messaging.channel.requests.post", return_value=response):
            assert HttpMessageChannel("http://host.test/msg").send(Message(MessageType.OPEN_NEW_TAB)) is None
