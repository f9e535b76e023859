"""
Typed request/response messages between the session and its host.

The session sends a :class:`Message` and gets back a response dict, or
``None`` when nobody answered (no handler, timeout, transport error).
:class:`LocalMessageChannel` answers in-process: command interpretation and
summaries go to the Ollama client, tab and assistant-panel requests are
tracked in memory.  :class:`HttpMessageChannel` posts each message as JSON
to a remote endpoint.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

from ..llm.ollama_client import OllamaClient
from ..utils.logging_system import setup_log_system

logger = setup_log_system("message_channel")

Response = Optional[Dict[str, Any]]
MessageHandler = Callable[[Dict[str, Any]], Response]


class MessageType(str, Enum):
    # Outbound
    INTERPRET_VOICE_COMMAND = "INTERPRET_VOICE_COMMAND"
    PROCESS_SUMMARY = "PROCESS_SUMMARY"
    DESCRIBE_IMAGE = "DESCRIBE_IMAGE"
    OPEN_NEW_TAB = "OPEN_NEW_TAB"
    CLOSE_CURRENT_TAB = "CLOSE_CURRENT_TAB"
    SWITCH_TAB = "SWITCH_TAB"
    OPEN_ASSISTANT = "OPEN_ASSISTANT"
    CLOSE_ASSISTANT = "CLOSE_ASSISTANT"
    SPEECH_RECOGNITION_STATUS = "SPEECH_RECOGNITION_STATUS"
    # Inbound
    EXECUTE_COMMAND = "EXECUTE_COMMAND"
    TOGGLE_FEATURE = "TOGGLE_FEATURE"
    START_FEATURE = "START_FEATURE"
    STOP_FEATURE = "STOP_FEATURE"
    READ_TEXT = "READ_TEXT"
    SUMMARIZE_PAGE = "SUMMARIZE_PAGE"
    GET_STATE = "GET_STATE"


@dataclass
class Message:
    type: MessageType
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, **self.payload}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Raises ``ValueError`` for a missing or unknown ``type``."""
        payload = dict(data)
        raw_type = payload.pop("type", None)
        if raw_type is None:
            raise ValueError("Message has no type")
        return cls(MessageType(raw_type), payload)


class MessageChannel(ABC):
    @abstractmethod
    def send(self, message: Message) -> Response:
        """Deliver ``message``; the response, or ``None`` if nobody answered."""


class LocalMessageChannel(MessageChannel):
    """In-process channel dispatching on message type."""

    def __init__(self) -> None:
        self._handlers: Dict[MessageType, MessageHandler] = {}

    def register(self, message_type: MessageType, handler: MessageHandler) -> None:
        self._handlers[message_type] = handler

    def send(self, message: Message) -> Response:
        handler = self._handlers.get(message.type)
        if handler is None:
            logger.debug(f"No handler for {message.type.value}.")
            return None
        try:
            return handler(dict(message.payload))
        except Exception as e:
            logger.error(f"Handler for {message.type.value} failed: {e}", exc_info=True)
            return None


class HttpMessageChannel(MessageChannel):
    """Posts messages as JSON to ``url``; the JSON reply is the response."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def send(self, message: Message) -> Response:
        try:
            response = requests.post(self.url, json=message.to_dict(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout:
            logger.warning(f"{message.type.value} timed out after {self.timeout}s.")
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error(f"{message.type.value} failed: {e}", exc_info=True)
            return None
        return data if isinstance(data, dict) else None


class BrowserState:
    """In-memory tabs and assistant panel answering the host-side messages."""

    def __init__(self, url: str = "about:blank") -> None:
        self.tabs: List[str] = [url]
        self.active_tab = 0
        self.assistant_open = False
        self.listening = False
        self._lock = threading.Lock()

    def open_tab(self, payload: Dict[str, Any]) -> Response:
        with self._lock:
            self.tabs.append(payload.get("url") or "about:blank")
            self.active_tab = len(self.tabs) - 1
            return {"success": True, "index": self.active_tab}

    def close_tab(self, _: Dict[str, Any]) -> Response:
        with self._lock:
            if len(self.tabs) <= 1:
                return {"success": False, "error": "Cannot close the last tab"}
            del self.tabs[self.active_tab]
            self.active_tab = min(self.active_tab, len(self.tabs) - 1)
            return {"success": True, "index": self.active_tab}

    def switch_tab(self, payload: Dict[str, Any]) -> Response:
        with self._lock:
            try:
                index = int(payload.get("index", 0))
            except (TypeError, ValueError):
                return {"success": False, "error": "Invalid tab index"}
            if not 0 <= index < len(self.tabs):
                return {"success": False, "error": f"No tab number {index + 1}"}
            self.active_tab = index
            return {"success": True, "index": index}

    def set_assistant(self, is_open: bool) -> MessageHandler:
        def handler(_: Dict[str, Any]) -> Response:
            self.assistant_open = is_open
            return {"success": True}

        return handler

    def speech_status(self, payload: Dict[str, Any]) -> Response:
        self.listening = bool(payload.get("listening"))
        return {"success": True}


def build_local_channel(llm: OllamaClient, browser: Optional[BrowserState] = None) -> LocalMessageChannel:
    """Local channel wired to ``llm`` for interpretation/summary and to ``browser`` for tabs."""
    browser = browser or BrowserState()
    channel = LocalMessageChannel()

    def interpret(payload: Dict[str, Any]) -> Response:
        return llm.interpret(payload.get("text", ""), payload.get("commands") or [])

    def summarize(payload: Dict[str, Any]) -> Response:
        summary = llm.summarize(payload.get("text", ""))
        return {"summary": summary} if summary else None

    def describe_image(payload: Dict[str, Any]) -> Response:
        prompt = (
            "Describe this image for a blind user in one sentence. "
            f"Source: {payload.get('src', '')}. Alt text: {payload.get('alt', '')}. "
            f"Nearby text: {payload.get('context', '')}"
        )
        description = llm.generate(prompt)
        return {"description": description} if description else None

    channel.register(MessageType.INTERPRET_VOICE_COMMAND, interpret)
    channel.register(MessageType.PROCESS_SUMMARY, summarize)
    channel.register(MessageType.DESCRIBE_IMAGE, describe_image)
    channel.register(MessageType.OPEN_NEW_TAB, browser.open_tab)
    channel.register(MessageType.CLOSE_CURRENT_TAB, browser.close_tab)
    channel.register(MessageType.SWITCH_TAB, browser.switch_tab)
    channel.register(MessageType.OPEN_ASSISTANT, browser.set_assistant(True))
    channel.register(MessageType.CLOSE_ASSISTANT, browser.set_assistant(False))
    channel.register(MessageType.SPEECH_RECOGNITION_STATUS, browser.speech_status)
    return channel
