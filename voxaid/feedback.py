"""
User-facing feedback surface.

Everything VoxAid wants the user to know ("Listening...", "Recognized: ...",
"No button found matching: ...") goes through :class:`Feedback`.  Messages
are logged, kept in a short history for the HTTP API and pushed to any
subscribed listeners (the CLI prints them).
"""
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from .utils.logging_system import setup_log_system

logger = setup_log_system("feedback")


class FeedbackKind(str, Enum):
    STATUS = "status"
    INTERIM = "interim"
    RESPONSE = "response"
    ERROR = "error"


@dataclass(frozen=True)
class FeedbackMessage:
    text: str
    kind: FeedbackKind = FeedbackKind.STATUS
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"text": self.text, "kind": self.kind.value, "timestamp": self.timestamp}


FeedbackListener = Callable[[FeedbackMessage], None]


class Feedback:
    def __init__(self, history: int = 100) -> None:
        self._messages: deque[FeedbackMessage] = deque(maxlen=history)
        self._listeners: List[FeedbackListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: FeedbackListener) -> None:
        self._listeners.append(listener)

    def show(self, text: str, *, kind: FeedbackKind = FeedbackKind.STATUS) -> FeedbackMessage:
        message = FeedbackMessage(text, kind)
        # Interim transcripts change several times a second
        if kind is FeedbackKind.INTERIM:
            logger.debug(text)
        elif kind is FeedbackKind.ERROR:
            logger.warning(text)
        else:
            logger.info(text)
        with self._lock:
            self._messages.append(message)
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                logger.error(f"Feedback listener failed: {e}", exc_info=True)
        return message

    def interim(self, text: str) -> FeedbackMessage:
        return self.show(text, kind=FeedbackKind.INTERIM)

    def error(self, text: str) -> FeedbackMessage:
        return self.show(text, kind=FeedbackKind.ERROR)

    def respond(self, text: str) -> FeedbackMessage:
        return self.show(text, kind=FeedbackKind.RESPONSE)

    @property
    def last(self) -> Optional[FeedbackMessage]:
        with self._lock:
            return self._messages[-1] if self._messages else None

    def messages(self, limit: Optional[int] = None) -> List[FeedbackMessage]:
        with self._lock:
            items = list(self._messages)
        return items[-limit:] if limit else items

    def texts(self) -> List[str]:
        return [m.text for m in self.messages()]

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
