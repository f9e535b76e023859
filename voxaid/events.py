"""
Events consumed by the session worker.

Backend callbacks, restart timers, keyboard shortcuts, typed utterances and
remote messages all arrive on other threads.  They are posted to the
session's queue as :class:`Event` objects and handled one at a time, in
arrival order, by the session worker.  Events that need an answer carry a
``concurrent.futures.Future`` in ``reply``.
"""
from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class EventKind(str, Enum):
    RESULT = "result"  # Utterance from the speech backend
    END = "end"  # recognition session ended
    ERROR = "error"  # (RecognitionErrorKind, message)
    RESTART = "restart"  # restart timer fired; payload is the callback
    KEY = "key"  # KeyPress
    TEXT = "text"  # (text, confidence) typed or posted utterance
    COMMAND = "command"  # ResolvedCommand to execute directly
    MESSAGE = "message"  # inbound Message
    STOP = "stop"  # worker shutdown


@dataclass
class Event:
    kind: EventKind
    payload: Any = None
    reply: Optional[Future] = None
