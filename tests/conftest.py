"""Shared fixtures: a sample page, fake speech backend, fake scheduler and a session."""

from __future__ import annotations

from typing import Callable, List, Optional
from unittest.mock import Mock

import pytest

from voxaid.assistant_session import AssistantSession
from voxaid.config import AppConfig
from voxaid.dom.html_loader import parse_html
from voxaid.dom.page import DocumentPage
from voxaid.messaging.channel import LocalMessageChannel
from voxaid.tts.tts_engine import SpeechSynthesizer
from voxaid.voice_recognition.recognizer import SpeechToTextBackend


SAMPLE_HTML = """
<html>
<head><title>Sample Shop</title></head>
<body>
  <h1>Welcome to the shop</h1>
  <nav>
    <a href="/home">Home</a>
    <a href="/about" aria-label="About the company">About us</a>
  </nav>
  <main>
    <p>Our shop sells handmade furniture, lamps and rugs made by local craftspeople.
       Every piece is built to order and shipped within two weeks of purchase.</p>
    <ul>
      <li>Free delivery</li>
      <li>Thirty day returns</li>
    </ul>
  </main>
  <form id="signup">
    <label for="email">Email address</label>
    <input id="email" name="email" type="email">
    <label>Full name <input name="full_name" placeholder="Your name"></label>
    <input type="password" id="password" name="password" aria-label="Password">
    <input type="checkbox" id="news" name="news" checked> <label for="news">Newsletter</label>
    <select name="country" aria-label="Country">
      <option value="fr">France</option>
      <option value="de" selected>Germany</option>
    </select>
    <button type="submit">Sign up</button>
  </form>
  <input type="search" name="q" placeholder="Search products">
  <button type="button" id="menu">Open menu</button>
  <div hidden><p>Hidden text</p></div>
  <img src="lamp.png" alt="Brass desk lamp">
</body>
</html>
"""


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records scheduled callbacks instead of starting timers."""

    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire_all(self) -> None:
        for handle in self.pending:
            handle.callback()


class FakeBackend(SpeechToTextBackend):
    def __init__(self, start_error: Optional[Exception] = None) -> None:
        super().__init__()
        self.start_error = start_error
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1


@pytest.fixture
def document():
    return parse_html(SAMPLE_HTML, url="https://shop.example/")


@pytest.fixture
def page(document):
    return DocumentPage(document)


@pytest.fixture
def synthesizer():
    synth = Mock(spec=SpeechSynthesizer)
    synth.is_speaking = False
    return synth


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def channel():
    return LocalMessageChannel()


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def session(page, config, synthesizer, backend, channel, scheduler):
    s = AssistantSession(
        page,
        config=config,
        synthesizer=synthesizer,
        backend=backend,
        channel=channel,
        scheduler=scheduler,
    )
    yield s
    s.cleanup()
