"""
Session controller for VoxAid.

An :class:`AssistantSession` is built for one page and owns every piece of
mutable state: the recognizer, the grammar and registry, the feature state
machine, the screen reader and the event queue.  Recognition callbacks,
restart timers, keyboard shortcuts, typed utterances and remote messages are
posted to the queue as :class:`~voxaid.events.Event` objects and handled by
a single worker, one at a time, in arrival order.

:class:`Dispatcher` is the per-utterance pipeline:

normalize -> grammar match -> (remote interpretation) -> registry execute

A command that raises leaves the session running; the error becomes
feedback and no feature is marked active.
"""
from __future__ import annotations

import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .commands.actions import register_default_commands
from .commands.grammar import CommandGrammar, ResolvedCommand
from .commands.registry import CommandRegistry
from .config import AppConfig
from .dom.page import PageHost
from .errors import CommandError
from .events import Event, EventKind
from .features.presentation import Presentation
from .features.screen_reader import ScreenReader
from .features.state import FeatureId, FeatureStateMachine, FeatureTransition, TransitionOp
from .feedback import Feedback
from .keyboard import KeyboardShortcuts, KeyPress
from .messaging.channel import LocalMessageChannel, Message, MessageChannel, MessageType
from .preferences import PreferenceStore
from .tts.tts_engine import ConsoleSynthesizer, SpeechSynthesizer
from .utils.logging_system import setup_log_system
from .voice_recognition.recognizer import (
    Cancellable,
    Recognizer,
    Scheduler,
    SpeechToTextBackend,
    Utterance,
    thread_timer_scheduler,
)

logger = setup_log_system("assistant_session")

Interpreter = Callable[[str], Optional[ResolvedCommand]]

_FEATURE_LABELS = {
    FeatureId.SCREEN_READER: "Screen reader",
    FeatureId.SPEECH: "Voice control",
    FeatureId.MOTOR: "Motor assistance",
    FeatureId.COGNITIVE: "Cognitive assistance",
    FeatureId.VISUAL: "Visual assistance",
    FeatureId.HIGH_CONTRAST: "High contrast",
    FeatureId.SIMPLIFIED_VIEW: "Simplified view",
    FeatureId.KEYBOARD_NAVIGATION: "Keyboard navigation",
}

_FEATURE_MESSAGES = {
    MessageType.TOGGLE_FEATURE: TransitionOp.TOGGLE,
    MessageType.START_FEATURE: TransitionOp.START,
    MessageType.STOP_FEATURE: TransitionOp.STOP,
}


class DispatchStatus(str, Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    NOT_RECOGNIZED = "not_recognized"
    IGNORED = "ignored"


@dataclass
class DispatchOutcome:
    status: DispatchStatus
    command: Optional[ResolvedCommand] = None
    response: Optional[str] = None
    error: Optional[str] = None
    remote: bool = False

    @property
    def ok(self) -> bool:
        return self.status is DispatchStatus.EXECUTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.ok,
            "status": self.status.value,
            "command": self.command.name if self.command else None,
            "params": dict(self.command.params) if self.command else {},
            "response": self.response,
            "error": self.error,
            "remote": self.remote,
        }


class Dispatcher:
    """Turns one final utterance into at most one executed command."""

    def __init__(
        self,
        grammar: CommandGrammar,
        registry: CommandRegistry,
        feedback: Feedback,
        interpreter: Optional[Interpreter] = None,
    ) -> None:
        self.grammar = grammar
        self.registry = registry
        self.feedback = feedback
        self.interpreter = interpreter

    def dispatch(self, transcript: str) -> DispatchOutcome:
        text = self.grammar.normalize(transcript)
        if not text:
            logger.debug(f"Ignoring utterance not addressed to the assistant: '{transcript}'")
            return DispatchOutcome(DispatchStatus.IGNORED)

        command = self.grammar.match_normalized(text)
        remote = False
        if command is None and self.interpreter is not None:
            command = self.interpreter(text)
            remote = command is not None
        if command is None:
            self.feedback.show(f'Command not recognized: "{text}"')
            return DispatchOutcome(DispatchStatus.NOT_RECOGNIZED)
        return self.execute(command, remote=remote)

    def execute(self, command: ResolvedCommand, *, remote: bool = False) -> DispatchOutcome:
        self.feedback.show(f"Executing: {command.name}")
        try:
            response = self.registry.execute(command.name, command.params)
        except CommandError as e:
            logger.warning(f"Command {command.name} failed: {e}")
            self.feedback.error(str(e))
            return DispatchOutcome(DispatchStatus.FAILED, command, error=str(e), remote=remote)
        except Exception as e:
            logger.error(f"Error executing {command.name}: {e}", exc_info=True)
            self.feedback.error(f"Error executing {command.name}")
            return DispatchOutcome(DispatchStatus.FAILED, command, error=str(e), remote=remote)
        if response:
            self.feedback.respond(response)
        return DispatchOutcome(DispatchStatus.EXECUTED, command, response=response, remote=remote)


class AssistantSession:
    """Everything VoxAid knows about one page."""

    def __init__(
        self,
        page: PageHost,
        *,
        config: Optional[AppConfig] = None,
        synthesizer: Optional[SpeechSynthesizer] = None,
        backend: Optional[SpeechToTextBackend] = None,
        channel: Optional[MessageChannel] = None,
        grammar: Optional[CommandGrammar] = None,
        scheduler: Scheduler = thread_timer_scheduler,
        preferences: Optional[PreferenceStore] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.page = page
        self.synthesizer = synthesizer or ConsoleSynthesizer()
        self.channel = channel or LocalMessageChannel()
        self.preferences = preferences
        self.feedback = Feedback()
        self.state = FeatureStateMachine()
        self.grammar = grammar or CommandGrammar(prefix=self.config.speech.command_prefix)
        self.registry = CommandRegistry()
        self.keyboard = KeyboardShortcuts()
        self.presentation = Presentation(page, self.config.visual)
        self.screen_reader = ScreenReader(
            page,
            self.synthesizer,
            self.config.screen_reader,
            language=self.config.speech.language,
            activate=lambda: self.state.start(FeatureId.SCREEN_READER),
        )
        self._scheduler = scheduler
        self.recognizer = Recognizer(
            backend,
            self.config.speech,
            self.feedback,
            self._on_utterance,
            scheduler=self._schedule,
            on_gave_up=self._on_capture_gave_up,
        )
        self.dispatcher = Dispatcher(self.grammar, self.registry, self.feedback, interpreter=self._interpret)

        self.events: "queue.Queue[Event]" = queue.Queue(maxsize=self.config.queue_size)
        self._worker: Optional[threading.Thread] = None
        self._last_outcome: Optional[DispatchOutcome] = None
        self._saved_areas = self.config.areas()
        self._closed = False

        self.state.register(FeatureId.SCREEN_READER, self.screen_reader.enable, self.screen_reader.disable)
        self.state.register(FeatureId.SPEECH, self._enable_speech, self.recognizer.stop)
        self.presentation.register_hooks(self.state)
        self.state.subscribe(self._on_feature_change)
        register_default_commands(self.registry, self)

        if backend is not None:
            backend.bind(
                on_result=lambda utterance: self.post(Event(EventKind.RESULT, utterance)),
                on_end=lambda: self.post(Event(EventKind.END)),
                on_error=lambda kind, message: self.post(Event(EventKind.ERROR, (kind, message))),
            )

        self._handlers: Dict[EventKind, Callable[[Any], Any]] = {
            EventKind.RESULT: self.recognizer.handle_result,
            EventKind.END: lambda _: self.recognizer.handle_end(),
            EventKind.ERROR: lambda payload: self.recognizer.handle_error(*payload),
            EventKind.RESTART: lambda callback: callback(),
            EventKind.KEY: self._handle_key,
            EventKind.TEXT: self._handle_text,
            EventKind.COMMAND: self._handle_command,
            EventKind.MESSAGE: self.handle_message,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, *, listen: bool = True, threaded: bool = True) -> None:
        """Apply stored settings, optionally start listening and the worker."""
        self.presentation.apply_font_scale()
        if self.config.visual.high_contrast:
            self.state.start(FeatureId.HIGH_CONTRAST)
        self._restore_modules()
        if listen:
            self.dispatcher.execute(ResolvedCommand(FeatureTransition(TransitionOp.START, FeatureId.SPEECH).command_name))
        if threaded and self._worker is None:
            self._worker = threading.Thread(target=self._run, name="VoxAidSession", daemon=True)
            self._worker.start()
        logger.info("VoxAid session started.")

    def cleanup(self) -> None:
        """Stop listening, cancel timers, detach callbacks and reset all session state."""
        if self._closed:
            return
        self._closed = True
        self.recognizer.cleanup()
        self.state.shutdown()
        self.screen_reader.cleanup()
        self.synthesizer.cancel()
        if self._worker is not None:
            self._stop_worker()
        self._discard_pending()
        logger.info("VoxAid session cleaned up.")

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def _stop_worker(self) -> None:
        try:
            self.events.put(Event(EventKind.STOP), timeout=1.0)
        except queue.Full:
            logger.warning("Event queue full while stopping the session worker.")
        if self._worker is not threading.current_thread():
            self._worker.join(timeout=2.0)
        self._worker = None

    def _discard_pending(self) -> None:
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return
            if event.reply is not None:
                event.reply.cancel()

    # ------------------------------------------------------------------
    # Event queue
    # ------------------------------------------------------------------
    def post(self, event: Event) -> bool:
        """Queue ``event`` without blocking.  Returns False if it was dropped."""
        if self._closed:
            logger.debug(f"Session closed; dropping {event.kind.value} event.")
            return False
        try:
            self.events.put_nowait(event)
            return True
        except queue.Full:
            logger.warning(f"Event queue full; dropping {event.kind.value} event.")
            return False

    def call(self, kind: EventKind, payload: Any = None, timeout: float = 30.0) -> Any:
        """Post an event and wait for its result."""
        future: Future = Future()
        if not self.post(Event(kind, payload, future)):
            raise RuntimeError("VoxAid session is not accepting events")
        if not self.running:
            self.process_pending()
        return future.result(timeout=timeout)

    def process_pending(self) -> int:
        """Handle every queued event on the calling thread.  Returns the count."""
        handled = 0
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return handled
            if event.kind is EventKind.STOP:
                continue
            self._handle(event)
            handled += 1

    def _run(self) -> None:
        while True:
            event = self.events.get()
            if event.kind is EventKind.STOP:
                break
            self._handle(event)

    def _handle(self, event: Event) -> None:
        try:
            result = self._handlers[event.kind](event.payload)
        except Exception as e:
            logger.error(f"Failed to handle {event.kind.value} event: {e}", exc_info=True)
            if event.reply is not None:
                event.reply.set_exception(e)
            return
        if event.reply is not None:
            event.reply.set_result(result)

    def _schedule(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        # Timer threads only post; the restart itself runs on the worker
        return self._scheduler(delay, lambda: self.post(Event(EventKind.RESTART, callback)))

    # ------------------------------------------------------------------
    # Convenience triggers (thread-safe)
    # ------------------------------------------------------------------
    def submit_text(self, text: str, confidence: float = 1.0) -> Optional[DispatchOutcome]:
        return self.call(EventKind.TEXT, (text, confidence))

    def press(self, press: KeyPress) -> Optional[DispatchOutcome]:
        return self.call(EventKind.KEY, press)

    def run_command(self, name: str, params: Optional[Dict[str, Any]] = None) -> DispatchOutcome:
        return self.call(EventKind.COMMAND, ResolvedCommand(name, dict(params or {})))

    def send_message(self, message: Message) -> Dict[str, Any]:
        return self.call(EventKind.MESSAGE, message)

    # ------------------------------------------------------------------
    # Event handlers (worker thread)
    # ------------------------------------------------------------------
    def _on_utterance(self, utterance: Utterance) -> None:
        self._last_outcome = self.dispatcher.dispatch(utterance.text)
        self._after_dispatch(self._last_outcome)

    def _handle_text(self, payload: Any) -> Optional[DispatchOutcome]:
        text, confidence = payload
        self._last_outcome = None
        self.recognizer.handle_result(Utterance(text, confidence, True))
        return self._last_outcome

    def _handle_key(self, press: KeyPress) -> Optional[DispatchOutcome]:
        name = self.keyboard.command_for(press)
        if name is None:
            return None
        return self._handle_command(ResolvedCommand(name))

    def _handle_command(self, command: ResolvedCommand) -> DispatchOutcome:
        outcome = self.dispatcher.execute(command)
        self._after_dispatch(outcome)
        return outcome

    def handle_message(self, message: Message) -> Dict[str, Any]:
        payload = message.payload
        if message.type is MessageType.EXECUTE_COMMAND:
            name = str(payload.get("name") or payload.get("command") or "")
            return self._handle_command(ResolvedCommand(name, dict(payload.get("params") or {}))).to_dict()
        if message.type in _FEATURE_MESSAGES:
            try:
                feature = FeatureId.parse(payload.get("feature", ""))
            except ValueError as e:
                return {"success": False, "error": str(e)}
            transition = FeatureTransition(_FEATURE_MESSAGES[message.type], feature)
            result = self._handle_command(ResolvedCommand(transition.command_name)).to_dict()
            result["active"] = self.state.is_active(feature)
            return result
        if message.type is MessageType.READ_TEXT:
            self.screen_reader.read_text(str(payload.get("text", "")))
            return {"success": True}
        if message.type is MessageType.SUMMARIZE_PAGE:
            return self._handle_command(ResolvedCommand("summarize_page")).to_dict()
        if message.type is MessageType.GET_STATE:
            return self.status()
        return {"success": False, "error": f"Unsupported message type: {message.type.value}"}

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def _interpret(self, text: str) -> Optional[ResolvedCommand]:
        response = self.channel.send(
            Message(MessageType.INTERPRET_VOICE_COMMAND, {"text": text, "commands": self.registry.names()})
        )
        if not response or not response.get("command"):
            return None
        name = str(response["command"])
        if name not in self.registry:
            logger.warning(f"Remote interpreter returned unknown command '{name}'.")
            return None
        params = response.get("params")
        logger.info(f"Remote interpretation: '{text}' -> {name}")
        return ResolvedCommand(name, dict(params) if isinstance(params, dict) else {})

    def _enable_speech(self) -> None:
        if not self.recognizer.start():
            raise CommandError("Voice control could not be started")

    def _on_capture_gave_up(self) -> None:
        # Runs on the worker, inside a recognizer event handler
        self.state.stop(FeatureId.SPEECH)

    def _restore_modules(self) -> None:
        for name in self.config.modules.active_modules:
            try:
                feature = FeatureId.parse(name)
            except ValueError:
                logger.warning(f"Ignoring unknown stored module '{name}'.")
                continue
            if feature is FeatureId.SPEECH:
                continue
            try:
                self.state.start(feature)
            except Exception as e:
                logger.error(f"Could not restore {feature.value}: {e}", exc_info=True)

    def _on_feature_change(self, feature: FeatureId, active: bool) -> None:
        self.feedback.show(f"{_FEATURE_LABELS[feature]} {'enabled' if active else 'disabled'}")
        if feature is FeatureId.SPEECH:
            self.channel.send(Message(MessageType.SPEECH_RECOGNITION_STATUS, {"listening": active}))
        elif not self._closed:
            self.config.modules.active_modules = sorted(
                f.value for f in self.state.active if f is not FeatureId.SPEECH
            )

    def _after_dispatch(self, outcome: Optional[DispatchOutcome]) -> None:
        if outcome is None or not outcome.ok or self.preferences is None:
            return
        areas = self.config.areas()
        for area, values in areas.items():
            if values != self._saved_areas.get(area):
                try:
                    self.preferences.save(area, values)
                except OSError as e:
                    logger.error(f"Could not save {area} preferences: {e}", exc_info=True)
        self._saved_areas = areas

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def status(self) -> Dict[str, Any]:
        return {
            "listening": self.recognizer.is_capturing,
            "speech_available": self.recognizer.is_available,
            "active_features": sorted(f.value for f in self.state.active),
            "command_prefix": self.grammar.prefix,
            "reader": {
                "cursor": self.screen_reader.cursor,
                "elements": len(self.screen_reader.elements),
                "rate": self.config.screen_reader.rate,
            },
            "font_scale": self.page.font_scale,
            "title": self.page.document.title,
            "url": self.page.document.url,
            "pending_events": self.events.qsize(),
        }
