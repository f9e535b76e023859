# main.py
import argparse
import threading
import time
from typing import List, Optional

from .assistant_session import AssistantSession
from .config import AppConfig, load_config
from .dom.html_loader import load_html_file
from .dom.page import DocumentPage
from .feedback import FeedbackKind, FeedbackMessage
from .llm.ollama_client import OllamaClient
from .messaging.channel import BrowserState, HttpMessageChannel, MessageChannel, build_local_channel
from .preferences import PreferenceStore
from .tts.tts_engine import ConsoleSynthesizer, SpeechSynthesizer, TTSPlayer
from .utils.logging_system import LogBuffer, attach_log_buffer, setup_log_system
from .voice_recognition.stt_engine import WhisperSpeechBackend

logger = setup_log_system("main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="VoxAid - voice control and screen reading for a web page")
    parser.add_argument("page", help="Path to the HTML page to control")
    parser.add_argument(
        "--text",
        action="store_true",
        help="Type utterances on stdin instead of using the microphone",
    )
    parser.add_argument(
        "--prefix",
        default=None,
        help="Only act on utterances starting with this word (e.g. 'computer')",
    )
    parser.add_argument(
        "--no-tts",
        action="store_true",
        help="Print speech instead of synthesising it",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Serve the HTTP control API",
    )
    parser.add_argument("--host", default="127.0.0.1", help="HTTP API host")
    parser.add_argument("--port", type=int, default=5000, help="HTTP API port")
    return parser.parse_args(argv)


def _print_feedback(message: FeedbackMessage) -> None:
    if message.kind is FeedbackKind.INTERIM:
        return
    print(f"[voxaid] {message.text}", flush=True)


class VoxAidApp:
    """Builds the session for one page and keeps the process alive."""

    def __init__(self, args: argparse.Namespace, config: Optional[AppConfig] = None) -> None:
        self.args = args
        self.config = config or load_config()
        if args.prefix is not None:
            self.config.speech.command_prefix = args.prefix.strip().lower()

        self.preferences = PreferenceStore(self.config.prefs_path, self.config.areas())
        self.config.apply_areas(self.preferences.load())

        self.log_buffer = attach_log_buffer(LogBuffer())
        page = DocumentPage(load_html_file(args.page))
        self.session = AssistantSession(
            page,
            config=self.config,
            synthesizer=self._build_synthesizer(),
            backend=None if args.text else self._build_backend(),
            channel=self._build_channel(),
            preferences=self.preferences,
        )
        self.session.feedback.subscribe(_print_feedback)

    # ------------- Collaborators -------------

    def _build_synthesizer(self) -> SpeechSynthesizer:
        if self.args.no_tts:
            return ConsoleSynthesizer()
        player = TTSPlayer()
        if not player.available:
            logger.warning("Speech synthesis unavailable; falling back to console output.")
            return ConsoleSynthesizer()
        return player

    def _build_backend(self) -> WhisperSpeechBackend:
        return WhisperSpeechBackend(
            model_size=self.config.stt_model_size,
            device=self.config.stt_device,
            compute_type=self.config.stt_compute_type,
        )

    def _build_channel(self) -> MessageChannel:
        if self.config.message_url:
            logger.info(f"Forwarding host messages to {self.config.message_url}")
            return HttpMessageChannel(self.config.message_url)
        llm = OllamaClient(self.config.llm_model, self.config.ollama_url, timeout=self.config.llm_timeout)
        return build_local_channel(llm, BrowserState(f"file://{self.args.page}"))

    # ------------- App lifecycle -------------

    def _serve_web(self) -> None:
        from .web.flask_app import run_app

        thread = threading.Thread(
            target=run_app,
            args=(self.session,),
            kwargs={"host": self.args.host, "port": self.args.port, "log_buffer": self.log_buffer},
            name="VoxAidWeb",
            daemon=True,
        )
        thread.start()

    def _read_stdin(self) -> None:
        print("Type a command (Ctrl+D to quit), e.g. 'scroll down' or 'read page'.", flush=True)
        while True:
            try:
                line = input("> ")
            except EOFError:
                break
            if line.strip():
                self.session.submit_text(line)

    def run(self) -> None:
        """Start the session and block until interrupted."""
        self.session.start(listen=not self.args.text)
        if self.args.web:
            self._serve_web()
        try:
            if self.args.text:
                self._read_stdin()
            else:
                logger.info("VoxAid is listening. Press Ctrl+C to quit.")
                while True:
                    time.sleep(0.1)
        except KeyboardInterrupt:
            logger.debug("Shutting down (KeyboardInterrupt received)…")
        finally:
            self.session.cleanup()
            logger.info("Application terminated.")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        app = VoxAidApp(args)
    except OSError as e:
        logger.error(f"Could not open page {args.page}: {e}")
        return 1
    app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
