"""
Flask application exposing a small HTTP control API for a VoxAid session.

It lets another process (a browser extension, a switch device, a test
harness) drive the session the same way the microphone and keyboard do:
post utterances, run commands, flip features, and read back the session
status, recent feedback and recent log lines.  Every request is turned into
an event on the session queue, so HTTP triggers are serialised with voice
and keyboard input.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, make_response, request

from ..assistant_session import AssistantSession
from ..features.state import FeatureId, FeatureTransition, TransitionOp
from ..messaging.channel import Message
from ..utils.logging_system import LogBuffer, attach_log_buffer, setup_log_system

logger = setup_log_system("flask_app")

# Suppress default HTTP request logging from Werkzeug to reduce noise in
# the log view.
logging.getLogger("werkzeug").setLevel(logging.WARNING)


def create_app(session: AssistantSession, log_buffer: Optional[LogBuffer] = None) -> Flask:
    app = Flask(__name__)
    logs = attach_log_buffer(log_buffer or LogBuffer())

    def _json_body() -> dict:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    @app.route("/api/status", methods=["GET"])
    def api_status() -> Any:
        """Return the session status."""
        return jsonify(session.status())

    @app.route("/api/utterance", methods=["POST"])
    def api_utterance() -> Any:
        """Treat the posted text as a final speech result."""
        data = _json_body()
        text = str(data.get("text") or "").strip()
        if not text:
            return jsonify(error="Empty utterance"), 400
        try:
            confidence = float(data.get("confidence", 1.0))
        except (TypeError, ValueError):
            return jsonify(error="confidence must be a number"), 400
        outcome = session.submit_text(text, confidence)
        if outcome is None:
            return jsonify(success=False, status="dropped", feedback=_last_feedback())
        return jsonify(**outcome.to_dict(), feedback=_last_feedback())

    @app.route("/api/command", methods=["POST"])
    def api_command() -> Any:
        """Execute a command by name."""
        data = _json_body()
        name = str(data.get("name") or "").strip()
        if not name:
            return jsonify(error="Missing command name"), 400
        params = data.get("params") or {}
        if not isinstance(params, dict):
            return jsonify(error="params must be an object"), 400
        outcome = session.run_command(name, params)
        status_code = 404 if name not in session.registry else 200
        return jsonify(**outcome.to_dict()), status_code

    @app.route("/api/features/<feature>/<op>", methods=["POST"])
    def api_feature(feature: str, op: str) -> Any:
        """Toggle, start or stop a feature."""
        try:
            feature_id = FeatureId.parse(feature)
            transition = FeatureTransition(TransitionOp(op.lower()), feature_id)
        except ValueError as e:
            return jsonify(error=str(e)), 400
        outcome = session.run_command(transition.command_name)
        return jsonify(**outcome.to_dict(), active=session.state.is_active(feature_id))

    @app.route("/api/message", methods=["POST"])
    def api_message() -> Any:
        """Handle an inbound message (EXECUTE_COMMAND, TOGGLE_FEATURE, GET_STATE, ...)."""
        try:
            message = Message.from_dict(_json_body())
        except ValueError as e:
            return jsonify(error=str(e)), 400
        return jsonify(session.send_message(message))

    @app.route("/api/feedback", methods=["GET"])
    def api_feedback() -> Any:
        """Return recent feedback messages."""
        limit = request.args.get("limit", type=int)
        return jsonify(feedback=[m.to_dict() for m in session.feedback.messages(limit)])

    @app.route("/api/logs", methods=["GET"])
    def api_logs() -> Any:
        """Return the recent log lines."""
        return jsonify(logs=logs.lines(request.args.get("limit", type=int)))

    @app.route("/api/logs/download", methods=["GET"])
    def api_logs_download() -> Any:
        """Return the recent log lines as a downloadable text file."""
        resp = make_response("\n".join(logs.lines()))
        resp.headers.set("Content-Type", "text/plain")
        resp.headers.set("Content-Disposition", "attachment; filename=voxaid_logs.txt")
        return resp

    @app.route("/api/logs/clear", methods=["POST"])
    def api_clear_logs() -> Any:
        """Clear the log buffer."""
        logs.clear()
        return jsonify(success=True)

    def _last_feedback() -> Optional[str]:
        last = session.feedback.last
        return last.text if last else None

    return app


def run_app(
    session: AssistantSession,
    host: str = "127.0.0.1",
    port: int = 5000,
    debug: bool = False,
    log_buffer: Optional[LogBuffer] = None,
) -> None:
    """Run the Flask development server (blocking).  Intended to be called from main."""
    app = create_app(session, log_buffer)
    logger.info(f"HTTP control API on http://{host}:{port}/api/status")
    app.run(host=host, port=port, debug=debug, use_reloader=False)
