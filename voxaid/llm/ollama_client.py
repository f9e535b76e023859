"""
Ollama client for LLM integration.

This module provides a thin wrapper around the local Ollama HTTP API.  It
is VoxAid's remote interpreter: utterances the command grammar does not
recognise are sent to the model together with the list of known command
names, and the model answers with a JSON object naming one of them.  The
same client summarises page text.

If a request fails the client logs the error and returns an empty string
(or ``None`` from the higher-level helpers).
"""
from __future__ import annotations

import json
import os
import re
from typing import Any, Dict, Iterable, Optional

import requests

from ..utils.logging_system import setup_log_system

logger = setup_log_system("ollama_client")

INTERPRET_PROMPT = (
    "You translate spoken requests into commands for a web accessibility assistant.\n"
    "Known commands: {commands}.\n"
    "Parameters: click/click_button/click_link/read_aloud/search_for take \"text\"; "
    "fill_input takes \"field\" and \"value\"; scroll_down/scroll_up take \"amount\" in pixels; "
    "switch_tab takes a 0-based \"index\".\n"
    "Reply with a single JSON object of the form "
    "{{\"command\": \"<name>\", \"params\": {{...}}}} and nothing else. "
    "If the request matches no command reply with {{\"command\": null}}.\n\n"
    "Request: {text}\n"
)

SUMMARY_PROMPT = (
    "Summarize the following web page content in three to five short sentences "
    "for a listener who cannot see the page. Use plain language.\n\n{text}\n"
)

MAX_SUMMARY_INPUT = 12_000

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First ``{...}`` block of ``text`` parsed as JSON, or ``None``."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.debug(f"LLM reply is not valid JSON: {text!r}")
        return None
    return data if isinstance(data, dict) else None


class OllamaClient:
    """Simple client for the Ollama generate API."""

    def __init__(self, model: Optional[str] = None, base_url: Optional[str] = None, timeout: float = 120.0) -> None:
        self.model = model or os.getenv("LLM_MODEL", "llama3")
        default_url = "http://localhost:11434/api/generate"
        self.base_url = base_url or os.getenv("OLLAMA_URL", default_url)
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        """
        Generate a response for ``prompt`` using the configured model.

        Returns the model's response or an empty string on failure.
        """
        payload: Dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            response = requests.post(self.base_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            # The API may return different shapes depending on version
            if isinstance(data, dict):
                if "response" in data:
                    return str(data["response"]).strip()
                if "choices" in data and data["choices"]:
                    choice = data["choices"][0]
                    return str(choice.get("text", "")).strip()
            return ""
        except Exception as e:
            logger.error(f"Ollama request failed: {e}", exc_info=True)
            return ""

    def interpret(self, text: str, commands: Iterable[str]) -> Optional[Dict[str, Any]]:
        """
        Ask the model which command ``text`` means.

        Returns ``{"command": name, "params": {...}}`` or ``None`` when the
        model gives no usable answer.
        """
        known = list(commands)
        reply = self.generate(INTERPRET_PROMPT.format(commands=", ".join(known), text=text))
        data = extract_json_object(reply)
        if not data or not data.get("command"):
            return None
        name = str(data["command"]).strip()
        if name not in known:
            logger.warning(f"LLM proposed unknown command '{name}'; ignoring.")
            return None
        params = data.get("params")
        return {"command": name, "params": params if isinstance(params, dict) else {}}

    def summarize(self, text: str) -> Optional[str]:
        if not text.strip():
            return None
        reply = self.generate(SUMMARY_PROMPT.format(text=text[:MAX_SUMMARY_INPUT]))
        return reply or None
