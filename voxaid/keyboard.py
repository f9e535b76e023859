"""
Keyboard shortcuts.

Shortcuts map a key chord to a command name.  Key presses are posted to the
session queue like any other event, so a shortcut and the matching voice
command go through the same registry and feature state machine.

Default chords (all with Alt):

=========  ==================================================
R          toggle screen reader
V          toggle voice control
C          toggle high contrast
F          toggle simplified view
Space      read the page, or stop reading while speaking
Right      next element
Left       previous element
Up         read faster
Down       read slower
=========  ==================================================
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .utils.logging_system import setup_log_system

logger = setup_log_system("keyboard")

_KEY_ALIASES = {
    " ": "space",
    "spacebar": "space",
    "arrowright": "right",
    "arrowleft": "left",
    "arrowup": "up",
    "arrowdown": "down",
}


@dataclass(frozen=True)
class KeyPress:
    key: str
    alt: bool = False
    ctrl: bool = False
    shift: bool = False

    @classmethod
    def parse(cls, chord: str) -> "KeyPress":
        """``"alt+r"`` / ``"Alt+ArrowRight"`` -> KeyPress."""
        parts = [p.strip().lower() for p in chord.split("+")]
        key, mods = parts[-1], set(parts[:-1])
        return cls(
            normalize_key(key),
            alt="alt" in mods,
            ctrl="ctrl" in mods or "control" in mods,
            shift="shift" in mods,
        )


def normalize_key(key: str) -> str:
    key = key if key == " " else key.strip()
    lowered = key.lower()
    return _KEY_ALIASES.get(lowered, lowered)


DEFAULT_SHORTCUTS: Dict[str, str] = {
    "alt+r": "toggle_screen_reader",
    "alt+v": "toggle_speech",
    "alt+c": "toggle_high_contrast",
    "alt+f": "toggle_simplified_view",
    "alt+space": "toggle_reading",
    "alt+right": "next_element",
    "alt+left": "previous_element",
    "alt+up": "read_faster",
    "alt+down": "read_slower",
}


class KeyboardShortcuts:
    def __init__(self, shortcuts: Optional[Dict[str, str]] = None) -> None:
        self._bindings: Dict[KeyPress, str] = {}
        for chord, command in (DEFAULT_SHORTCUTS if shortcuts is None else shortcuts).items():
            self.bind(chord, command)

    def bind(self, chord: str, command: str) -> None:
        self._bindings[KeyPress.parse(chord)] = command

    def command_for(self, press: KeyPress) -> Optional[str]:
        normalized = KeyPress(normalize_key(press.key), press.alt, press.ctrl, press.shift)
        command = self._bindings.get(normalized)
        if command is None:
            logger.debug(f"No shortcut bound to {normalized}.")
        return command
