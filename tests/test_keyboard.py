"""Tests for keyboard shortcut parsing and lookup."""

import pytest

from voxaid.keyboard import DEFAULT_SHORTCUTS, KeyboardShortcuts, KeyPress, normalize_key


class TestKeyPress:
    @pytest.mark.parametrize(
        "chord,expected",
        [
            ("alt+r", KeyPress("r", alt=True)),
            ("Alt+ArrowRight", KeyPress("right", alt=True)),
            ("ctrl+shift+S", KeyPress("s", ctrl=True, shift=True)),
            ("Control+x", KeyPress("x", ctrl=True)),
        ],
    )
    def test_parse(self, chord, expected):
        assert KeyPress.parse(chord) == expected

    def test_normalize_space(self):
        assert normalize_key(" ") == "space"
        assert normalize_key("Spacebar") == "space"


class TestShortcuts:
    def test_defaults(self):
        shortcuts = KeyboardShortcuts()
        assert shortcuts.command_for(KeyPress("v", alt=True)) == "toggle_speech"
        assert shortcuts.command_for(KeyPress("ArrowUp", alt=True)) == "read_faster"
        assert shortcuts.command_for(KeyPress(" ", alt=True)) == "toggle_reading"

    def test_modifiers_must_match(self):
        shortcuts = KeyboardShortcuts()
        assert shortcuts.command_for(KeyPress("r")) is None
        assert shortcuts.command_for(KeyPress("r", alt=True, ctrl=True)) is None

    def test_bind(self):
        shortcuts = KeyboardShortcuts({})
        shortcuts.bind("ctrl+alt+s", "summarize_page")
        assert shortcuts.command_for(KeyPress("S", alt=True, ctrl=True)) == "summarize_page"
        assert shortcuts.command_for(KeyPress("s", alt=True)) is None

    def test_every_default_is_reachable(self):
        shortcuts = KeyboardShortcuts()
        for chord, command in DEFAULT_SHORTCUTS.items():
            assert shortcuts.command_for(KeyPress.parse(chord)) == command
