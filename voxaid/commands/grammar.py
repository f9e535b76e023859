"""
Command grammar for VoxAid.

The grammar is an ordered list of :class:`CommandRule` objects.  Each rule
pairs a matcher with a command name and an extractor that turns regex groups
into named parameters.  Rules are tested in order and the first match wins,
so specific phrasings must come before general ones ("click button X" before
"click X", "read the page" before "read X").

Utterances are normalized before matching: lower-cased, whitespace
collapsed, surrounding punctuation stripped and, when a command prefix is
configured, the prefix removed.  Utterances that do not start with the
prefix are not addressed to the assistant and normalize to ``None``.
"""
from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Tuple, Union

from ..utils.logging_system import setup_log_system

logger = setup_log_system("command_grammar")

Groups = Tuple[Optional[str], ...]
Extractor = Callable[[Groups], Dict[str, Any]]

DEFAULT_SCROLL_AMOUNT = 300

_WHITESPACE = re.compile(r"\s+")
_EDGE_PUNCTUATION = " \t.,!?;:\"'"

NUMBER_WORDS: Dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
}
_NUMBER_ALTERNATION = "|".join(sorted(NUMBER_WORDS, key=len, reverse=True))


def parse_number(raw: Optional[str]) -> Optional[int]:
    """``"3"`` / ``"three"`` / ``"third"`` -> 3."""
    if raw is None:
        return None
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    return NUMBER_WORDS.get(raw)


# ----------------------------------------------------------------------
# Matchers
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class PhraseMatcher:
    """Literal phrase, either the whole utterance or contained in it."""

    phrase: str
    contains: bool = False

    def match(self, text: str) -> Optional[Groups]:
        if self.contains:
            return () if self.phrase in text else None
        return () if text == self.phrase else None


@dataclass(frozen=True)
class PatternMatcher:
    """Regular expression anchored at the start of the utterance."""

    pattern: Pattern[str]

    @classmethod
    def compile(cls, regex: str) -> "PatternMatcher":
        return cls(re.compile(regex, re.IGNORECASE))

    def match(self, text: str) -> Optional[Groups]:
        m = self.pattern.match(text)
        return m.groups() if m else None


Matcher = Union[PhraseMatcher, PatternMatcher]


def _no_params(_: Groups) -> Dict[str, Any]:
    return {}


@dataclass(frozen=True)
class CommandRule:
    matcher: Matcher
    command: str
    extract: Extractor = _no_params
    examples: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedCommand:
    """A command name plus the parameters pulled out of the utterance."""

    name: str
    params: Dict[str, Any] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Extractors
# ----------------------------------------------------------------------
def _amount(groups: Groups) -> Dict[str, Any]:
    return {"amount": parse_number(groups[0]) or DEFAULT_SCROLL_AMOUNT}


def _text(groups: Groups) -> Dict[str, Any]:
    return {"text": (groups[0] or "").strip()}


_FIELD_SUFFIX = re.compile(r"\s+(?:field|box|input)$")


def _optional_text(groups: Groups) -> Dict[str, Any]:
    text = (groups[0] or "").strip()
    return {"text": text} if text else {}


def _field_and_value(groups: Groups) -> Dict[str, Any]:
    field_name = _FIELD_SUFFIX.sub("", (groups[0] or "").strip())
    return {"field": field_name, "value": (groups[1] or "").strip()}


def _tab_index(groups: Groups) -> Dict[str, Any]:
    number = parse_number(groups[0])
    # Spoken tab numbers are 1-based
    return {"index": max(0, (number or 1) - 1)}


def _rule(regex: str, command: str, extract: Extractor = _no_params, *examples: str) -> CommandRule:
    return CommandRule(PatternMatcher.compile(regex), command, extract, tuple(examples))


_SCREEN_READER = r"(?:the )?screen ?reader\b"

DEFAULT_RULES: Tuple[CommandRule, ...] = (
    # Scrolling
    _rule(r"^(?:scroll|go|move) down\b(?: (?:by )?(\d+|" + _NUMBER_ALTERNATION + r"))?", "scroll_down", _amount,
          "scroll down", "scroll down 500", "go down"),
    _rule(r"^(?:scroll|go|move) up\b(?: (?:by )?(\d+|" + _NUMBER_ALTERNATION + r"))?", "scroll_up", _amount,
          "scroll up", "scroll up by 100", "move up"),
    _rule(r"^(?:scroll|go|jump) (?:to )?(?:the )?(?:bottom|end)\b", "scroll_bottom", _no_params,
          "scroll to bottom", "go to the end", "jump to the bottom"),
    _rule(r"^(?:scroll|go|jump) (?:to )?(?:the )?(?:top|start|beginning)\b", "scroll_top", _no_params,
          "scroll to top", "go to the top", "jump to the beginning"),
    # History
    _rule(r"^(?:go )?back\b", "go_back", _no_params, "go back", "back"),
    _rule(r"^(?:go )?forward\b", "go_forward", _no_params, "go forward", "forward"),
    _rule(r"^(?:refresh|reload)\b", "refresh_page", _no_params, "refresh", "reload the page"),
    # Clicking
    _rule(r"^(?:(?:click|press|push|tap) )?(?:on )?(?:the )?button (.+)", "click_button", _text,
          "click the button submit", "press button ok", "button search"),
    _rule(r"^(?:(?:click|follow|open|tap) )?(?:on )?(?:the )?link (.+)", "click_link", _text,
          "click link home", "follow the link about us", "open link contact"),
    _rule(r"^(?:click|press|tap)(?: on)?(?: the)? (.+)", "click", _text,
          "click sign in", "click on the menu", "press continue"),
    # Forms
    _rule(r"^(?:type|enter|input|fill)(?: in)?(?: the)?(?: (?:field|input|form))?"
          r"(?: (?:called|labeled|labelled|named))? (.+?) (?:with|as) (.+)",
          "fill_input", _field_and_value,
          "type email with jane@example.com", "fill in the name field with jane", "enter city as paris"),
    _rule(r"^(?:submit|send)(?: (?:the|this))?(?: form)?$", "submit_form", _no_params,
          "submit", "submit the form", "send form"),
    # Screen reader
    _rule(r"^(?:start|enable|activate|turn on|open) " + _SCREEN_READER, "start_screen_reader", _no_params,
          "start screen reader", "turn on the screen reader", "enable screenreader"),
    _rule(r"^(?:stop|disable|deactivate|turn off|close) " + _SCREEN_READER, "stop_screen_reader", _no_params,
          "stop screen reader", "turn off the screen reader"),
    _rule(r"^toggle " + _SCREEN_READER, "toggle_screen_reader", _no_params, "toggle screen reader"),
    _rule(r"^read(?: the| this)?(?: whole| entire)? (?:page|content|article)\b", "read_page", _no_params,
          "read page", "read the page", "read this article"),
    _rule(r"^(?:read )?next(?: (?:element|item|line|one))?$", "next_element", _no_params,
          "next", "next element", "read next"),
    _rule(r"^(?:read )?previous(?: (?:element|item|line|one))?$", "previous_element", _no_params,
          "previous", "previous element", "read previous item"),
    _rule(r"^(?:(?:stop|pause) (?:reading|speaking|talking)|be quiet|silence)\b", "stop_reading", _no_params,
          "stop reading", "pause speaking", "be quiet"),
    _rule(r"^(?:(?:read|speak|talk) faster|(?:speed up|increase)(?: the)?(?: reading| speech)? (?:speed|rate))\b",
          "read_faster", _no_params, "read faster", "speak faster", "increase reading speed"),
    _rule(r"^(?:(?:read|speak|talk) slower|(?:slow down|decrease)(?: the)?(?: reading| speech)? (?:speed|rate))\b",
          "read_slower", _no_params, "read slower", "decrease the speech rate"),
    _rule(r"^read(?: the)? (?:selection|selected text)$|^read (?:aloud|out loud)$", "read_aloud", _no_params,
          "read selection", "read the selected text", "read aloud"),
    _rule(r"^read(?: this| aloud| out)? (.+)", "read_aloud", _text,
          "read hello world", "read aloud good morning"),
    # Visual assistance
    _rule(r"^(?:toggle |switch |change |turn on |turn off )?(?:to )?(?:the )?(?:high )?contrast\b",
          "toggle_high_contrast", _no_params, "high contrast", "toggle contrast", "turn on high contrast"),
    _rule(r"^(?:(?:increase|enlarge) (?:the )?(?:font|text)(?: size)?|(?:make )?(?:the )?text (?:bigger|larger)"
          r"|bigger (?:font|text)|zoom in)\b",
          "increase_font_size", _no_params, "increase font size", "make text bigger", "zoom in"),
    _rule(r"^(?:(?:decrease|reduce|shrink) (?:the )?(?:font|text)(?: size)?|(?:make )?(?:the )?text smaller"
          r"|smaller (?:font|text)|zoom out)\b",
          "decrease_font_size", _no_params, "decrease font size", "make the text smaller", "zoom out"),
    # Cognitive assistance
    _rule(r"^(?:describe|what is in)(?: the| this)? (?:image|picture|photo)(?: of)?(?: (.+))?$", "describe_image",
          _optional_text, "describe the image", "describe picture lamp", "what is in the photo"),
    _rule(r"^(?:summarize|summarise|give me a summary of)(?: the| this)? page\b", "summarize_page", _no_params,
          "summarize page", "summarize this page"),
    _rule(r"^(?:simplify(?: the| this)?(?: page)?|(?:toggle )?(?:simplified view|reader mode|reading mode)(?: page)?)$",
          "toggle_simplified_view", _no_params, "simplify page", "simplify", "reading mode page"),
    _rule(r"^(?:toggle |switch )?(?:the )?motor (?:mode|assistance)\b", "toggle_motor", _no_params,
          "motor mode", "toggle motor assistance"),
    _rule(r"^(?:toggle |switch )?(?:the )?cognitive (?:mode|assistance)\b", "toggle_cognitive", _no_params,
          "cognitive mode"),
    _rule(r"^(?:toggle |switch )?(?:the )?visual (?:mode|assistance)\b", "toggle_visual", _no_params,
          "visual assistance"),
    _rule(r"^(?:toggle )?keyboard navigation\b", "toggle_keyboard_navigation", _no_params,
          "keyboard navigation"),
    # Tabs
    _rule(r"^(?:open|create|new)(?: a)?(?: new)? tab\b", "new_tab", _no_params, "new tab", "open a new tab"),
    _rule(r"^(?:close|exit)(?: this| the)?(?: current)? tab\b", "close_tab", _no_params,
          "close tab", "close this tab"),
    _rule(r"^(?:switch|go|change)(?: to)? tab (?:number )?(\d+|" + _NUMBER_ALTERNATION + r")\b",
          "switch_tab", _tab_index, "switch to tab 2", "go to tab three", "switch tab first"),
    # Assistant panel
    _rule(r"^(?:open|show)(?: the)? assistant\b", "open_assistant", _no_params, "open assistant"),
    _rule(r"^(?:close|hide)(?: the)? assistant\b", "close_assistant", _no_params, "close the assistant"),
    # Search
    _rule(r"^(?:focus|go to)(?: the)? search(?: box| field| bar)?$", "focus_search", _no_params,
          "focus search", "go to the search box"),
    _rule(r"^(?:search for|look up) (.+)", "search_for", _text, "search for cheap flights", "look up python"),
    # Voice control itself
    _rule(r"^(?:(?:stop|pause) listening|(?:turn off|disable) voice (?:control|commands))\b", "stop_speech",
          _no_params, "stop listening", "turn off voice control"),
    _rule(r"^(?:(?:start|resume) listening|(?:turn on|enable) voice (?:control|commands))\b", "start_speech",
          _no_params, "start listening", "enable voice commands"),
    _rule(r"^(?:(?:show|list)(?: me)?(?: the| all| available)? commands|help|what can (?:i|you) (?:say|do))\b",
          "show_commands", _no_params, "show commands", "help", "what can i say"),
)


class CommandGrammar:
    """
    Resolves normalized utterances to commands.

    Rules are tested in the order they were added; the first match wins.
    ``add_rule`` / ``add_pattern`` append to the end, ``extend`` with
    ``front=True`` places custom rules ahead of the defaults.

    The rule list is copied on write: a match running on the session worker
    keeps the snapshot it started with while another thread adds rules.
    """

    def __init__(self, rules: Optional[Iterable[CommandRule]] = None, prefix: str = "") -> None:
        self._rules: Tuple[CommandRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        self._write_lock = threading.Lock()
        self.prefix = prefix

    @property
    def rules(self) -> Tuple[CommandRule, ...]:
        return self._rules

    @property
    def prefix(self) -> str:
        return self._prefix

    @prefix.setter
    def prefix(self, value: Optional[str]) -> None:
        self._prefix = _WHITESPACE.sub(" ", (value or "").lower()).strip()

    # ------------------------------------------------------------------
    # Customization
    # ------------------------------------------------------------------
    def add_rule(self, rule: CommandRule) -> None:
        self.extend([rule])

    def add_pattern(self, pattern: Union[str, Pattern[str]], command: str, extract: Optional[Extractor] = None) -> None:
        """Register a regex rule; strings are compiled case-insensitively."""
        matcher = PatternMatcher.compile(pattern) if isinstance(pattern, str) else PatternMatcher(pattern)
        self.extend([CommandRule(matcher, command, extract or _no_params)])

    def extend(self, rules: Iterable[CommandRule], *, front: bool = False) -> None:
        added = tuple(rules)
        with self._write_lock:
            self._rules = added + self._rules if front else self._rules + added

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def normalize(self, transcript: str) -> Optional[str]:
        """
        Lower-case and tidy ``transcript``.

        Returns ``None`` when a prefix is configured and the transcript does
        not start with it.
        """
        text = _WHITESPACE.sub(" ", (transcript or "").lower()).strip(_EDGE_PUNCTUATION)
        if self._prefix:
            if not text.startswith(self._prefix):
                return None
            rest = text[len(self._prefix):]
            if rest and rest[0].isalnum():
                # "computerized" does not address "computer"
                return None
            text = rest.strip(_EDGE_PUNCTUATION)
        return text

    def first_match(self, text: str) -> Optional[Tuple[int, CommandRule, Groups]]:
        """Index, rule and groups of the first rule matching normalized ``text``."""
        for index, rule in enumerate(self._rules):
            groups = rule.matcher.match(text)
            if groups is not None:
                return index, rule, groups
        return None

    def match_normalized(self, text: str) -> Optional[ResolvedCommand]:
        hit = self.first_match(text)
        if hit is None:
            return None
        _, rule, groups = hit
        params = rule.extract(groups)
        logger.debug(f"'{text}' -> {rule.command} {params}")
        return ResolvedCommand(rule.command, params)

    def match(self, transcript: str) -> Optional[ResolvedCommand]:
        """Normalize ``transcript`` and resolve it, or ``None``."""
        text = self.normalize(transcript)
        if not text:
            return None
        return self.match_normalized(text)

    def examples(self) -> List[Tuple[str, str]]:
        """``(example, command)`` pairs for help output."""
        return [(example, rule.command) for rule in self._rules for example in rule.examples]
