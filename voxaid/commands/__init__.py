"""Command grammar and registry for VoxAid.

``CommandGrammar`` turns a normalized utterance into a ``ResolvedCommand``
using an ordered rule list; ``CommandRegistry`` maps command names to the
actions that carry them out.  The default page, reader and tab actions are
registered by :mod:`voxaid.commands.actions`.
"""

from .grammar import CommandGrammar, CommandRule, PatternMatcher, PhraseMatcher, ResolvedCommand  # noqa: F401
from .registry import CommandRegistry  # noqa: F401

__all__ = [
    "CommandGrammar",
    "CommandRegistry",
    "CommandRule",
    "PatternMatcher",
    "PhraseMatcher",
    "ResolvedCommand",
]
