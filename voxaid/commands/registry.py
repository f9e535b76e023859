"""
Command registry: command name -> action.

Handlers take the parameter dict produced by the grammar (or by a remote
interpreter) and return an optional spoken/displayed response.  Handlers
signal failure by raising; :class:`~voxaid.errors.CommandError` subclasses
carry a user-facing message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors import UnknownCommandError
from ..utils.logging_system import setup_log_system

logger = setup_log_system("command_registry")

CommandHandler = Callable[[Dict[str, Any]], Optional[str]]


@dataclass
class Command:
    """A named action."""

    name: str
    handler: CommandHandler
    description: str = ""


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: Dict[str, Command] = {}

    def register(self, name: str, handler: CommandHandler, description: str = "") -> None:
        if name in self._commands:
            logger.debug(f"Replacing handler for command '{name}'.")
        self._commands[name] = Command(name, handler, description)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return sorted(self._commands)

    def execute(self, name: str, params: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """Run ``name``.  Raises :class:`UnknownCommandError` for unknown names."""
        command = self._commands.get(name)
        if command is None:
            raise UnknownCommandError(name)
        logger.info(f"Executing command: {name} {dict(params or {})}")
        return command.handler(dict(params or {}))
