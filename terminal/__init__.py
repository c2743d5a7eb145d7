"""Terminal package.

This package contains the shell command interpreter (command table,
history ring, scrollback) and the terminal manager that owns several
interpreter instances over one shared virtual file system.
"""

from terminal.models import CommandResult, ScrollbackEntry, Suggestion
from terminal.history import CommandHistory
from terminal.commands import BuiltinCommand, CommandContext
from terminal.interpreter import Interpreter
from terminal.manager import SplitMode, TerminalManager, TerminalNotFoundError

__all__ = [
    "CommandResult",
    "ScrollbackEntry",
    "Suggestion",
    "CommandHistory",
    "BuiltinCommand",
    "CommandContext",
    "Interpreter",
    "SplitMode",
    "TerminalManager",
    "TerminalNotFoundError",
]
