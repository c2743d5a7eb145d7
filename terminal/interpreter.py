"""Shell command interpreter.

An ``Interpreter`` is one independent shell session over a shared
``VirtualFileSystem``: its own working directory, history ring, scrollback
and shell flavour. ``execute`` parses a line, dispatches it through the
built-in command table and records the result. The AI and git built-ins
finish on a per-interpreter worker pool and append their result to the
same scrollback entry later.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional
from uuid import uuid4

from terminal.commands import COMMAND_DESCRIPTIONS, COMMAND_HANDLERS, BuiltinCommand, CommandContext
from terminal.history import CommandHistory
from terminal.models import CommandResult, ScrollbackEntry, Suggestion
from workspace.git import GitCollaborator
from workspace.settings import SHELL_TYPES, WorkspaceSettings
from workspace.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

PROMPTS = {"henu": "›", "bash": "$", "zsh": "%", "powershell": "PS>", "cmd": ">"}


class Interpreter:
    """One shell session.

    Args:
        vfs: Shared virtual file system.
        settings: Workspace settings (defaults to ``vfs.settings``).
        git: Git collaborator used by the ``git`` built-in.
        name: Display name.
        shell: Shell flavour (defaults to ``settings.default_shell``).
        terminal_id: Identifier (generated when omitted).
        cwd: Initial working directory (defaults to the home directory).

    Raises:
        ValueError: If ``shell`` is not a known shell flavour.
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        settings: Optional[WorkspaceSettings] = None,
        git: Optional[GitCollaborator] = None,
        name: str = "Terminal 1",
        shell: Optional[str] = None,
        terminal_id: Optional[str] = None,
        cwd: Optional[str] = None,
    ):
        self.vfs = vfs
        self.settings = settings or vfs.settings
        self.git = git
        self.id = terminal_id or str(uuid4())
        self.name = name
        self.shell = shell or self.settings.default_shell
        if self.shell not in SHELL_TYPES:
            raise ValueError(f"Unknown shell '{self.shell}'. Available: {', '.join(SHELL_TYPES)}")
        self.cwd = cwd or self.settings.home
        self.history = CommandHistory(limit=self.settings.history_limit)
        self.scrollback: list[ScrollbackEntry] = []

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=2, thread_name_prefix=f"terminal-{self.id[:8]}"
        )
        self._pending: dict[str, Future] = {}
        self._closed = False
        self._ensure_cwd()

    @property
    def prompt(self) -> str:
        home = self.settings.home
        location = self.cwd
        if location == home or location.startswith(home + "/"):
            location = "~" + location[len(home):]
        return f"{self.settings.username}@workspace:{location} {PROMPTS[self.shell]}"

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    # ===== Execution =====

    def execute(self, line: str) -> CommandResult:
        """Parse, dispatch and record one input line.

        Args:
            line: Raw input. Split on whitespace; no quoting or redirection.

        Returns:
            The synchronous result. ``pending`` is True when a second block
            will be appended to the entry ``entry_id`` later.

        Raises:
            RuntimeError: If the interpreter has been shut down.
        """
        if self._closed:
            raise RuntimeError(f"Terminal {self.id} is shut down")

        self.history.record(line)
        tokens = line.split()
        if not tokens:
            return CommandResult()

        self._ensure_cwd()
        token, args = tokens[0], tokens[1:]
        try:
            command = BuiltinCommand(token.lower())
        except ValueError:
            logger.debug(f"[{self.name}] command not found: {token}")
            result = CommandResult(
                output=f"{token}: command not found\nType 'help' for available commands",
                is_error=True,
            )
            entry = self._record(line, result)
            return result.model_copy(update={"entry_id": entry.entry_id})

        logger.debug(f"[{self.name}] dispatching {command.value} {args}")
        context = CommandContext(
            vfs=self.vfs,
            settings=self.settings,
            history=self.history,
            cwd=self.cwd,
            shell=self.shell,
            git=self.git,
            stop_event=self._stop_event,
        )
        try:
            result = COMMAND_HANDLERS[command](context, args)
        except Exception as e:
            logger.error(f"[{self.name}] {command.value} raised: {e}", exc_info=True)
            result = CommandResult(output=f"{command.value}: internal error: {e}", is_error=True)

        self.cwd = context.cwd
        self.shell = context.shell
        if context.clear_requested:
            self.clear()
            return CommandResult()

        pending = context.deferred is not None
        entry = self._record(line, result, pending=pending)
        if pending:
            self._submit(entry.entry_id, context.deferred)
        return result.model_copy(update={"entry_id": entry.entry_id, "pending": pending})

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """Block until asynchronous built-ins finish.

        Returns:
            True if nothing is left pending.
        """
        with self._lock:
            futures = list(self._pending.values())
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        return not not_done

    # ===== Scrollback =====

    def get_scrollback(self) -> list[ScrollbackEntry]:
        with self._lock:
            return [entry.model_copy() for entry in self.scrollback]

    def get_entry(self, entry_id: str) -> Optional[ScrollbackEntry]:
        with self._lock:
            entry = self._find_entry(entry_id)
            return entry.model_copy() if entry else None

    def clear(self) -> None:
        """Empty the scrollback. Pending entries are dropped with it."""
        with self._lock:
            self.scrollback.clear()

    # ===== History & completion =====

    def history_previous(self) -> Optional[str]:
        return self.history.previous()

    def history_next(self) -> Optional[str]:
        return self.history.next()

    def complete(self, text: str) -> list[Suggestion]:
        """Suggest built-ins whose name starts with the first token of ``text``.

        No suggestions are offered once arguments are being typed.
        """
        if text.strip() and (len(text.split()) > 1 or text.endswith(" ")):
            return []
        prefix = text.strip().lower()
        return [
            Suggestion(command=command.value, description=COMMAND_DESCRIPTIONS[command])
            for command in BuiltinCommand
            if command.value.startswith(prefix)
        ]

    @staticmethod
    def accept_suggestion(command: str) -> str:
        """Input line after accepting ``command``: the command and a space."""
        return f"{command} "

    # ===== Lifecycle =====

    def shutdown(self) -> None:
        """Cancel pending built-ins and stop the worker pool."""
        if self._closed:
            return
        self._closed = True
        self._stop_event.set()
        self._executor.shutdown(wait=True)
        logger.debug(f"Terminal {self.name} shut down")

    # ===== Internal helpers =====

    def _record(self, line: str, result: CommandResult, pending: bool = False) -> ScrollbackEntry:
        entry = ScrollbackEntry(
            command=line,
            output=result.output,
            is_error=result.is_error,
            pending=pending,
        )
        with self._lock:
            self.scrollback.append(entry)
        return entry

    def _find_entry(self, entry_id: str) -> Optional[ScrollbackEntry]:
        for entry in self.scrollback:
            if entry.entry_id == entry_id:
                return entry
        return None

    def _submit(self, entry_id: str, job: Callable[[], CommandResult]) -> None:
        with self._lock:
            self._pending[entry_id] = self._executor.submit(self._complete, entry_id, job)

    def _complete(self, entry_id: str, job: Callable[[], CommandResult]) -> None:
        try:
            outcome = job()
        except Exception as e:
            logger.error(f"[{self.name}] asynchronous command failed: {e}", exc_info=True)
            outcome = CommandResult(output=f"Error: {e}", is_error=True)
        with self._lock:
            entry = self._find_entry(entry_id)
            if entry is not None:
                entry.append(outcome.output, outcome.is_error)
            self._pending.pop(entry_id, None)

    def _ensure_cwd(self) -> None:
        """Fall back to the nearest existing ancestor if the cwd vanished."""
        node = self.vfs.resolve_path(self.cwd)
        if node is not None and node.is_directory:
            self.cwd = self.vfs.path_of(node.id)
            return
        parts = [p for p in self.cwd.split("/") if p]
        while parts:
            parts.pop()
            candidate = "/" + "/".join(parts)
            node = self.vfs.resolve_path(candidate)
            if node is not None and node.is_directory:
                self.cwd = candidate
                return
        self.cwd = "/"
