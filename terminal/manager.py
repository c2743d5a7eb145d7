"""Terminal manager.

The ``TerminalManager`` owns every interpreter instance sharing one VFS,
tracks which one is active and which one (if any) is shown beside it in a
split view, routes input lines, and persists sessions to a JSON file.
"""

import logging
import re
import threading
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from terminal.interpreter import Interpreter
from terminal.models import CommandResult, ScrollbackEntry
from workspace.git import GitCollaborator
from workspace.settings import WorkspaceSettings
from workspace.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

PERSISTED_HISTORY = 100


class TerminalNotFoundError(Exception):
    """Raised when a terminal id does not name a live instance."""

    def __init__(self, terminal_id: str):
        self.terminal_id = terminal_id
        super().__init__(f"Terminal not found: {terminal_id}")


class SplitMode(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class TerminalState(BaseModel):
    """Persisted form of one interpreter."""

    id: str
    name: str
    shell: str
    cwd: str
    history: list[str] = Field(default_factory=list)
    scrollback: list[ScrollbackEntry] = Field(default_factory=list)


class TerminalSessionState(BaseModel):
    """Persisted form of the whole manager."""

    terminals: list[TerminalState] = Field(default_factory=list)
    active_id: Optional[str] = None
    split_mode: Optional[SplitMode] = None
    split_id: Optional[str] = None


class TerminalManager:
    """Owner of every interpreter instance.

    There is always at least one instance. All instances share the VFS (and
    its operation lock) and the git collaborator.

    Args:
        vfs: Shared virtual file system.
        settings: Workspace settings (defaults to ``vfs.settings``).
        git: Git collaborator handed to every interpreter.
        store_path: JSON file for persistence (defaults to ``settings.terminal_store_path``).
        restore: Whether to restore sessions from ``store_path`` at start-up.
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        settings: Optional[WorkspaceSettings] = None,
        git: Optional[GitCollaborator] = None,
        store_path: Optional[Union[str, Path]] = None,
        restore: bool = True,
    ):
        self.vfs = vfs
        self.settings = settings or vfs.settings
        self.git = git
        path = store_path or self.settings.terminal_store_path
        self.store_path = Path(path) if path else None

        self._lock = threading.RLock()
        self._terminals: dict[str, Interpreter] = {}
        self._counter = 0
        self.active_id: Optional[str] = None
        self.split_mode: Optional[SplitMode] = None
        self.split_id: Optional[str] = None

        if not (restore and self._load()):
            self.create_terminal()

    # ===== Instances =====

    @property
    def active(self) -> Interpreter:
        with self._lock:
            return self._terminals[self.active_id]

    def list_terminals(self) -> list[Interpreter]:
        with self._lock:
            return list(self._terminals.values())

    def get(self, terminal_id: str) -> Interpreter:
        """Return the interpreter with ``terminal_id``.

        Raises:
            TerminalNotFoundError: If no such instance exists.
        """
        with self._lock:
            interpreter = self._terminals.get(terminal_id)
            if interpreter is None:
                raise TerminalNotFoundError(terminal_id)
            return interpreter

    def create_terminal(self, shell: Optional[str] = None, activate: bool = True) -> Interpreter:
        """Create a new instance named ``Terminal N``.

        Raises:
            ValueError: If ``shell`` is not a known shell flavour.
        """
        with self._lock:
            interpreter = Interpreter(
                self.vfs,
                settings=self.settings,
                git=self.git,
                name=f"Terminal {self._counter + 1}",
                shell=shell,
            )
            self._counter += 1
            self._terminals[interpreter.id] = interpreter
            if activate or self.active_id is None:
                self.active_id = interpreter.id
            logger.info(f"Created {interpreter.name} ({interpreter.shell})")
            return interpreter

    def close_terminal(self, terminal_id: str) -> bool:
        """Close an instance.

        The last remaining instance is never closed. When the active instance
        closes, the first remaining one becomes active; closing the split
        partner (or promoting it to active) turns the split off.

        Returns:
            False if ``terminal_id`` is the only instance.

        Raises:
            TerminalNotFoundError: If no such instance exists.
        """
        with self._lock:
            interpreter = self.get(terminal_id)
            if len(self._terminals) == 1:
                return False

            del self._terminals[terminal_id]
            interpreter.shutdown()
            if self.active_id == terminal_id:
                self.active_id = next(iter(self._terminals))
            if self.split_id in (terminal_id, self.active_id):
                self.split_id = None
                self.split_mode = None
            logger.info(f"Closed {interpreter.name}")
            return True

    def activate(self, terminal_id: str) -> Interpreter:
        """Make an instance active. Activating the split partner swaps the panes."""
        with self._lock:
            interpreter = self.get(terminal_id)
            if self.split_id == terminal_id:
                self.split_id = self.active_id
            self.active_id = terminal_id
            return interpreter

    def toggle_split(self, mode: Union[SplitMode, str]) -> Optional[Interpreter]:
        """Show a second instance beside the active one.

        Requesting the current mode again turns the split off. The partner is
        an existing inactive instance, or a new one when there is none.

        Returns:
            The partner instance, or None when the split was turned off.
        """
        with self._lock:
            mode = SplitMode(mode)
            if self.split_mode == mode:
                self.split_mode = None
                self.split_id = None
                return None

            self.split_mode = mode
            if self.split_id not in self._terminals or self.split_id == self.active_id:
                others = [i for i in self._terminals if i != self.active_id]
                if others:
                    self.split_id = others[0]
                else:
                    self.split_id = self.create_terminal(activate=False).id
            return self._terminals[self.split_id]

    def visible_terminals(self) -> list[Interpreter]:
        with self._lock:
            visible = [self._terminals[self.active_id]]
            if self.split_mode is not None and self.split_id in self._terminals:
                visible.append(self._terminals[self.split_id])
            return visible

    # ===== Input =====

    def execute(self, line: str, terminal_id: Optional[str] = None) -> CommandResult:
        """Route ``line`` to an instance (the active one by default)."""
        interpreter = self.get(terminal_id) if terminal_id else self.active
        return interpreter.execute(line)

    def clear(self, terminal_id: Optional[str] = None) -> None:
        interpreter = self.get(terminal_id) if terminal_id else self.active
        interpreter.clear()

    # ===== Persistence =====

    def snapshot(self) -> TerminalSessionState:
        with self._lock:
            return TerminalSessionState(
                terminals=[
                    TerminalState(
                        id=interpreter.id,
                        name=interpreter.name,
                        shell=interpreter.shell,
                        cwd=interpreter.cwd,
                        history=interpreter.history.tail(PERSISTED_HISTORY),
                        scrollback=interpreter.get_scrollback(),
                    )
                    for interpreter in self._terminals.values()
                ],
                active_id=self.active_id,
                split_mode=self.split_mode,
                split_id=self.split_id,
            )

    def save(self) -> Path:
        """Write every instance to the store file.

        Returns:
            The path written.

        Raises:
            RuntimeError: If no store path is configured.
        """
        if self.store_path is None:
            raise RuntimeError("Terminal persistence is not configured")
        state = self.snapshot()
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        self.store_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Saved {len(state.terminals)} terminal(s) to {self.store_path}")
        return self.store_path

    def shutdown(self, save: bool = True) -> None:
        """Persist (when configured) and stop every instance."""
        with self._lock:
            if save and self.store_path is not None:
                self.save()
            for interpreter in self._terminals.values():
                interpreter.shutdown()

    def _load(self) -> bool:
        if self.store_path is None or not self.store_path.exists():
            return False
        try:
            state = TerminalSessionState.model_validate_json(
                self.store_path.read_text(encoding="utf-8")
            )
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable terminal store {self.store_path}: {e}")
            return False
        if not state.terminals:
            return False

        for saved in state.terminals:
            try:
                interpreter = Interpreter(
                    self.vfs,
                    settings=self.settings,
                    git=self.git,
                    name=saved.name,
                    shell=saved.shell,
                    terminal_id=saved.id,
                    cwd=saved.cwd,
                )
            except ValueError as e:
                logger.warning(f"Skipping saved terminal {saved.name}: {e}")
                continue
            interpreter.history.entries = saved.history[-self.settings.history_limit:]
            interpreter.scrollback = [
                entry.model_copy(update={"pending": False}) for entry in saved.scrollback
            ]
            self._terminals[interpreter.id] = interpreter

        if not self._terminals:
            return False
        numbers = []
        for interpreter in self._terminals.values():
            match = re.fullmatch(r"Terminal (\d+)", interpreter.name)
            if match:
                numbers.append(int(match.group(1)))
        self._counter = max(numbers, default=len(self._terminals))
        if state.active_id in self._terminals:
            self.active_id = state.active_id
        else:
            self.active_id = next(iter(self._terminals))
        if state.split_id in self._terminals and state.split_id != self.active_id:
            self.split_mode = state.split_mode
            self.split_id = state.split_id if state.split_mode else None
        logger.info(f"Restored {len(self._terminals)} terminal(s) from {self.store_path}")
        return True
