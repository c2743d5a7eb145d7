"""Bounded command history ring with up/down navigation."""

from typing import Optional

from pydantic import BaseModel, Field, PrivateAttr


class CommandHistory(BaseModel):
    """Per-terminal command history.

    Navigation keeps a cursor into ``entries`` without mutating them.
    Recording a line (executing a command) resets the cursor.

    Args:
        limit: Maximum number of lines kept; the oldest are dropped first.
        entries: Recorded lines, oldest first.
    """

    limit: int = Field(default=100, ge=1, description="Maximum lines kept")
    entries: list[str] = Field(default_factory=list, description="Recorded lines")

    _cursor: Optional[int] = PrivateAttr(default=None)

    def record(self, line: str) -> bool:
        """Append ``line`` unless it is blank or repeats the last entry.

        Returns:
            True if the line was appended.
        """
        self._cursor = None
        line = line.strip()
        if not line or (self.entries and self.entries[-1] == line):
            return False
        self.entries.append(line)
        if len(self.entries) > self.limit:
            del self.entries[: len(self.entries) - self.limit]
        return True

    def previous(self) -> Optional[str]:
        """Step back one entry (the up arrow).

        Returns:
            The entry under the cursor, or None when history is empty.
        """
        if not self.entries:
            return None
        if self._cursor is None:
            self._cursor = len(self.entries) - 1
        else:
            self._cursor = max(0, self._cursor - 1)
        return self.entries[self._cursor]

    def next(self) -> Optional[str]:
        """Step forward one entry (the down arrow).

        Returns:
            The entry under the cursor, an empty string when stepping past
            the newest entry, or None when not navigating.
        """
        if self._cursor is None:
            return None
        if self._cursor < len(self.entries) - 1:
            self._cursor += 1
            return self.entries[self._cursor]
        self._cursor = None
        return ""

    def reset_cursor(self) -> None:
        self._cursor = None

    def numbered(self) -> list[tuple[int, str]]:
        """Entries with 1-based indices, oldest first."""
        return list(enumerate(self.entries, start=1))

    def tail(self, count: int) -> list[str]:
        return self.entries[-count:] if count > 0 else []
