"""Value types exchanged between the interpreter and its callers."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from workspace.node import utc_now


class CommandResult(BaseModel):
    """Outcome of executing one line.

    Args:
        output: Text block to render (may be empty).
        is_error: Whether the block should be rendered as an error.
        entry_id: Scrollback entry the output belongs to (None when nothing was recorded).
        pending: Whether a second block will be appended to the entry later.
    """

    output: str = ""
    is_error: bool = False
    entry_id: Optional[str] = None
    pending: bool = False


class ScrollbackEntry(BaseModel):
    """One executed command and its rendered output.

    Asynchronous built-ins create the entry pending and append their final
    block to ``output`` when they complete.
    """

    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    command: str
    output: str = ""
    is_error: bool = False
    timestamp: datetime = Field(default_factory=utc_now)
    pending: bool = False

    def append(self, block: str, is_error: bool = False) -> None:
        """Append a later output block and mark the entry complete."""
        if block:
            self.output = f"{self.output}{block}" if self.output else block
        self.is_error = self.is_error or is_error
        self.pending = False


class Suggestion(BaseModel):
    """A completion candidate for the first token of the input line."""

    command: str
    description: str
