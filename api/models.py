"""Shared request and response models for API endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from terminal.interpreter import Interpreter
from terminal.models import ScrollbackEntry
from workspace.node import FileNode, NodeKind
from workspace.vfs import VirtualFileSystem


class NodeResponse(BaseModel):
    """A node as returned by the API (without content).

    Attributes:
        id: Stable node id.
        name: Node name.
        kind: File or directory.
        path: Absolute path at the time of the request.
        size: Content size in bytes.
        modified_at: Last modification time.
        parent_id: Containing directory id.
        children: Ordered child ids.
        tags: Free-form labels.
        favorite: Favorite flag.
        pinned: Pinned flag.
        locked: Locked flag.
        description: Optional description.
    """

    id: str
    name: str
    kind: NodeKind
    path: str
    size: int
    modified_at: datetime
    parent_id: Optional[str] = None
    children: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    favorite: bool = False
    pinned: bool = False
    locked: bool = False
    description: Optional[str] = None

    @classmethod
    def from_node(cls, vfs: VirtualFileSystem, node: FileNode) -> "NodeResponse":
        data = node.model_dump(exclude={"content"})
        return cls(path=vfs.path_of(node.id) or "", **data)


class NodeContentResponse(NodeResponse):
    """A node including its content."""

    content: str = ""

    @classmethod
    def from_node(cls, vfs: VirtualFileSystem, node: FileNode) -> "NodeContentResponse":
        return cls(path=vfs.path_of(node.id) or "", **node.model_dump())


class StatusResponse(BaseModel):
    """Generic acknowledgement.

    Attributes:
        status: Short machine-readable status.
        message: Human-readable description.
    """

    status: str
    message: str


class TerminalSummary(BaseModel):
    """One terminal instance as listed by the API."""

    id: str
    name: str
    shell: str
    cwd: str
    prompt: str
    active: bool = False
    visible: bool = False
    pending: bool = False
    entry_count: int = 0

    @classmethod
    def from_interpreter(
        cls, interpreter: Interpreter, active: bool = False, visible: bool = False
    ) -> "TerminalSummary":
        return cls(
            id=interpreter.id,
            name=interpreter.name,
            shell=interpreter.shell,
            cwd=interpreter.cwd,
            prompt=interpreter.prompt,
            active=active,
            visible=visible,
            pending=interpreter.has_pending,
            entry_count=len(interpreter.get_scrollback()),
        )


class ScrollbackResponse(BaseModel):
    terminal_id: str
    entries: list[ScrollbackEntry]
