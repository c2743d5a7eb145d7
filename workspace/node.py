"""File system node model."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


ROOT_ID = "root"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class NodeKind(str, Enum):
    """Kind of entry stored in the virtual tree."""

    FILE = "file"
    DIRECTORY = "directory"


class FileNode(BaseModel):
    """One file or directory entry in the virtual tree.

    Nodes live in an arena keyed by ``id``; structure is expressed through
    ``parent_id`` and the ordered ``children`` id list, never through object
    references. The tree owner hands out deep copies, so a ``FileNode`` held
    outside the VFS is a snapshot and mutating it has no effect on the tree.

    Args:
        id: Opaque, globally unique identifier. Never changes for the life of the node.
        name: Single path segment.
        kind: File or directory.
        content: UTF-8 text content (files only).
        size: Size in bytes of the encoded content (0 for directories).
        modified_at: When the node was last modified.
        parent_id: Id of the containing directory (None only for the root).
        children: Ordered ids of child nodes (always empty for files).
        tags: Free-form labels.
        favorite: Whether the node is marked as a favorite.
        pinned: Whether the node is pinned in the explorer.
        locked: Whether the node is marked read-only by the user.
        description: Optional human description.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Opaque, globally unique identifier",
    )
    name: str = Field(description="Single path segment")
    kind: NodeKind = Field(description="File or directory")
    content: str = Field(default="", description="UTF-8 text content (files only)")
    size: int = Field(default=0, ge=0, description="Size in bytes of the content")
    modified_at: datetime = Field(
        default_factory=utc_now, description="When the node was last modified"
    )
    parent_id: Optional[str] = Field(
        default=None, description="Id of the containing directory"
    )
    children: list[str] = Field(
        default_factory=list, description="Ordered ids of child nodes"
    )
    tags: list[str] = Field(default_factory=list, description="Free-form labels")
    favorite: bool = Field(default=False, description="Marked as favorite")
    pinned: bool = Field(default=False, description="Pinned in the explorer")
    locked: bool = Field(default=False, description="Marked read-only by the user")
    description: Optional[str] = Field(default=None, description="Human description")

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == NodeKind.DIRECTORY

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")

    def set_content(self, content: str, when: Optional[datetime] = None) -> None:
        """Replace file content and recompute derived fields.

        Args:
            content: New UTF-8 text content.
            when: Modification time to record (defaults to now).
        """
        self.content = content
        self.size = len(content.encode("utf-8"))
        self.modified_at = when or utc_now()

    def to_dict(self) -> dict[str, Any]:
        """Convert this node to a flat, JSON-friendly dictionary.

        Content is omitted; use the content endpoint to fetch it.

        Returns:
            Dictionary representation of this node.
        """
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "size": self.size,
            "modified_at": self.modified_at.isoformat(),
            "parent_id": self.parent_id,
            "children": list(self.children),
            "tags": list(self.tags),
            "favorite": self.favorite,
            "pinned": self.pinned,
            "locked": self.locked,
            "description": self.description,
        }


class NodeUpdate(BaseModel):
    """Partial update applied to a node by ``VirtualFileSystem.update``.

    Only fields that are set (not None) are applied.

    Args:
        name: New name (a rename, subject to sibling collision checks).
        tags: Replacement tag list.
        favorite: New favorite flag.
        pinned: New pinned flag.
        locked: New locked flag.
        description: New description.
    """

    name: Optional[str] = None
    tags: Optional[list[str]] = None
    favorite: Optional[bool] = None
    pinned: Optional[bool] = None
    locked: Optional[bool] = None
    description: Optional[str] = None

    def metadata_changes(self) -> dict[str, Any]:
        """Return the non-structural fields that were set."""
        return {
            key: value
            for key, value in self.model_dump(exclude={"name"}).items()
            if value is not None
        }
