"""Error taxonomy and operation results for the virtual file system.

VFS operations never raise domain errors across their public boundary.
Internally, helpers raise ``VFSOperationError``; each public operation
catches it and returns an ``OperationResult`` whose ``error`` field carries
the kind and a human-readable message.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from workspace.node import FileNode


class ErrorKind(str, Enum):
    """Every failure the core can report."""

    NOT_FOUND = "not_found"
    NO_SUCH_PARENT = "no_such_parent"
    ALREADY_EXISTS = "already_exists"
    NOT_EMPTY = "not_empty"
    NOT_A_DIRECTORY = "not_a_directory"
    IS_A_DIRECTORY = "is_a_directory"
    INVALID_MOVE = "invalid_move"
    INVALID_NAME = "invalid_name"
    INVALID_OPERATION = "invalid_operation"
    COMMAND_NOT_FOUND = "command_not_found"
    BRIDGE_UNAVAILABLE = "bridge_unavailable"
    BRIDGE_FAILURE = "bridge_failure"
    TIMEOUT = "timeout"
    COLLABORATOR_FAILURE = "collaborator_failure"


class VFSError(BaseModel):
    """A failed operation, as a value.

    Args:
        kind: Which failure occurred.
        message: Human-readable description suitable for rendering as-is.
    """

    kind: ErrorKind = Field(description="Which failure occurred")
    message: str = Field(description="Human-readable description")

    def __str__(self) -> str:
        return self.message


class OperationResult(BaseModel):
    """Outcome of a mutating VFS operation.

    Args:
        ok: Whether the operation succeeded.
        node: Snapshot of the affected node after the operation (None on failure or delete).
        error: The failure, when ``ok`` is False.
    """

    ok: bool
    node: Optional[FileNode] = None
    error: Optional[VFSError] = None

    @classmethod
    def success(cls, node: Optional[FileNode] = None) -> "OperationResult":
        return cls(ok=True, node=node)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "OperationResult":
        return cls(ok=False, error=VFSError(kind=kind, message=message))

    @property
    def message(self) -> str:
        return self.error.message if self.error else ""


class VFSOperationError(Exception):
    """Raised inside the VFS (and by the API adapter) for a failed operation.

    Args:
        kind: Which failure occurred.
        message: Human-readable description.
    """

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    def to_error(self) -> VFSError:
        return VFSError(kind=self.kind, message=self.message)

    def to_result(self) -> OperationResult:
        return OperationResult(ok=False, error=self.to_error())
