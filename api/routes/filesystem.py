"""Virtual file system endpoints.

These endpoints expose the VFS tree to the editor front end: browsing,
CRUD on nodes, content edits, moves and copies, and binding the workspace
to a real directory. Every mutation goes through a VFS operation; failed
operations are raised as VFSOperationError and mapped to an HTTP status.
"""

from typing import Any, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, model_validator

from api.dependencies import WorkspaceDep
from api.exceptions import raise_for_result
from api.models import NodeContentResponse, NodeResponse, StatusResponse
from workspace.errors import ErrorKind, VFSOperationError
from workspace.node import FileNode, NodeKind, NodeUpdate
from workspace.vfs import VirtualFileSystem

# Create router for file system endpoints
router = APIRouter(
    prefix="/fs",
    tags=["filesystem"],
)


# Request/Response Models


class CreateNodeRequest(BaseModel):
    """Request model for creating a node.

    Exactly one of ``parent_id`` and ``parent_path`` is required.

    Attributes:
        kind: File or directory.
        name: Name of the new node.
        parent_id: Id of the containing directory.
        parent_path: Path of the containing directory.
        content: Initial content (files only).
    """

    kind: NodeKind
    name: str = Field(min_length=1)
    parent_id: Optional[str] = None
    parent_path: Optional[str] = None
    content: str = ""

    @model_validator(mode="after")
    def validate_parent(self) -> "CreateNodeRequest":
        if (self.parent_id is None) == (self.parent_path is None):
            raise ValueError("Provide exactly one of parent_id or parent_path")
        return self


class ContentRequest(BaseModel):
    content: str


class RelocateRequest(BaseModel):
    """Request model for move and copy.

    Attributes:
        parent_id: Destination directory id.
        name: Optional new name.
    """

    parent_id: str
    name: Optional[str] = None


class BindRequest(BaseModel):
    root_path: str = Field(min_length=1)


class ValidationResponse(BaseModel):
    valid: bool
    errors: list[str]


# Helpers


def _require_node(vfs: VirtualFileSystem, node_id: str) -> FileNode:
    node = vfs.get_node(node_id)
    if node is None:
        raise VFSOperationError(ErrorKind.NOT_FOUND, f"No such node: {node_id}")
    return node


def _require_path(vfs: VirtualFileSystem, path: str, cwd: str = "/") -> FileNode:
    node = vfs.resolve_path(path, cwd)
    if node is None:
        raise VFSOperationError(ErrorKind.NOT_FOUND, f"{path}: No such file or directory")
    return node


# Route Handlers


@router.get("/tree")
async def get_tree(vfs: WorkspaceDep) -> dict[str, Any]:
    """Get the whole tree as nested entries (content omitted)."""
    return vfs.get_snapshot()


@router.get("/resolve", response_model=NodeResponse)
async def resolve_path(vfs: WorkspaceDep, path: str, cwd: str = "/"):
    """Resolve a path (absolute, relative to ``cwd``, or ``~``-based) to a node."""
    return NodeResponse.from_node(vfs, _require_path(vfs, path, cwd))


@router.get("/children", response_model=list[NodeResponse])
async def list_children(vfs: WorkspaceDep, path: str = "/", cwd: str = "/"):
    """List the children of a directory in order.

    Raises:
        VFSOperationError: If the path is missing or names a file.
    """
    node = _require_path(vfs, path, cwd)
    if not node.is_directory:
        raise VFSOperationError(ErrorKind.NOT_A_DIRECTORY, f"{path}: Not a directory")
    return [NodeResponse.from_node(vfs, child) for child in vfs.children_of(node.id)]


@router.get("/nodes/{node_id}", response_model=NodeContentResponse)
async def get_node(node_id: str, vfs: WorkspaceDep):
    """Get one node, including its content."""
    return NodeContentResponse.from_node(vfs, _require_node(vfs, node_id))


@router.post("/nodes", response_model=NodeResponse, status_code=status.HTTP_201_CREATED)
async def create_node(request: CreateNodeRequest, vfs: WorkspaceDep):
    """Create a file or directory.

    Args:
        request: What to create and where.
        vfs: The VirtualFileSystem instance (injected by FastAPI).

    Returns:
        The created node.

    Raises:
        VFSOperationError: On a name collision, a missing parent, or a disk failure.
    """
    parent_id = request.parent_id
    if parent_id is None:
        parent_id = _require_path(vfs, request.parent_path).id
    result = raise_for_result(
        vfs.create(request.kind, request.name, parent_id, content=request.content)
    )
    return NodeResponse.from_node(vfs, result.node)


@router.patch("/nodes/{node_id}", response_model=NodeResponse)
async def update_node(node_id: str, request: NodeUpdate, vfs: WorkspaceDep):
    """Rename a node and/or change its metadata."""
    result = raise_for_result(vfs.update(node_id, request))
    return NodeResponse.from_node(vfs, result.node)


@router.put("/nodes/{node_id}/content", response_model=NodeResponse)
async def set_content(node_id: str, request: ContentRequest, vfs: WorkspaceDep):
    """Replace a file's content."""
    result = raise_for_result(vfs.set_content(node_id, request.content))
    return NodeResponse.from_node(vfs, result.node)


@router.post("/nodes/{node_id}/move", response_model=NodeResponse)
async def move_node(node_id: str, request: RelocateRequest, vfs: WorkspaceDep):
    """Move a node under another directory, optionally renaming it."""
    result = raise_for_result(vfs.move(node_id, request.parent_id, request.name))
    return NodeResponse.from_node(vfs, result.node)


@router.post(
    "/nodes/{node_id}/copy", response_model=NodeResponse, status_code=status.HTTP_201_CREATED
)
async def copy_node(node_id: str, request: RelocateRequest, vfs: WorkspaceDep):
    """Deep-copy a node under another directory."""
    result = raise_for_result(vfs.copy(node_id, request.parent_id, request.name))
    return NodeResponse.from_node(vfs, result.node)


@router.delete("/nodes/{node_id}", response_model=StatusResponse)
async def delete_node(node_id: str, vfs: WorkspaceDep, recursive: bool = False):
    """Delete a node and its descendants.

    Args:
        node_id: Id of the node to delete.
        vfs: The VirtualFileSystem instance (injected by FastAPI).
        recursive: Required for non-empty directories.
    """
    path = vfs.path_of(node_id)
    raise_for_result(vfs.delete(node_id, recursive=recursive))
    return StatusResponse(status="deleted", message=f"Deleted {path}")


@router.post("/bind", response_model=NodeResponse)
async def bind_root(request: BindRequest, vfs: WorkspaceDep):
    """Bind the workspace to a real directory and load it."""
    result = raise_for_result(vfs.bind(request.root_path))
    return NodeResponse.from_node(vfs, result.node)


@router.post("/unbind", response_model=StatusResponse)
async def unbind_root(vfs: WorkspaceDep):
    """Return to simulation mode, keeping the current tree in memory."""
    previous = vfs.bound_root
    vfs.unbind()
    if previous is None:
        return StatusResponse(status="unbound", message="Workspace was not bound")
    return StatusResponse(status="unbound", message=f"Unbound from {previous}")


@router.post("/resync", response_model=NodeResponse)
async def resync(vfs: WorkspaceDep):
    """Rebuild the tree from the bound directory."""
    result = raise_for_result(vfs.resync())
    return NodeResponse.from_node(vfs, result.node)


@router.get("/validate", response_model=ValidationResponse)
async def validate(vfs: WorkspaceDep):
    """Check tree and tab invariants."""
    errors = vfs.validate_state()
    return ValidationResponse(valid=not errors, errors=errors)
