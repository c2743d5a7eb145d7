"""Virtual file system core.

This module contains the VirtualFileSystem class, the single owner of the
canonical node tree. Every other component (interpreters, the API, the git
collaborator) goes through its operations and holds only node ids or the
deep-copied snapshots it returns.

The VFS runs in one of two modes:

- Simulation mode (no bound root): mutations apply directly to the
  in-memory arena.
- Disk-bound mode: every mutation is validated in memory, re-expressed as a
  Disk Bridge call, and on success the whole tree is rebuilt from a fresh
  enumeration of the bound root ("write-through + full resync"). On failure
  the tree is left exactly as it was and the bridge's message is returned.
"""

import functools
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel

from workspace.bridge import BridgeResult, DiskBridge, DiskEntry
from workspace.errors import ErrorKind, OperationResult, VFSOperationError
from workspace.node import ROOT_ID, FileNode, NodeKind, NodeUpdate, utc_now
from workspace.settings import WorkspaceSettings
from workspace.tabs import TabSession

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

METADATA_FIELDS = ("tags", "favorite", "pinned", "locked", "description")


def _operation(method: F) -> F:
    """Run a public VFS operation under the operation lock.

    ``VFSOperationError`` raised by the operation is converted into a failed
    ``OperationResult`` so domain errors never cross the public boundary.
    """

    @functools.wraps(method)
    def wrapper(self: "VirtualFileSystem", *args: Any, **kwargs: Any) -> OperationResult:
        with self._lock:
            try:
                return method(self, *args, **kwargs)
            except VFSOperationError as e:
                logger.debug(f"{method.__name__} failed: {e.kind.value}: {e.message}")
                return e.to_result()

    return wrapper  # type: ignore[return-value]


class TabView(BaseModel):
    """An open tab as seen by the tab bar, resolved through the VFS by id.

    Attributes:
        id: Id of the open node.
        title: Current name of the node.
        path: Current absolute path of the node.
        active: Whether this is the active tab.
    """

    id: str
    title: str
    path: str
    active: bool


class VirtualFileSystem:
    """Owner of the canonical node tree and its mutation operations.

    All reads and mutations run under one re-entrant operation lock, so
    mutations issued from several interpreters sharing this instance are
    queued rather than interleaved, and a disk resync can never discard a
    write that is still in flight.

    Args:
        settings: Workspace settings (home directory, bridge limits, ...).
        bridge: Disk Bridge used when a real root is bound.
        seed: Whether to populate the demo tree (defaults to ``settings.seed_demo_tree``).
    """

    def __init__(
        self,
        settings: Optional[WorkspaceSettings] = None,
        bridge: Optional[DiskBridge] = None,
        seed: Optional[bool] = None,
    ):
        self.settings = settings or WorkspaceSettings()
        self.bridge = bridge
        self._lock = threading.RLock()
        self._nodes: dict[str, FileNode] = {}
        self._tabs = TabSession()
        self._bound_root: Optional[str] = None
        self._reset_tree()

        if seed if seed is not None else self.settings.seed_demo_tree:
            from workspace.seed import seed_demo_tree

            seed_demo_tree(self, self.settings.home)

    # ===== Properties =====

    @property
    def root_id(self) -> str:
        return ROOT_ID

    @property
    def is_disk_bound(self) -> bool:
        return self._bound_root is not None

    @property
    def bound_root(self) -> Optional[str]:
        return self._bound_root

    # ===== Lookups =====

    def get_node(self, node_id: str) -> Optional[FileNode]:
        """Return a snapshot of the node with ``node_id``, or None."""
        with self._lock:
            node = self._nodes.get(node_id)
            return node.model_copy(deep=True) if node else None

    def get_parent(self, node_id: str) -> Optional[FileNode]:
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None or node.parent_id is None:
                return None
            return self._nodes[node.parent_id].model_copy(deep=True)

    def resolve_path(self, path: str, cwd: str = "/") -> Optional[FileNode]:
        """Resolve a path to a node snapshot.

        Handles absolute paths (from the synthetic root), ``.``, ``..`` (the
        root is its own parent), ``~`` / ``~/...`` (the configured home) and
        relative paths against ``cwd``. Never raises on malformed input.

        Args:
            path: Path to resolve. An empty path resolves to ``cwd``.
            cwd: Absolute working directory relative paths start from.

        Returns:
            Snapshot of the resolved node, or None if nothing lives there.
        """
        with self._lock:
            node = self._resolve(path, cwd)
            return node.model_copy(deep=True) if node else None

    def path_of(self, node_id: str) -> Optional[str]:
        """Return the absolute path of a node, or None if it does not exist."""
        with self._lock:
            if node_id not in self._nodes:
                return None
            return self._path_of(node_id)

    def list_children(self, target: str, cwd: str = "/") -> list[FileNode]:
        """List the children of a directory, in order.

        Args:
            target: A path, or a node id when no such path exists.
            cwd: Working directory for relative paths.

        Returns:
            Snapshots of the children; empty for files and unknown targets.
        """
        with self._lock:
            node = self._resolve(target, cwd)
            if node is None and isinstance(target, str):
                node = self._nodes.get(target)
            return self._children_snapshot(node)

    def children_of(self, node_id: str) -> list[FileNode]:
        """List the children of the directory with ``node_id``, in order."""
        with self._lock:
            return self._children_snapshot(self._nodes.get(node_id))

    def _children_snapshot(self, node: Optional[FileNode]) -> list[FileNode]:
        if node is None or not node.is_directory:
            return []
        return [self._nodes[child_id].model_copy(deep=True) for child_id in node.children]

    def walk(self, start_id: str = ROOT_ID) -> list[FileNode]:
        """Return every node below ``start_id`` (inclusive), in pre-order."""
        with self._lock:
            if start_id not in self._nodes:
                return []
            return [
                self._nodes[node_id].model_copy(deep=True)
                for node_id in self._subtree_ids(start_id)
            ]

    def find_by_name(self, name: str) -> Optional[FileNode]:
        """Return the first file named ``name`` in pre-order, or None."""
        with self._lock:
            for node_id in self._subtree_ids(ROOT_ID):
                node = self._nodes[node_id]
                if node.is_file and node.name == name:
                    return node.model_copy(deep=True)
            return None

    def subtree_size(self, node_id: str) -> int:
        """Total content size in bytes of a node and its descendants."""
        with self._lock:
            if node_id not in self._nodes:
                return 0
            return sum(self._nodes[i].size for i in self._subtree_ids(node_id))

    def get_snapshot(self) -> dict[str, Any]:
        """Export the whole tree as a nested, JSON-serializable dictionary.

        Content is omitted; each entry carries its path, so a client can
        render the explorer without further lookups.

        Returns:
            Dictionary with the root entry, bound root and tab state.
        """
        with self._lock:
            return {
                "root": self._snapshot_entry(ROOT_ID),
                "bound_root": self._bound_root,
                "node_count": len(self._nodes),
                "tabs": [tab.model_dump() for tab in self._tab_views()],
            }

    def validate_state(self) -> list[str]:
        """Validate tree and tab invariants.

        Checks that the graph is a forest hanging from the root, that
        ``children`` is the exact inverse of ``parent_id``, that sibling names
        are unique, that file sizes match content, and that tabs reference
        live nodes.

        Returns:
            List of validation error messages (empty list if valid).
        """
        with self._lock:
            errors = []
            root = self._nodes.get(ROOT_ID)
            if root is None:
                return ["Root node is missing"]
            if root.parent_id is not None:
                errors.append("Root node has a parent")

            for node_id, node in self._nodes.items():
                if node.id != node_id:
                    errors.append(f"Node stored under {node_id} has id {node.id}")
                if node_id != ROOT_ID:
                    parent = self._nodes.get(node.parent_id) if node.parent_id else None
                    if parent is None:
                        errors.append(f"Node {node_id} has dangling parent {node.parent_id}")
                    elif not parent.is_directory:
                        errors.append(f"Node {node_id} has a file as parent")
                    elif parent.children.count(node_id) != 1:
                        errors.append(f"Parent {parent.id} does not list {node_id} exactly once")
                if node.is_file:
                    if node.children:
                        errors.append(f"File {node_id} has children")
                    if node.size != len(node.content.encode("utf-8")):
                        errors.append(f"File {node_id} size does not match content")
                names = [self._nodes[c].name for c in node.children if c in self._nodes]
                if len(names) != len(set(names)):
                    errors.append(f"Directory {node_id} has duplicate child names")
                for child_id in node.children:
                    child = self._nodes.get(child_id)
                    if child is None:
                        errors.append(f"Directory {node_id} lists missing child {child_id}")
                    elif child.parent_id != node_id:
                        errors.append(f"Child {child_id} of {node_id} points to {child.parent_id}")

            reachable = set(self._subtree_ids(ROOT_ID))
            unreachable = set(self._nodes) - reachable
            if unreachable:
                errors.append(f"{len(unreachable)} node(s) unreachable from root (cycle or orphan)")

            errors.extend(self._tabs.validate_state())
            for node_id in self._tabs.open_ids:
                if node_id not in self._nodes:
                    errors.append(f"Tab references deleted node {node_id}")
            return errors

    # ===== Mutations =====

    @_operation
    def create(
        self,
        kind: Union[NodeKind, str],
        name: str,
        parent_id: str,
        content: str = "",
    ) -> OperationResult:
        """Create a file or directory under ``parent_id``.

        Args:
            kind: NodeKind (or its string value).
            name: Name of the new entry.
            parent_id: Id of the containing directory.
            content: Initial content (files only).

        Returns:
            Result with a snapshot of the new node. Fails with ALREADY_EXISTS on
            a sibling name collision and NO_SUCH_PARENT when ``parent_id`` is
            not a directory.
        """
        kind = NodeKind(kind)
        self._validate_name(name)
        parent = self._nodes.get(parent_id)
        if parent is None or not parent.is_directory:
            raise VFSOperationError(
                ErrorKind.NO_SUCH_PARENT, f"No such directory: {parent_id}"
            )
        if self._child_named(parent, name) is not None:
            raise VFSOperationError(
                ErrorKind.ALREADY_EXISTS,
                f"'{name}' already exists in {self._path_of(parent.id)}",
            )

        if self.is_disk_bound:
            self._check_listed(parent, name)
            parent_path = self._disk_path(parent.id)
            if kind == NodeKind.FILE:
                self._call_bridge("create_file", parent_path, name, content)
            else:
                self._call_bridge("create_directory", parent_path, name)
            self._resync()
            node = self._child_named(self._nodes[parent_id], name)
            if node is None:
                raise VFSOperationError(
                    ErrorKind.BRIDGE_FAILURE, f"'{name}' did not appear on disk after create"
                )
        else:
            node = FileNode(name=name, kind=kind, parent_id=parent.id)
            if kind == NodeKind.FILE:
                node.set_content(content)
            self._nodes[node.id] = node
            parent.children.append(node.id)
            parent.modified_at = utc_now()

        logger.debug(f"Created {kind.value} {self._path_of(node.id)}")
        return OperationResult.success(node.model_copy(deep=True))

    @_operation
    def ensure_directories(self, path: str, cwd: str = "/") -> OperationResult:
        """Create ``path`` and any missing parents (``mkdir -p``).

        Returns:
            Result with a snapshot of the final directory. Fails with
            NOT_A_DIRECTORY when a component is an existing file.
        """
        if not isinstance(path, str) or not path.strip():
            raise VFSOperationError(ErrorKind.INVALID_NAME, "Empty path")
        absolute = self._absolute(path, cwd)
        current = self._nodes[ROOT_ID]
        for segment in [s for s in absolute.split("/") if s]:
            if segment == ".":
                continue
            if segment == "..":
                current = self._nodes[current.parent_id] if current.parent_id else current
                continue
            child = self._child_named(current, segment)
            if child is None:
                result = self.create(NodeKind.DIRECTORY, segment, current.id)
                if not result.ok:
                    return result
                child = self._nodes[result.node.id]
            elif not child.is_directory:
                raise VFSOperationError(
                    ErrorKind.NOT_A_DIRECTORY, f"{self._path_of(child.id)}: Not a directory"
                )
            current = child
        return OperationResult.success(current.model_copy(deep=True))

    @_operation
    def delete(self, node_id: str, recursive: bool = False) -> OperationResult:
        """Delete a node and every descendant.

        Tabs referencing any removed node are closed (with neighbor promotion
        for the active tab).

        Args:
            node_id: Id of the node to delete.
            recursive: Required to delete a non-empty directory.

        Returns:
            Result without a node. Fails with NOT_EMPTY for a non-empty
            directory without ``recursive``.
        """
        node = self._get(node_id)
        if node.id == ROOT_ID:
            raise VFSOperationError(
                ErrorKind.INVALID_OPERATION, "Cannot delete the root directory"
            )
        path = self._path_of(node.id)
        if node.is_directory and node.children and not recursive:
            raise VFSOperationError(ErrorKind.NOT_EMPTY, f"{path}: Directory not empty")

        doomed = self._subtree_ids(node.id)
        if self.is_disk_bound:
            self._call_bridge("delete", self._disk_path(node.id))
            self._resync()
        else:
            parent = self._nodes[node.parent_id]
            parent.children.remove(node.id)
            parent.modified_at = utc_now()
            for doomed_id in doomed:
                del self._nodes[doomed_id]
        self._tabs.close_many(doomed)

        logger.debug(f"Deleted {path} ({len(doomed)} node(s))")
        return OperationResult.success()

    def rename(self, node_id: str, new_name: str) -> OperationResult:
        """Rename a node in place. Fails with ALREADY_EXISTS on collision."""
        return self.update(node_id, NodeUpdate(name=new_name))

    @_operation
    def update(self, node_id: str, changes: NodeUpdate) -> OperationResult:
        """Apply a partial update (rename and/or metadata) to a node.

        Args:
            node_id: Id of the node to update.
            changes: Fields to change; unset fields are left alone.

        Returns:
            Result with a snapshot of the updated node.
        """
        node = self._get(node_id)
        new_name = changes.name
        if new_name is not None and new_name != node.name:
            if node.id == ROOT_ID:
                raise VFSOperationError(
                    ErrorKind.INVALID_OPERATION, "Cannot rename the root directory"
                )
            self._validate_name(new_name)
            parent = self._nodes[node.parent_id]
            if self._child_named(parent, new_name) is not None:
                raise VFSOperationError(
                    ErrorKind.ALREADY_EXISTS,
                    f"'{new_name}' already exists in {self._path_of(parent.id)}",
                )
            if self.is_disk_bound:
                self._check_listed(parent, new_name, node.id)
                new_path = self._join(self._path_of(parent.id), new_name)
                carry = self._carry_map(node.id, new_path)
                self._call_bridge(
                    "rename", self._disk_path(node.id), self._disk_path(parent.id, new_name)
                )
                self._resync(carry)
                node = self._get(node_id)
            else:
                node.name = new_name
                node.modified_at = utc_now()
                parent.modified_at = node.modified_at

        for field_name, value in changes.metadata_changes().items():
            setattr(node, field_name, value)

        return OperationResult.success(node.model_copy(deep=True))

    @_operation
    def move(
        self, node_id: str, new_parent_id: str, new_name: Optional[str] = None
    ) -> OperationResult:
        """Detach a node and reattach it under ``new_parent_id``.

        Args:
            node_id: Id of the node to move.
            new_parent_id: Id of the destination directory.
            new_name: Optional new name (move and rename in one step).

        Returns:
            Result with a snapshot of the moved node. Fails with INVALID_MOVE
            when the destination is the node itself, one of its descendants,
            or already has a child with the same name; the tree is unchanged
            after any rejection.
        """
        node = self._get(node_id)
        if node.id == ROOT_ID:
            raise VFSOperationError(ErrorKind.INVALID_MOVE, "Cannot move the root directory")
        target = self._nodes.get(new_parent_id)
        if target is None or not target.is_directory:
            raise VFSOperationError(
                ErrorKind.NO_SUCH_PARENT, f"No such directory: {new_parent_id}"
            )
        name = new_name if new_name is not None else node.name
        self._validate_name(name)

        source_path = self._path_of(node.id)
        if target.id == node.id or self._is_ancestor(node.id, target.id):
            raise VFSOperationError(
                ErrorKind.INVALID_MOVE,
                f"Cannot move '{source_path}' into itself or one of its descendants",
            )
        if target.id == node.parent_id and name == node.name:
            return OperationResult.success(node.model_copy(deep=True))
        existing = self._child_named(target, name)
        if existing is not None and existing.id != node.id:
            raise VFSOperationError(
                ErrorKind.INVALID_MOVE,
                f"'{name}' already exists in {self._path_of(target.id)}",
            )

        if self.is_disk_bound:
            self._check_listed(target, name, node.id)
            carry = self._carry_map(node.id, self._join(self._path_of(target.id), name))
            operation = "rename" if target.id == node.parent_id else "move"
            self._call_bridge(
                operation, self._disk_path(node.id), self._disk_path(target.id, name)
            )
            self._resync(carry)
            node = self._get(node_id)
        else:
            now = utc_now()
            old_parent = self._nodes[node.parent_id]
            old_parent.children.remove(node.id)
            old_parent.modified_at = now
            node.name = name
            node.parent_id = target.id
            node.modified_at = now
            target.children.append(node.id)
            target.modified_at = now

        logger.debug(f"Moved {source_path} to {self._path_of(node.id)}")
        return OperationResult.success(node.model_copy(deep=True))

    @_operation
    def copy(
        self, node_id: str, new_parent_id: str, new_name: Optional[str] = None
    ) -> OperationResult:
        """Deep-copy a node (and its subtree) under ``new_parent_id``.

        Copies get fresh ids. On a bound root the copy is issued as one create
        call per entry; if a call fails midway the tree is resynced so memory
        reflects what reached the disk, and the failure is returned.

        Returns:
            Result with a snapshot of the new top-level copy.
        """
        node = self._get(node_id)
        if node.id == ROOT_ID:
            raise VFSOperationError(ErrorKind.INVALID_MOVE, "Cannot copy the root directory")
        target = self._nodes.get(new_parent_id)
        if target is None or not target.is_directory:
            raise VFSOperationError(
                ErrorKind.NO_SUCH_PARENT, f"No such directory: {new_parent_id}"
            )
        name = new_name if new_name is not None else node.name
        self._validate_name(name)
        if target.id == node.id or self._is_ancestor(node.id, target.id):
            raise VFSOperationError(
                ErrorKind.INVALID_MOVE,
                f"Cannot copy '{self._path_of(node.id)}' into itself",
            )
        if self._child_named(target, name) is not None:
            raise VFSOperationError(
                ErrorKind.ALREADY_EXISTS,
                f"'{name}' already exists in {self._path_of(target.id)}",
            )

        if self.is_disk_bound:
            self._check_listed(target, name, node.id)
            try:
                self._copy_to_disk(node.id, self._disk_path(target.id), name)
            except VFSOperationError:
                self._resync()
                raise
            self._resync()
            copied = self._child_named(self._nodes[new_parent_id], name)
            if copied is None:
                raise VFSOperationError(
                    ErrorKind.BRIDGE_FAILURE, f"'{name}' did not appear on disk after copy"
                )
        else:
            copied = self._clone(node.id, target.id, name)
            target.children.append(copied.id)
            target.modified_at = utc_now()

        return OperationResult.success(copied.model_copy(deep=True))

    @_operation
    def set_content(self, node_id: str, content: str) -> OperationResult:
        """Replace a file's content, recomputing ``size`` and ``modified_at``.

        Returns:
            Result with a snapshot of the file. Fails with IS_A_DIRECTORY for
            directories.
        """
        node = self._get(node_id)
        if not node.is_file:
            raise VFSOperationError(
                ErrorKind.IS_A_DIRECTORY, f"{self._path_of(node.id)}: Is a directory"
            )
        if self.is_disk_bound:
            self._call_bridge("write_file", self._disk_path(node.id), content)
            self._resync()
            node = self._get(node_id)
        else:
            node.set_content(content)
        return OperationResult.success(node.model_copy(deep=True))

    @_operation
    def touch(self, node_id: str) -> OperationResult:
        """Refresh a node's modification time."""
        node = self._get(node_id)
        if node.is_file and self.is_disk_bound:
            return self.set_content(node_id, node.content)
        node.modified_at = utc_now()
        return OperationResult.success(node.model_copy(deep=True))

    # ===== Tabs =====

    @_operation
    def open_tab(self, node_id: str) -> OperationResult:
        """Open a file in a tab (or activate its existing tab)."""
        node = self._get(node_id)
        if not node.is_file:
            raise VFSOperationError(
                ErrorKind.IS_A_DIRECTORY, f"{self._path_of(node.id)}: Is a directory"
            )
        self._tabs.open(node.id)
        return OperationResult.success(node.model_copy(deep=True))

    def close_tab(self, node_id: str) -> bool:
        with self._lock:
            return self._tabs.close(node_id)

    def close_all_tabs(self) -> None:
        with self._lock:
            self._tabs.close_all()

    def tabs(self) -> list[TabView]:
        """Return the tab bar, with titles and paths read through node ids."""
        with self._lock:
            return self._tab_views()

    def active_node(self) -> Optional[FileNode]:
        """Return a snapshot of the active tab's node as it is now."""
        with self._lock:
            active_id = self._tabs.active_id
            if active_id is None or active_id not in self._nodes:
                return None
            return self._nodes[active_id].model_copy(deep=True)

    # ===== Disk binding =====

    @_operation
    def bind(self, root_path: str) -> OperationResult:
        """Bind the VFS to a real directory and load it.

        The in-memory tree is replaced by the enumeration of ``root_path``;
        open tabs are closed. On failure the current tree is kept.

        Returns:
            Result with a snapshot of the root.
        """
        entries = self._list_tree(root_path)
        self._tabs.close_all()
        self._reset_tree()
        self._bound_root = str(root_path)
        self._load_entries(entries, ids_by_path={}, metadata={})
        logger.info(f"Bound workspace to {root_path} ({len(self._nodes) - 1} node(s))")
        return OperationResult.success(self._nodes[ROOT_ID].model_copy(deep=True))

    def unbind(self) -> None:
        """Return to simulation mode, keeping the current tree in memory."""
        with self._lock:
            if self._bound_root is not None:
                logger.info(f"Unbound workspace from {self._bound_root}")
            self._bound_root = None

    @_operation
    def resync(self) -> OperationResult:
        """Rebuild the tree from the bound root on demand."""
        if not self.is_disk_bound:
            raise VFSOperationError(
                ErrorKind.INVALID_OPERATION, "Workspace is not bound to a disk root"
            )
        self._resync()
        return OperationResult.success(self._nodes[ROOT_ID].model_copy(deep=True))

    # ===== Internal helpers =====

    def _reset_tree(self) -> None:
        self._nodes = {ROOT_ID: FileNode(id=ROOT_ID, name="", kind=NodeKind.DIRECTORY)}

    def _get(self, node_id: str) -> FileNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise VFSOperationError(ErrorKind.NOT_FOUND, f"No such node: {node_id}")
        return node

    def _child_named(self, directory: FileNode, name: str) -> Optional[FileNode]:
        for child_id in directory.children:
            child = self._nodes[child_id]
            if child.name == name:
                return child
        return None

    @staticmethod
    def _validate_name(name: str) -> None:
        if not isinstance(name, str) or not name or name in (".", "..") or "/" in name:
            raise VFSOperationError(ErrorKind.INVALID_NAME, f"Invalid name: '{name}'")

    def _check_listed(self, parent: FileNode, name: str, subtree_id: Optional[str] = None) -> None:
        """Reject a disk write the bridge would not enumerate back into the tree.

        ``subtree_id`` is the node being written under ``name``; its deepest
        descendant must also stay within the bridge's depth limit.
        """
        if self.bridge is None:
            return
        depth = len([s for s in self._path_of(parent.id).split("/") if s]) + 1
        if name in self.bridge.ignored_names:
            raise VFSOperationError(
                ErrorKind.INVALID_NAME, f"'{name}' is not tracked in a disk-bound workspace"
            )
        if subtree_id is not None:
            depth += self._subtree_height(subtree_id)
        if not self.bridge.is_listed(name, depth):
            raise VFSOperationError(
                ErrorKind.INVALID_OPERATION,
                f"'{name}' would lie below the enumerated depth "
                f"({self.bridge.max_depth}) of the bound directory",
            )

    def _subtree_height(self, node_id: str) -> int:
        node = self._nodes[node_id]
        return max((1 + self._subtree_height(c) for c in node.children), default=0)

    def _is_ancestor(self, ancestor_id: str, node_id: str) -> bool:
        """Whether ``ancestor_id`` is a strict ancestor of ``node_id``."""
        seen = set()
        current = self._nodes.get(node_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id == ancestor_id:
                return True
            if current.parent_id in seen:
                break
            seen.add(current.parent_id)
            current = self._nodes.get(current.parent_id)
        return False

    def _subtree_ids(self, node_id: str) -> list[str]:
        ordered = []
        stack = [node_id]
        while stack:
            current = stack.pop()
            ordered.append(current)
            stack.extend(reversed(self._nodes[current].children))
        return ordered

    def _path_of(self, node_id: str) -> str:
        parts = []
        current = self._nodes[node_id]
        while current.parent_id is not None:
            parts.append(current.name)
            current = self._nodes[current.parent_id]
        return "/" + "/".join(reversed(parts))

    @staticmethod
    def _join(directory_path: str, name: str) -> str:
        return directory_path.rstrip("/") + "/" + name

    def _absolute(self, path: str, cwd: str) -> str:
        """Expand ``~`` and anchor a relative path at ``cwd`` (no resolution)."""
        path = path.strip()
        if path == "~" or path.startswith("~/"):
            path = self.settings.home + path[1:]
        if not path.startswith("/"):
            path = self._join(cwd or "/", path)
        return path

    def _resolve(self, path: Any, cwd: Any) -> Optional[FileNode]:
        if not isinstance(path, str) or not isinstance(cwd, str):
            return None
        if not path.strip():
            path = cwd
        absolute = self._absolute(path, self._absolute(cwd, "/"))

        current = self._nodes[ROOT_ID]
        for segment in absolute.split("/"):
            if segment in ("", "."):
                if segment == "." and not current.is_directory:
                    return None
                continue
            if not current.is_directory:
                return None
            if segment == "..":
                if current.parent_id is not None:
                    current = self._nodes[current.parent_id]
                continue
            child = self._child_named(current, segment)
            if child is None:
                return None
            current = child
        return current

    def _clone(self, node_id: str, parent_id: str, name: str) -> FileNode:
        source = self._nodes[node_id]
        clone = source.model_copy(
            deep=True,
            update={
                "id": str(uuid4()),
                "name": name,
                "parent_id": parent_id,
                "children": [],
                "modified_at": utc_now(),
            },
        )
        self._nodes[clone.id] = clone
        for child_id in source.children:
            child = self._clone(child_id, clone.id, self._nodes[child_id].name)
            clone.children.append(child.id)
        return clone

    def _tab_views(self) -> list[TabView]:
        views = []
        for node_id in self._tabs.open_ids:
            node = self._nodes.get(node_id)
            if node is None:
                continue
            views.append(
                TabView(
                    id=node.id,
                    title=node.name,
                    path=self._path_of(node.id),
                    active=node.id == self._tabs.active_id,
                )
            )
        return views

    def _snapshot_entry(self, node_id: str) -> dict[str, Any]:
        node = self._nodes[node_id]
        entry = node.to_dict()
        entry["path"] = self._path_of(node_id)
        entry["children"] = [self._snapshot_entry(child_id) for child_id in node.children]
        return entry

    # ----- Disk-bound helpers -----

    def _disk_path(self, node_id: str, child_name: Optional[str] = None) -> str:
        segments = [s for s in self._path_of(node_id).split("/") if s]
        if child_name is not None:
            segments.append(child_name)
        return str(Path(self._bound_root).joinpath(*segments))

    def _call_bridge(self, operation: str, *args: Any) -> BridgeResult:
        """Invoke a Disk Bridge operation, converting failures to VFSOperationError."""
        if self.bridge is None:
            raise VFSOperationError(
                ErrorKind.BRIDGE_UNAVAILABLE, "No disk bridge is configured"
            )
        try:
            result = getattr(self.bridge, operation)(*args)
        except TimeoutError as e:
            logger.warning(f"Disk bridge timed out during {operation}: {e}")
            raise VFSOperationError(
                ErrorKind.TIMEOUT, f"Disk bridge timed out during {operation}"
            ) from e
        except Exception as e:
            logger.warning(f"Disk bridge raised during {operation}: {e}")
            raise VFSOperationError(
                ErrorKind.BRIDGE_UNAVAILABLE, f"Disk bridge unavailable: {e}"
            ) from e
        if not result.success:
            logger.warning(f"Disk bridge rejected {operation}: {result.error}")
            raise VFSOperationError(
                ErrorKind.BRIDGE_FAILURE, result.error or f"{operation} failed"
            )
        return result

    def _list_tree(self, root_path: str) -> list[DiskEntry]:
        if self.bridge is None:
            raise VFSOperationError(
                ErrorKind.BRIDGE_UNAVAILABLE, "No disk bridge is configured"
            )
        try:
            return self.bridge.list_tree(root_path)
        except TimeoutError as e:
            raise VFSOperationError(
                ErrorKind.TIMEOUT, f"Disk bridge timed out listing {root_path}"
            ) from e
        except Exception as e:
            logger.warning(f"Failed to list {root_path}: {e}")
            raise VFSOperationError(
                ErrorKind.BRIDGE_UNAVAILABLE, f"Cannot read {root_path}: {e}"
            ) from e

    def _carry_map(self, node_id: str, new_path: str) -> dict[str, str]:
        """Map the post-move path of every node in a subtree to its id."""
        old_path = self._path_of(node_id)
        return {
            new_path + self._path_of(i)[len(old_path):]: i
            for i in self._subtree_ids(node_id)
        }

    def _copy_to_disk(self, node_id: str, parent_disk_path: str, name: str) -> None:
        node = self._nodes[node_id]
        if node.is_file:
            self._call_bridge("create_file", parent_disk_path, name, node.content)
            return
        self._call_bridge("create_directory", parent_disk_path, name)
        target_path = str(Path(parent_disk_path) / name)
        for child_id in node.children:
            self._copy_to_disk(child_id, target_path, self._nodes[child_id].name)

    def _resync(self, carry: Optional[dict[str, str]] = None) -> None:
        """Discard the tree and rebuild it from the bound root.

        Ids are preserved for every path that still exists, and ``carry``
        assigns the ids of a renamed/moved subtree to their new paths. User
        metadata travels with the id. Tabs whose node vanished are closed.
        """
        entries = self._list_tree(self._bound_root)
        ids_by_path = {}
        for node_id in self._nodes:
            ids_by_path[self._path_of(node_id)] = node_id
        carried_ids = set((carry or {}).values())
        ids_by_path = {p: i for p, i in ids_by_path.items() if i not in carried_ids}
        ids_by_path.update(carry or {})
        metadata = {
            node_id: {f: getattr(node, f) for f in METADATA_FIELDS}
            for node_id, node in self._nodes.items()
        }
        kinds = {node_id: node.kind for node_id, node in self._nodes.items()}

        self._reset_tree()
        self._load_entries(entries, ids_by_path, metadata, kinds)
        self._tabs.close_many([i for i in self._tabs.open_ids if i not in self._nodes])
        logger.debug(f"Resynced {self._bound_root}: {len(self._nodes) - 1} node(s)")

    def _load_entries(
        self,
        entries: list[DiskEntry],
        ids_by_path: dict[str, str],
        metadata: dict[str, dict[str, Any]],
        kinds: Optional[dict[str, NodeKind]] = None,
        parent_id: str = ROOT_ID,
        parent_path: str = "",
    ) -> None:
        parent = self._nodes[parent_id]
        for entry in entries:
            path = f"{parent_path}/{entry.name}"
            node_id = ids_by_path.get(path)
            if node_id is None or node_id in self._nodes or (kinds or {}).get(node_id) != entry.kind:
                node_id = str(uuid4())
            node = FileNode(
                id=node_id,
                name=entry.name,
                kind=entry.kind,
                parent_id=parent_id,
                modified_at=entry.modified_at,
                **metadata.get(node_id, {}),
            )
            if entry.kind == NodeKind.FILE:
                node.set_content(entry.content, when=entry.modified_at)
            self._nodes[node_id] = node
            parent.children.append(node_id)
            if entry.kind == NodeKind.DIRECTORY:
                self._load_entries(
                    entry.children, ids_by_path, metadata, kinds, node_id, path
                )
