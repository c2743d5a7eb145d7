"""Disk Bridge contract and local implementation.

The Disk Bridge mirrors VFS operations onto a real directory tree. The VFS
treats it purely as an interface: every call may fail, and failures come
back as ``BridgeResult`` values carrying a message. ``LocalDiskBridge`` is
the implementation used when the server runs next to the workspace on disk.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from workspace.node import NodeKind

logger = logging.getLogger(__name__)


# Directory names never enumerated into the virtual tree
IGNORED_NAMES = frozenset({"node_modules", "__pycache__", ".git"})


class DiskEntry(BaseModel):
    """One entry returned by ``DiskBridge.list_tree``.

    Args:
        name: Entry name (single path segment).
        kind: File or directory.
        content: File content, empty for directories or files too large to read.
        size: Size in bytes as reported by the disk.
        modified_at: Last modification time on disk.
        children: Nested entries (directories only).
    """

    name: str
    kind: NodeKind
    content: str = ""
    size: int = 0
    modified_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    children: list["DiskEntry"] = Field(default_factory=list)


class BridgeResult(BaseModel):
    """Success/failure outcome of a Disk Bridge call.

    Args:
        success: Whether the call succeeded.
        error: Failure message (when success is False).
        path: Path created or affected, when relevant.
    """

    success: bool
    error: Optional[str] = None
    path: Optional[str] = None

    @classmethod
    def ok(cls, path: Optional[str] = None) -> "BridgeResult":
        return cls(success=True, path=path)

    @classmethod
    def fail(cls, error: str) -> "BridgeResult":
        return cls(success=False, error=error)


class DiskBridge(ABC):
    """Capability to enumerate and mutate a real directory tree.

    Attributes:
        ignored_names: Entry names ``list_tree`` never reports.
        max_depth: Deepest entry (in path segments below the root) that
            ``list_tree`` reports, or None for no limit.
    """

    ignored_names: frozenset[str] = frozenset()
    max_depth: Optional[int] = None

    def is_listed(self, name: str, depth: int) -> bool:
        """Whether an entry named ``name`` at ``depth`` segments below the root is enumerated."""
        if name in self.ignored_names:
            return False
        return self.max_depth is None or depth <= self.max_depth

    @abstractmethod
    def list_tree(self, root_path: str) -> list[DiskEntry]:
        """Recursively list the entries below ``root_path``.

        Raises:
            OSError: If the root cannot be read.
        """

    @abstractmethod
    def create_file(self, parent_path: str, name: str, content: str = "") -> BridgeResult:
        pass

    @abstractmethod
    def create_directory(self, parent_path: str, name: str) -> BridgeResult:
        pass

    @abstractmethod
    def delete(self, path: str) -> BridgeResult:
        pass

    @abstractmethod
    def rename(self, old_path: str, new_path: str) -> BridgeResult:
        pass

    @abstractmethod
    def move(self, old_path: str, new_path: str) -> BridgeResult:
        pass

    @abstractmethod
    def write_file(self, path: str, content: str) -> BridgeResult:
        pass


class LocalDiskBridge(DiskBridge):
    """Disk Bridge backed by the local file system.

    Args:
        max_depth: Directory depth below the root that is enumerated.
        max_file_bytes: Files larger than this are listed with empty content.
    """

    ignored_names = IGNORED_NAMES

    def __init__(self, max_depth: int = 8, max_file_bytes: int = 100_000):
        self.max_depth = max_depth
        self.max_file_bytes = max_file_bytes

    def list_tree(self, root_path: str) -> list[DiskEntry]:
        root = Path(root_path)
        if not root.is_dir():
            raise NotADirectoryError(f"{root_path} is not a directory")
        return self._read_directory(root, depth=0)

    def _read_directory(self, directory: Path, depth: int) -> list[DiskEntry]:
        if depth >= self.max_depth:
            return []

        entries = []
        for item in sorted(directory.iterdir(), key=lambda p: p.name):
            if item.name in IGNORED_NAMES:
                continue
            try:
                stats = item.stat()
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {item}: {e}")
                continue
            modified = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)

            if item.is_dir():
                entries.append(
                    DiskEntry(
                        name=item.name,
                        kind=NodeKind.DIRECTORY,
                        modified_at=modified,
                        children=self._read_directory(item, depth + 1),
                    )
                )
            else:
                content = ""
                if stats.st_size < self.max_file_bytes:
                    content = item.read_bytes().decode("utf-8", errors="replace")
                entries.append(
                    DiskEntry(
                        name=item.name,
                        kind=NodeKind.FILE,
                        content=content,
                        size=stats.st_size,
                        modified_at=modified,
                    )
                )
        return entries

    def create_file(self, parent_path: str, name: str, content: str = "") -> BridgeResult:
        target = Path(parent_path) / name
        if target.exists():
            return BridgeResult.fail("File already exists")
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            return BridgeResult.fail(str(e))
        return BridgeResult.ok(str(target))

    def create_directory(self, parent_path: str, name: str) -> BridgeResult:
        target = Path(parent_path) / name
        if target.exists():
            return BridgeResult.fail("Folder already exists")
        try:
            target.mkdir(parents=True)
        except OSError as e:
            return BridgeResult.fail(str(e))
        return BridgeResult.ok(str(target))

    def delete(self, path: str) -> BridgeResult:
        target = Path(path)
        try:
            if target.is_dir():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            return BridgeResult.fail(str(e))
        return BridgeResult.ok(path)

    def rename(self, old_path: str, new_path: str) -> BridgeResult:
        return self._relocate(old_path, new_path)

    def move(self, old_path: str, new_path: str) -> BridgeResult:
        return self._relocate(old_path, new_path)

    def _relocate(self, old_path: str, new_path: str) -> BridgeResult:
        source, target = Path(old_path), Path(new_path)
        if target.exists():
            return BridgeResult.fail(f"Destination already exists: {new_path}")
        try:
            source.rename(target)
        except OSError as e:
            return BridgeResult.fail(str(e))
        return BridgeResult.ok(new_path)

    def write_file(self, path: str, content: str) -> BridgeResult:
        try:
            Path(path).write_text(content, encoding="utf-8")
        except OSError as e:
            return BridgeResult.fail(str(e))
        return BridgeResult.ok(path)
