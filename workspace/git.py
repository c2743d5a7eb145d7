"""Git collaborator contract and an in-memory repository over the VFS.

The ``git`` built-in is a thin formatter over ``GitCollaborator``. Any
rejection is raised as ``GitError`` and rendered by the caller as a
``fatal:`` line. ``VirtualGitRepository`` tracks the files below one VFS
directory so the built-in works without a real repository on disk.
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from workspace.node import NodeKind, utc_now

if TYPE_CHECKING:
    from workspace.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"

NOT_A_REPOSITORY = "not a git repository (or any of the parent directories): .git"


class GitError(Exception):
    """Raised by a collaborator when it rejects an operation."""


class GitStatus(BaseModel):
    """Working tree status.

    Args:
        branch: Current branch name.
        staged: Paths whose index entry differs from HEAD.
        modified: Tracked paths whose working copy differs from the index.
        untracked: Paths present in the working tree but not in the index.
        ahead: Commits on the local branch missing from the remote.
        behind: Commits on the remote branch missing locally.
    """

    branch: str
    staged: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    untracked: list[str] = Field(default_factory=list)
    ahead: int = 0
    behind: int = 0

    @property
    def clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked)


class GitCommit(BaseModel):
    """One commit in the log."""

    oid: str
    message: str
    author: str
    timestamp: datetime
    parent: Optional[str] = None


class GitBranch(BaseModel):
    """One local branch."""

    name: str
    current: bool = False
    commit: Optional[str] = None


class GitCollaborator(ABC):
    """Operations the ``git`` built-in forwards to."""

    @abstractmethod
    def init(self) -> str:
        pass

    @abstractmethod
    def is_repo(self) -> bool:
        pass

    @abstractmethod
    def status(self) -> GitStatus:
        pass

    @abstractmethod
    def add(self, paths: list[str]) -> None:
        pass

    @abstractmethod
    def reset(self, path: str) -> None:
        pass

    @abstractmethod
    def commit(self, message: str) -> str:
        """Record the index as a new commit.

        Returns:
            The new commit id.
        """

    @abstractmethod
    def log(self, depth: int = 10) -> list[GitCommit]:
        pass

    @abstractmethod
    def list_branches(self) -> list[GitBranch]:
        pass

    @abstractmethod
    def create_branch(self, name: str) -> None:
        pass

    @abstractmethod
    def checkout(self, ref: str) -> None:
        pass

    @abstractmethod
    def push(self) -> str:
        pass

    @abstractmethod
    def pull(self) -> str:
        pass


class VirtualGitRepository(GitCollaborator):
    """A small git model over the files below ``root`` in a VFS.

    Snapshots are ``{relative path: content}`` maps. Branches point at
    commit ids; the index starts as a copy of HEAD. A remote is optional and,
    when attached, is just another set of branch pointers into the same
    commit store.

    Args:
        vfs: File system the working tree lives in.
        root: Absolute VFS path of the repository root.
        author: Name recorded on commits.
    """

    def __init__(self, vfs: "VirtualFileSystem", root: str = "/", author: str = "henu"):
        self.vfs = vfs
        self.root = "/" + "/".join(p for p in root.split("/") if p)
        self.author = author
        self._lock = threading.RLock()
        self._initialized = False
        self._head = DEFAULT_BRANCH
        self._branches: dict[str, Optional[str]] = {}
        self._commits: dict[str, GitCommit] = {}
        self._trees: dict[str, dict[str, str]] = {}
        self._index: dict[str, str] = {}
        self._remote_name: Optional[str] = None
        self._remote_branches: dict[str, str] = {}

    # ===== Remote =====

    def attach_remote(self, name: str = "origin") -> None:
        """Attach an in-memory remote that push/pull synchronize with."""
        with self._lock:
            self._remote_name = name

    # ===== Contract =====

    def init(self) -> str:
        with self._lock:
            location = f"{self.root.rstrip('/')}/.git/"
            if self._initialized:
                return f"Reinitialized existing Git repository in {location}"
            self._initialized = True
            self._branches = {DEFAULT_BRANCH: None}
            self._head = DEFAULT_BRANCH
            logger.info(f"Initialized virtual repository at {self.root}")
            return f"Initialized empty Git repository in {location}"

    def is_repo(self) -> bool:
        return self._initialized

    def status(self) -> GitStatus:
        with self._lock:
            self._require_repo()
            head = self._head_tree()
            working = self._working_tree()
            staged = sorted(
                p for p in set(head) | set(self._index) if head.get(p) != self._index.get(p)
            )
            modified = sorted(p for p in self._index if working.get(p) != self._index[p])
            untracked = sorted(p for p in working if p not in self._index)
            ahead, behind = self._divergence()
            return GitStatus(
                branch=self._head,
                staged=staged,
                modified=modified,
                untracked=untracked,
                ahead=ahead,
                behind=behind,
            )

    def add(self, paths: list[str]) -> None:
        with self._lock:
            self._require_repo()
            working = self._working_tree()
            for spec in paths:
                if spec in (".", "-A", "--all"):
                    self._index = dict(working)
                    continue
                rel = self._relative(spec)
                matched = {p: c for p, c in working.items() if p == rel or p.startswith(rel + "/") or rel == ""}
                removed = [p for p in self._index if (p == rel or p.startswith(rel + "/")) and p not in working]
                if not matched and not removed:
                    raise GitError(f"pathspec '{spec}' did not match any files")
                self._index.update(matched)
                for p in removed:
                    del self._index[p]

    def reset(self, path: str) -> None:
        with self._lock:
            self._require_repo()
            rel = self._relative(path)
            head = self._head_tree()
            if rel in head:
                self._index[rel] = head[rel]
            elif rel in self._index:
                del self._index[rel]
            else:
                raise GitError(f"pathspec '{path}' did not match any files known to git")

    def commit(self, message: str) -> str:
        with self._lock:
            self._require_repo()
            if not message or not message.strip():
                raise GitError("Aborting commit due to empty commit message.")
            if self._index == self._head_tree():
                raise GitError("nothing to commit, working tree clean")
            parent = self._branches.get(self._head)
            timestamp = utc_now()
            digest = hashlib.sha1()
            digest.update((parent or "").encode())
            digest.update(message.encode())
            digest.update(timestamp.isoformat().encode())
            for path in sorted(self._index):
                digest.update(path.encode())
                digest.update(self._index[path].encode())
            oid = digest.hexdigest()
            self._commits[oid] = GitCommit(
                oid=oid, message=message, author=self.author, timestamp=timestamp, parent=parent
            )
            self._trees[oid] = dict(self._index)
            self._branches[self._head] = oid
            logger.debug(f"Committed {oid[:7]} on {self._head}")
            return oid

    def log(self, depth: int = 10) -> list[GitCommit]:
        with self._lock:
            self._require_repo()
            oid = self._branches.get(self._head)
            if oid is None:
                raise GitError(
                    f"your current branch '{self._head}' does not have any commits yet"
                )
            entries = []
            while oid is not None and len(entries) < depth:
                entry = self._commits[oid]
                entries.append(entry.model_copy())
                oid = entry.parent
            return entries

    def list_branches(self) -> list[GitBranch]:
        with self._lock:
            self._require_repo()
            return [
                GitBranch(name=name, current=name == self._head, commit=oid)
                for name, oid in sorted(self._branches.items())
            ]

    def create_branch(self, name: str) -> None:
        with self._lock:
            self._require_repo()
            if not name or name.startswith("-") or " " in name or ".." in name:
                raise GitError(f"'{name}' is not a valid branch name.")
            if name in self._branches:
                raise GitError(f"a branch named '{name}' already exists")
            head_oid = self._branches.get(self._head)
            if head_oid is None:
                raise GitError(f"Not a valid object name: '{self._head}'.")
            self._branches[name] = head_oid

    def checkout(self, ref: str) -> None:
        with self._lock:
            self._require_repo()
            if ref not in self._branches:
                raise GitError(f"pathspec '{ref}' did not match any file(s) known to git")
            if ref == self._head:
                return
            target_oid = self._branches[ref]
            if target_oid != self._branches.get(self._head):
                current = self.status()
                if current.staged or current.modified:
                    raise GitError(
                        "Your local changes to the following files would be overwritten "
                        "by checkout:\n\t"
                        + "\n\t".join(current.staged + current.modified)
                        + "\nPlease commit your changes or stash them before you switch branches."
                    )
                self._write_tree(self._head_tree(), self._trees.get(target_oid, {}))
            self._head = ref
            self._index = dict(self._head_tree())

    def push(self) -> str:
        with self._lock:
            self._require_repo()
            if self._remote_name is None:
                raise GitError("No configured push destination.")
            local = self._branches.get(self._head)
            remote = self._remote_branches.get(self._head)
            if local is None:
                raise GitError(f"src refspec {self._head} does not match any")
            if local == remote:
                return "Everything up-to-date"
            if remote is not None and not self._is_ancestor(remote, local):
                raise GitError(
                    f"failed to push some refs to '{self._remote_name}'\n"
                    "Updates were rejected because the tip of your current branch is behind"
                )
            self._remote_branches[self._head] = local
            old = remote[:7] if remote else "0000000"
            return (
                f"To {self._remote_name}\n"
                f"   {old}..{local[:7]}  {self._head} -> {self._head}"
            )

    def pull(self) -> str:
        with self._lock:
            self._require_repo()
            if self._remote_name is None:
                raise GitError("No remote repository specified.")
            local = self._branches.get(self._head)
            remote = self._remote_branches.get(self._head)
            if remote is None or remote == local or self._is_ancestor(remote, local):
                return "Already up to date."
            if local is not None and not self._is_ancestor(local, remote):
                raise GitError("Not possible to fast-forward, aborting.")
            self._write_tree(self._head_tree(), self._trees[remote])
            self._branches[self._head] = remote
            self._index = dict(self._trees[remote])
            return f"Updating {(local or '0000000')[:7]}..{remote[:7]}\nFast-forward"

    # ===== Helpers =====

    def _require_repo(self) -> None:
        if not self._initialized:
            raise GitError(NOT_A_REPOSITORY)

    def _relative(self, path: str) -> str:
        absolute = path if path.startswith("/") else f"{self.root.rstrip('/')}/{path}"
        parts = []
        for segment in absolute.split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(segment)
        root_parts = [p for p in self.root.split("/") if p]
        if parts[: len(root_parts)] != root_parts:
            raise GitError(f"'{path}' is outside repository at '{self.root}'")
        return "/".join(parts[len(root_parts):])

    def _working_tree(self) -> dict[str, str]:
        root = self.vfs.resolve_path(self.root)
        if root is None or not root.is_directory:
            return {}
        prefix = self.root.rstrip("/") + "/"
        tree = {}
        for node in self.vfs.walk(root.id):
            if node.kind != NodeKind.FILE:
                continue
            path = self.vfs.path_of(node.id)
            if path is not None and path.startswith(prefix):
                tree[path[len(prefix):]] = node.content
        return tree

    def _head_tree(self) -> dict[str, str]:
        oid = self._branches.get(self._head)
        return self._trees.get(oid, {}) if oid else {}

    def _ancestors(self, oid: Optional[str]) -> list[str]:
        chain = []
        while oid is not None:
            chain.append(oid)
            oid = self._commits[oid].parent
        return chain

    def _is_ancestor(self, ancestor: Optional[str], oid: Optional[str]) -> bool:
        return ancestor is not None and ancestor in self._ancestors(oid)

    def _divergence(self) -> tuple[int, int]:
        if self._remote_name is None:
            return 0, 0
        local = self._ancestors(self._branches.get(self._head))
        remote = self._ancestors(self._remote_branches.get(self._head))
        return len(set(local) - set(remote)), len(set(remote) - set(local))

    def _write_tree(self, old: dict[str, str], new: dict[str, str]) -> None:
        """Replace the tracked files of ``old`` with those of ``new`` in the VFS."""
        prefix = self.root.rstrip("/")
        for path in old:
            if path in new:
                continue
            node = self.vfs.resolve_path(f"{prefix}/{path}")
            if node is not None:
                self._check(self.vfs.delete(node.id))
        for path, content in new.items():
            full_path = f"{prefix}/{path}"
            node = self.vfs.resolve_path(full_path)
            if node is not None:
                if node.content != content:
                    self._check(self.vfs.set_content(node.id, content))
                continue
            directory, _, name = full_path.rpartition("/")
            parent = self._check(self.vfs.ensure_directories(directory or "/"))
            self._check(self.vfs.create(NodeKind.FILE, name, parent.id, content=content))

    @staticmethod
    def _check(result):
        if not result.ok:
            raise GitError(result.message)
        return result.node
