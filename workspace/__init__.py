"""Virtual workspace core package.

This package contains the virtual file system and everything it talks to:
the node model, the error taxonomy, the tab session, the Disk Bridge
contract with its local implementation, the Git collaborator contract with
an in-memory repository, settings and the demo seed tree.
"""

from workspace.node import ROOT_ID, FileNode, NodeKind, NodeUpdate
from workspace.errors import ErrorKind, OperationResult, VFSError, VFSOperationError
from workspace.settings import WorkspaceSettings
from workspace.tabs import TabSession
from workspace.bridge import BridgeResult, DiskBridge, DiskEntry, LocalDiskBridge
from workspace.vfs import TabView, VirtualFileSystem
from workspace.git import (
    GitBranch,
    GitCollaborator,
    GitCommit,
    GitError,
    GitStatus,
    VirtualGitRepository,
)

__all__ = [
    "ROOT_ID",
    "FileNode",
    "NodeKind",
    "NodeUpdate",
    "ErrorKind",
    "OperationResult",
    "VFSError",
    "VFSOperationError",
    "WorkspaceSettings",
    "TabSession",
    "BridgeResult",
    "DiskBridge",
    "DiskEntry",
    "LocalDiskBridge",
    "TabView",
    "VirtualFileSystem",
    "GitBranch",
    "GitCollaborator",
    "GitCommit",
    "GitError",
    "GitStatus",
    "VirtualGitRepository",
]
