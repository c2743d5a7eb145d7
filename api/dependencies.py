"""Dependency injection providers for the FastAPI application.

This module holds the shared VirtualFileSystem and TerminalManager created
at start-up and exposes them to route handlers as FastAPI dependencies.
"""

from typing import Annotated, Optional

from fastapi import Depends

from terminal.manager import TerminalManager
from workspace.bridge import LocalDiskBridge
from workspace.git import VirtualGitRepository
from workspace.settings import WorkspaceSettings
from workspace.vfs import VirtualFileSystem


# Global state
# One workspace per process; every terminal and every request shares it
_workspace: VirtualFileSystem | None = None
_terminal_manager: TerminalManager | None = None


def get_workspace() -> VirtualFileSystem:
    """Get the shared VirtualFileSystem instance.

    Returns:
        The shared VirtualFileSystem instance.

    Raises:
        RuntimeError: If the workspace hasn't been initialized yet.

    Example:
        @router.get("/some-endpoint")
        async def my_handler(vfs: Annotated[VirtualFileSystem, Depends(get_workspace)]):
            return vfs.get_snapshot()
    """
    if _workspace is None:
        raise RuntimeError("Workspace not initialized. Call initialize_workspace() first.")
    return _workspace


def get_terminal_manager() -> TerminalManager:
    """Get the shared TerminalManager instance.

    Raises:
        RuntimeError: If the workspace hasn't been initialized yet.
    """
    if _terminal_manager is None:
        raise RuntimeError("Workspace not initialized. Call initialize_workspace() first.")
    return _terminal_manager


def initialize_workspace(settings: Optional[WorkspaceSettings] = None) -> TerminalManager:
    """Create the shared workspace and terminal manager.

    This should be called once when the FastAPI app starts up. When
    ``settings.bound_root`` is set the VFS is bound to that directory instead
    of being seeded with the demo tree.

    Args:
        settings: Settings to use (defaults to ``WorkspaceSettings.from_env()``).

    Returns:
        The newly created TerminalManager.

    Raises:
        RuntimeError: If the configured root cannot be bound.
    """
    global _workspace, _terminal_manager

    settings = settings or WorkspaceSettings.from_env()
    bridge = LocalDiskBridge(
        max_depth=settings.bridge_max_depth,
        max_file_bytes=settings.bridge_max_file_bytes,
    )
    vfs = VirtualFileSystem(
        settings=settings,
        bridge=bridge,
        seed=settings.seed_demo_tree and not settings.bound_root,
    )
    if settings.bound_root:
        result = vfs.bind(settings.bound_root)
        if not result.ok:
            raise RuntimeError(f"Cannot bind workspace to {settings.bound_root}: {result.message}")

    git = VirtualGitRepository(
        vfs,
        root="/" if settings.bound_root else settings.home,
        author=settings.username,
    )
    _workspace = vfs
    _terminal_manager = TerminalManager(vfs, settings=settings, git=git)
    return _terminal_manager


def shutdown_workspace():
    """Persist terminals (when configured) and release the workspace.

    This should be called when the FastAPI app shuts down.
    """
    global _workspace, _terminal_manager

    if _terminal_manager is not None:
        _terminal_manager.shutdown()

    _terminal_manager = None
    _workspace = None


# Type aliases for dependency injection
WorkspaceDep = Annotated[VirtualFileSystem, Depends(get_workspace)]
TerminalManagerDep = Annotated[TerminalManager, Depends(get_terminal_manager)]
