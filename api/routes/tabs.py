"""Editor tab endpoints.

Tabs store node ids only; titles and paths in every response are read
through the VFS, so a renamed or moved file shows its current name.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from api.dependencies import WorkspaceDep
from api.exceptions import raise_for_result
from workspace.vfs import TabView

# Create router for tab endpoints
router = APIRouter(
    prefix="/tabs",
    tags=["tabs"],
)


class OpenTabRequest(BaseModel):
    node_id: str


class TabsResponse(BaseModel):
    """The tab bar.

    Attributes:
        tabs: Open tabs in order.
        active_id: Id of the active tab, if any.
    """

    tabs: list[TabView]
    active_id: Optional[str] = None


def _tabs_response(vfs) -> TabsResponse:
    tabs = vfs.tabs()
    active = next((tab.id for tab in tabs if tab.active), None)
    return TabsResponse(tabs=tabs, active_id=active)


@router.get("", response_model=TabsResponse)
async def list_tabs(vfs: WorkspaceDep):
    """Get the tab bar."""
    return _tabs_response(vfs)


@router.post("/open", response_model=TabsResponse)
async def open_tab(request: OpenTabRequest, vfs: WorkspaceDep):
    """Open a file in a tab, or activate it if already open."""
    raise_for_result(vfs.open_tab(request.node_id))
    return _tabs_response(vfs)


@router.post("/{node_id}/close", response_model=TabsResponse)
async def close_tab(node_id: str, vfs: WorkspaceDep):
    """Close one tab. Closing a tab that is not open is a no-op."""
    vfs.close_tab(node_id)
    return _tabs_response(vfs)


@router.post("/close-all", response_model=TabsResponse)
async def close_all_tabs(vfs: WorkspaceDep):
    """Close every tab."""
    vfs.close_all_tabs()
    return _tabs_response(vfs)
