"""Open-tab session model."""

from typing import Iterable, Optional

from pydantic import BaseModel, Field


class TabSession(BaseModel):
    """Ordered set of open nodes plus the active selection.

    Tabs hold node ids only. Display names are resolved through the VFS on
    every read, so a rename is visible without touching the session.

    Args:
        open_ids: Ids of open nodes, in tab-bar order. Each id appears at most once.
        active_id: Id of the active tab, or None.
    """

    open_ids: list[str] = Field(default_factory=list, description="Open node ids")
    active_id: Optional[str] = Field(default=None, description="Active node id")

    def open(self, node_id: str) -> None:
        """Activate ``node_id``, appending it first if it is not open yet."""
        if node_id not in self.open_ids:
            self.open_ids.append(node_id)
        self.active_id = node_id

    def activate(self, node_id: str) -> bool:
        """Make an already-open tab active.

        Returns:
            False if ``node_id`` is not open.
        """
        if node_id not in self.open_ids:
            return False
        self.active_id = node_id
        return True

    def close(self, node_id: str) -> bool:
        """Close one tab, promoting a neighbor if it was active.

        The tab that slides into the closed tab's index becomes active; if the
        closed tab was last, the previous one does; with no tabs left the
        active pointer clears.

        Returns:
            False if ``node_id`` was not open.
        """
        if node_id not in self.open_ids:
            return False
        index = self.open_ids.index(node_id)
        self.open_ids.pop(index)
        if self.active_id == node_id:
            if self.open_ids:
                self.active_id = self.open_ids[min(index, len(self.open_ids) - 1)]
            else:
                self.active_id = None
        return True

    def close_many(self, node_ids: Iterable[str]) -> list[str]:
        """Close every open tab whose id is in ``node_ids``.

        Tabs are closed one at a time in tab-bar order, so the neighbor rule
        applies against the list as it shrinks.

        Returns:
            Ids that were actually closed.
        """
        targets = set(node_ids)
        closed = [node_id for node_id in self.open_ids if node_id in targets]
        for node_id in closed:
            self.close(node_id)
        return closed

    def close_all(self) -> None:
        self.open_ids.clear()
        self.active_id = None

    def validate_state(self) -> list[str]:
        errors = []
        if len(set(self.open_ids)) != len(self.open_ids):
            errors.append("Tab list contains duplicate ids")
        if self.active_id is not None and self.active_id not in self.open_ids:
            errors.append(f"Active tab {self.active_id} is not in the tab list")
        return errors
