"""Helper functions for API integration tests.

This module provides convenience functions for building request bodies and
looking up nodes through the API, so tests read as a sequence of requests
rather than JSON plumbing.
"""

from typing import Any, Optional

from fastapi.testclient import TestClient


def make_create_request(
    name: str,
    kind: str = "file",
    parent_path: Optional[str] = None,
    parent_id: Optional[str] = None,
    content: str = "",
) -> dict[str, Any]:
    """Create a POST /fs/nodes request body.

    Args:
        name: Name of the new node.
        kind: "file" or "directory".
        parent_path: Path of the parent directory (default "/" when no id is given).
        parent_id: Id of the parent directory.
        content: Initial content for files.

    Returns:
        Request dictionary ready for POST /fs/nodes.

    Example:
        >>> make_create_request("notes.txt", parent_path="/home/user", content="hi")
        {'name': 'notes.txt', 'kind': 'file', 'parent_path': '/home/user', 'content': 'hi'}
    """
    request: dict[str, Any] = {"name": name, "kind": kind}
    if parent_id is not None:
        request["parent_id"] = parent_id
    else:
        request["parent_path"] = parent_path or "/"
    if content:
        request["content"] = content
    return request


def node_id_at(client: TestClient, path: str) -> str:
    """Resolve ``path`` through GET /fs/resolve and return the node id."""
    response = client.get("/fs/resolve", params={"path": path})
    assert response.status_code == 200, response.json()
    return response.json()["id"]


def execute(client: TestClient, command: str, terminal_id: Optional[str] = None) -> dict[str, Any]:
    """Execute ``command`` (in the active terminal unless an id is given)."""
    url = f"/terminals/{terminal_id}/execute" if terminal_id else "/terminals/execute"
    response = client.post(url, json={"command": command})
    assert response.status_code == 200, response.json()
    return response.json()
