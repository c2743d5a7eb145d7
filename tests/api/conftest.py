"""Shared fixtures for API integration tests.

This module provides a TestClient wired to a fresh workspace through
FastAPI's dependency override system.
"""

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_terminal_manager, get_workspace
from main import app


@pytest.fixture
def client_with_workspace(fresh_manager):
    """Provide a TestClient with a fresh workspace injected.

    Args:
        fresh_manager: A pytest fixture providing a fresh TerminalManager.

    Yields:
        A tuple of (TestClient, TerminalManager) for testing.

    Example:
        def test_something(client_with_workspace):
            client, manager = client_with_workspace
            response = client.get("/fs/tree")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_workspace] = lambda: fresh_manager.vfs
    app.dependency_overrides[get_terminal_manager] = lambda: fresh_manager

    client = TestClient(app)

    yield client, fresh_manager

    app.dependency_overrides.clear()
