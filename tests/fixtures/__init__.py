"""Test fixtures for the virtual workspace.

This package provides reusable test fixtures:
- workspace: settings, VFS instances, a fake Disk Bridge, a virtual git repository
- terminal: interpreters and the terminal manager
- api: TestClient and a fresh terminal manager for API tests
"""
