"""Main entry point for the Virtual Workspace Shell FastAPI application.

This module creates and configures the FastAPI app instance that serves the
REST API behind the browser workspace: the virtual file system, the editor
tab bar and the terminals.

To run the development server:
    uvicorn main:app --reload

To run in production:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import ValidationError

from api.dependencies import initialize_workspace, shutdown_workspace
from api.exceptions import (
    generic_exception_handler,
    runtime_error_handler,
    terminal_not_found_handler,
    validation_exception_handler,
    value_error_handler,
    vfs_error_handler,
)
from api.routes import filesystem as filesystem_routes
from api.routes import tabs as tab_routes
from api.routes import terminals as terminal_routes
from terminal.manager import TerminalNotFoundError
from workspace.errors import VFSOperationError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events.

    Creates the shared workspace and terminal manager at startup and
    persists/stops the terminals at shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to FastAPI to handle requests.
    """
    print("🚀 Starting Virtual Workspace Shell - Initializing workspace...")
    manager = initialize_workspace()
    print(f"✅ Workspace initialized ({len(manager.list_terminals())} terminal(s))")

    yield

    print("🛑 Shutting down Virtual Workspace Shell - Saving terminals...")
    shutdown_workspace()
    print("✅ Shutdown complete")


app = FastAPI(
    title="Virtual Workspace Shell",
    description="Virtual file system, editor tabs and shell terminals for a browser workspace",
    version="0.1.0",
    lifespan=lifespan,
)

# Register exception handlers
# Order matters: specific exceptions before general ones
app.add_exception_handler(VFSOperationError, vfs_error_handler)
app.add_exception_handler(TerminalNotFoundError, terminal_not_found_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(RuntimeError, runtime_error_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Register route modules
app.include_router(filesystem_routes.router)
app.include_router(tab_routes.router)
app.include_router(terminal_routes.router)


@app.get("/")
async def root():
    """Root endpoint - returns a welcome message."""
    return {
        "message": "Welcome to the Virtual Workspace Shell API",
        "version": "0.1.0",
        "docs_url": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring.

    Returns:
        A dictionary indicating the service is healthy.
    """
    return {"status": "healthy"}
