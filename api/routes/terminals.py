"""Terminal endpoints.

These endpoints drive the TerminalManager: creating, closing and
activating terminals, the split view, executing lines, reading scrollback
(including entries still pending on an asynchronous built-in), completion
and persistence.
"""

from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from api.dependencies import TerminalManagerDep
from api.models import ScrollbackResponse, StatusResponse, TerminalSummary
from terminal.manager import SplitMode, TerminalManager
from terminal.models import ScrollbackEntry, Suggestion
from workspace.errors import ErrorKind, VFSOperationError

# Create router for terminal endpoints
router = APIRouter(
    prefix="/terminals",
    tags=["terminals"],
)


# Request/Response Models


class CreateTerminalRequest(BaseModel):
    shell: Optional[str] = None


class SplitRequest(BaseModel):
    mode: SplitMode


class ExecuteRequest(BaseModel):
    """Request model for executing one input line.

    Attributes:
        command: The raw input line.
    """

    command: str = Field(max_length=10_000)


class ExecuteResponse(BaseModel):
    """Response model for an executed line.

    Attributes:
        terminal_id: Terminal the line ran in.
        output: Synchronous output block.
        is_error: Whether the block is an error.
        entry_id: Scrollback entry id (poll it while ``pending``).
        pending: Whether a later block will be appended.
        cwd: Working directory after the command.
        prompt: Prompt after the command.
    """

    terminal_id: str
    output: str
    is_error: bool
    entry_id: Optional[str] = None
    pending: bool = False
    cwd: str
    prompt: str


class TerminalsResponse(BaseModel):
    terminals: list[TerminalSummary]
    active_id: str
    split_mode: Optional[SplitMode] = None
    split_id: Optional[str] = None


# Helpers


def _terminals_response(manager: TerminalManager) -> TerminalsResponse:
    visible = {interpreter.id for interpreter in manager.visible_terminals()}
    return TerminalsResponse(
        terminals=[
            TerminalSummary.from_interpreter(
                interpreter,
                active=interpreter.id == manager.active_id,
                visible=interpreter.id in visible,
            )
            for interpreter in manager.list_terminals()
        ],
        active_id=manager.active_id,
        split_mode=manager.split_mode,
        split_id=manager.split_id,
    )


def _execute(manager: TerminalManager, command: str, terminal_id: Optional[str]) -> ExecuteResponse:
    interpreter = manager.get(terminal_id) if terminal_id else manager.active
    result = manager.execute(command, interpreter.id)
    return ExecuteResponse(
        terminal_id=interpreter.id,
        output=result.output,
        is_error=result.is_error,
        entry_id=result.entry_id,
        pending=result.pending,
        cwd=interpreter.cwd,
        prompt=interpreter.prompt,
    )


# Route Handlers


@router.get("", response_model=TerminalsResponse)
async def list_terminals(manager: TerminalManagerDep):
    """List terminals with the active and split state."""
    return _terminals_response(manager)


@router.post("", response_model=TerminalSummary, status_code=status.HTTP_201_CREATED)
async def create_terminal(request: CreateTerminalRequest, manager: TerminalManagerDep):
    """Create and activate a new terminal.

    Raises:
        ValueError: If the shell flavour is unknown (rendered as 400).
    """
    interpreter = manager.create_terminal(request.shell)
    return TerminalSummary.from_interpreter(interpreter, active=True, visible=True)


@router.delete("/{terminal_id}", response_model=StatusResponse)
async def close_terminal(terminal_id: str, manager: TerminalManagerDep):
    """Close a terminal. The last terminal cannot be closed."""
    if not manager.close_terminal(terminal_id):
        raise VFSOperationError(ErrorKind.INVALID_OPERATION, "Cannot close the last terminal")
    return StatusResponse(status="closed", message=f"Closed terminal {terminal_id}")


@router.post("/{terminal_id}/activate", response_model=TerminalsResponse)
async def activate_terminal(terminal_id: str, manager: TerminalManagerDep):
    """Make a terminal active."""
    manager.activate(terminal_id)
    return _terminals_response(manager)


@router.post("/split", response_model=TerminalsResponse)
async def toggle_split(request: SplitRequest, manager: TerminalManagerDep):
    """Toggle the split view. Requesting the current mode again turns it off."""
    manager.toggle_split(request.mode)
    return _terminals_response(manager)


@router.post("/execute", response_model=ExecuteResponse)
async def execute_active(request: ExecuteRequest, manager: TerminalManagerDep):
    """Execute a line in the active terminal."""
    return _execute(manager, request.command, None)


@router.post("/save", response_model=StatusResponse)
async def save_terminals(manager: TerminalManagerDep):
    """Persist every terminal to the configured store file.

    Raises:
        RuntimeError: If persistence is not configured (rendered as 500).
    """
    path = manager.save()
    return StatusResponse(status="saved", message=f"Saved terminals to {path}")


@router.post("/{terminal_id}/execute", response_model=ExecuteResponse)
async def execute(terminal_id: str, request: ExecuteRequest, manager: TerminalManagerDep):
    """Execute a line in a specific terminal."""
    return _execute(manager, request.command, terminal_id)


@router.get("/{terminal_id}/scrollback", response_model=ScrollbackResponse)
async def get_scrollback(terminal_id: str, manager: TerminalManagerDep):
    """Get a terminal's scrollback."""
    interpreter = manager.get(terminal_id)
    return ScrollbackResponse(terminal_id=terminal_id, entries=interpreter.get_scrollback())


@router.get("/{terminal_id}/entries/{entry_id}", response_model=ScrollbackEntry)
async def get_entry(terminal_id: str, entry_id: str, manager: TerminalManagerDep):
    """Get one scrollback entry, e.g. to poll a pending command."""
    entry = manager.get(terminal_id).get_entry(entry_id)
    if entry is None:
        raise VFSOperationError(ErrorKind.NOT_FOUND, f"No such entry: {entry_id}")
    return entry


@router.post("/{terminal_id}/clear", response_model=StatusResponse)
async def clear_terminal(terminal_id: str, manager: TerminalManagerDep):
    """Empty a terminal's scrollback."""
    manager.clear(terminal_id)
    return StatusResponse(status="cleared", message=f"Cleared terminal {terminal_id}")


@router.get("/{terminal_id}/complete", response_model=list[Suggestion])
async def complete(terminal_id: str, manager: TerminalManagerDep, text: str = ""):
    """Suggest built-in commands for the first token of ``text``."""
    return manager.get(terminal_id).complete(text)
