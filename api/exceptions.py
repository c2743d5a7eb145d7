"""Exception handlers for the workspace FastAPI application.

This module converts Python exceptions into consistent JSON responses.
VFS operations return failures as values; route handlers turn a failed
``OperationResult`` into a ``VFSOperationError``, and the handler below maps
its kind onto an HTTP status.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from terminal.manager import TerminalNotFoundError
from workspace.errors import ErrorKind, OperationResult, VFSOperationError

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NO_SUCH_PARENT: status.HTTP_404_NOT_FOUND,
    ErrorKind.COMMAND_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_EMPTY: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_MOVE: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_A_DIRECTORY: status.HTTP_400_BAD_REQUEST,
    ErrorKind.IS_A_DIRECTORY: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_NAME: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OPERATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BRIDGE_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.BRIDGE_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.COLLABORATOR_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def raise_for_result(result: OperationResult) -> OperationResult:
    """Raise ``VFSOperationError`` if ``result`` is a failure.

    Args:
        result: Outcome of a VFS operation.

    Returns:
        The same result, when it succeeded.

    Raises:
        VFSOperationError: If the operation failed.
    """
    if not result.ok:
        raise VFSOperationError(result.error.kind, result.error.message)
    return result


# Exception Handlers


async def vfs_error_handler(request: Request, exc: VFSOperationError):
    """Handle VFSOperationError exceptions.

    Args:
        request: The incoming request that triggered the error.
        exc: The VFSOperationError exception.

    Returns:
        JSONResponse whose status depends on the error kind.
    """
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST),
        content={
            "error": exc.kind.value.replace("_", " ").title(),
            "detail": exc.message,
            "kind": exc.kind.value,
        },
    )


async def terminal_not_found_handler(request: Request, exc: TerminalNotFoundError):
    """Handle TerminalNotFoundError exceptions with a 404."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "Terminal Not Found",
            "detail": f"The terminal '{exc.terminal_id}' does not exist",
            "terminal_id": exc.terminal_id,
        },
    )


async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors raised outside request parsing.

    Args:
        request: The incoming request that triggered the error.
        exc: The ValidationError exception.

    Returns:
        JSONResponse with validation error details.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "detail": "The request data failed validation",
            "validation_errors": exc.errors(),
        },
    )


async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions (invalid values that passed validation)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid Value",
            "detail": str(exc),
            "type": "ValueError",
        },
    )


async def runtime_error_handler(request: Request, exc: RuntimeError):
    """Handle RuntimeError exceptions.

    Args:
        request: The incoming request that triggered the error.
        exc: The RuntimeError exception.

    Returns:
        JSONResponse with error details.
    """
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Runtime Error",
            "detail": str(exc),
            "type": "RuntimeError",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle any unhandled exceptions without exposing stack traces.

    Args:
        request: The incoming request that triggered the error.
        exc: The exception that was raised.

    Returns:
        JSONResponse with generic error message.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred",
            "type": type(exc).__name__,
        },
    )
