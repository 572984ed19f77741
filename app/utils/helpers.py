"""Helper utilities for the application."""
from typing import Any, Dict, Optional
from fastapi.responses import JSONResponse


def error_response(
    message: str,
    status_code: int = 500,
    extra: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Create a standardized error response body.

    Unlike HTTPException, the body keeps extra keys (captured output,
    partial test results) at the top level next to "error".

    Args:
        message: Human-readable error message
        status_code: HTTP status code
        extra: Additional top-level fields

    Returns:
        JSONResponse with {"error": message, **extra}

    Example:
        error_response("Failed to compile project: exit status 1", extra={"output": out})
    """
    content: Dict[str, Any] = {"error": message}
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def toolchain_failure_message(step: str, reason: str) -> str:
    """
    Build the error message for a failed toolchain step.

    Args:
        step: "compile" or "test"
        reason: Short failure reason (e.g. "exit status 1")

    Returns:
        Message such as "Failed to test project: exit status 1"
    """
    return f"Failed to {step} project: {reason}"
