"""Result envelope helpers."""

from typing import Any, Optional

from chartscan.core.models import ToolResult


def ok(
    summary: str,
    data: Optional[dict[str, Any]] = None,
    meta: Optional[dict[str, Any]] = None,
) -> ToolResult:
    """Successful result."""
    return ToolResult(ok=True, summary=summary, data=data or {}, meta=meta or {})


def fail(
    message: str,
    error_type: str = "user",
    meta: Optional[dict[str, Any]] = None,
) -> ToolResult:
    """
    Failed result.

    Args:
        message: Human-readable failure reason
        error_type: "user" for rejected input, "internal" for anything else
        meta: Extra metadata merged after the error type

    Returns:
        ToolResult with ok=False and an "Error: " summary
    """
    return ToolResult(
        ok=False,
        summary=f"Error: {message}",
        data={},
        meta={"error_type": error_type, **(meta or {})},
    )
