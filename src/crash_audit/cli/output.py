"""Message formatting for CLI output on stderr."""

from __future__ import annotations

__all__ = [
    "format_error",
    "format_warning",
]


def format_error(
    message: str,
    stage: str | None = None,
    suggestion: str | None = None,
) -> str:
    """Format a fatal error as a single line plus an optional suggestion.

    Example:
        >>> format_error("Not a git repository: /tmp/x", stage="scan")
        'Error: scan failed: Not a git repository: /tmp/x'
    """
    prefix = f"Error: {stage} failed: " if stage else "Error: "
    lines = [f"{prefix}{message}"]
    if suggestion:
        lines.append(f"Suggestion: {suggestion}")
    return "\n".join(lines)


def format_warning(message: str) -> str:
    """Format a warning message.

    Example:
        >>> format_warning("Using cached data")
        'Warning: Using cached data'
    """
    return f"Warning: {message}"
