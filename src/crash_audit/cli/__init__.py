"""CLI utilities for crash-audit: exit codes, output formatting, consoles."""

from __future__ import annotations

from crash_audit.cli.context import ExitCode, async_command
from crash_audit.cli.output import format_error, format_warning

__all__ = [
    "ExitCode",
    "async_command",
    "format_error",
    "format_warning",
]
