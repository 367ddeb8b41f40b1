"""Shared Rich console for CLI output on stderr.

Rich styles output in terminals and emits plain text when piped.
"""

from __future__ import annotations

from rich.console import Console

__all__ = ["err_console"]

# Reports go to stdout through click.echo; status and warnings go here
err_console = Console(stderr=True)
