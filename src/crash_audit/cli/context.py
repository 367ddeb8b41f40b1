"""Exit codes and Click helpers for the crash-audit CLI."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from enum import IntEnum
from typing import Any, TypeVar

__all__ = [
    "ExitCode",
    "async_command",
]


class ExitCode(IntEnum):
    """Process exit codes.

    - 0: no out-of-sync issues
    - 1: out-of-sync issues found (advisory)
    - 2: operational failure (bad input, repository, network, auth)
    - 130: keyboard interrupt (128 + SIGINT=2)
    """

    SUCCESS = 0
    OUT_OF_SYNC = 1
    FAILURE = 2
    INTERRUPTED = 130


F = TypeVar("F", bound=Callable[..., Any])


def async_command(f: F) -> F:
    """Decorator to run async Click commands with asyncio.run().

    A keyboard interrupt exits with ExitCode.INTERRUPTED instead of Click's
    generic "Aborted!" status.

    Example:
        >>> @click.command()
        >>> @async_command
        >>> async def audit(repo_path: str) -> None:
        >>>     await run_audit(...)
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return asyncio.run(f(*args, **kwargs))
        except KeyboardInterrupt:
            raise SystemExit(ExitCode.INTERRUPTED) from None

    return wrapper  # type: ignore[return-value]
