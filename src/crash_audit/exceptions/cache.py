from __future__ import annotations

from pathlib import Path

from crash_audit.exceptions.base import CrashAuditError


class CacheError(CrashAuditError):
    """Exception for unreadable, corrupt or unwritable cache files.

    Never fatal: a failed read is a cache miss and a failed write only loses
    the persisted copy of a snapshot that is still used for the run.

    Attributes:
        message: Human-readable error message.
        path: Cache file path.
    """

    stage = "cache"

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize the CacheError.

        Args:
            message: Human-readable error message.
            path: Cache file path.
        """
        self.path = path
        super().__init__(message)
