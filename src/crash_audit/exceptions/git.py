from __future__ import annotations

from pathlib import Path

from crash_audit.exceptions.base import CrashAuditError


class RepositoryError(CrashAuditError):
    """Exception for history scanning failures.

    Raised when the commit graph cannot be walked at all. Individual
    unreadable commits are skipped by the scanner instead of raising.

    Attributes:
        message: Human-readable error message.
        path: Repository path (if known).
    """

    stage = "scan"

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize the RepositoryError.

        Args:
            message: Human-readable error message.
            path: Repository path (if known).
        """
        self.path = path
        super().__init__(message)


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when the target path is not a valid git repository."""

    def __init__(self, path: Path | str) -> None:
        """Initialize the RepositoryNotFoundError.

        Args:
            path: Path that is missing or not a repository.
        """
        super().__init__(f"Not a git repository: {path}", path=path)


class NoCommitsError(RepositoryError):
    """Exception raised when no commit is reachable within the scan window.

    Attributes:
        message: Human-readable error message.
        path: Repository path.
    """

    def __init__(
        self,
        message: str = "No commits found in the requested range",
        path: Path | str | None = None,
    ) -> None:
        """Initialize the NoCommitsError.

        Args:
            message: Human-readable error message.
            path: Repository path.
        """
        super().__init__(message, path=path)
