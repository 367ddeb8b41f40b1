from __future__ import annotations

from datetime import date
from pathlib import Path

from crash_audit.exceptions.base import CrashAuditError


class InputError(CrashAuditError):
    """Exception for invalid user input detected before any work starts.

    Input errors are always fatal: nothing is scanned or fetched.

    Attributes:
        message: Human-readable error message.
        path: Offending path (if applicable).
    """

    stage = "input"

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize the InputError.

        Args:
            message: Human-readable error message.
            path: Offending path (if applicable).
        """
        self.path = path
        super().__init__(message)


class InvalidDateRangeError(InputError):
    """Exception raised when ``--from`` falls after ``--to``.

    Attributes:
        date_from: Requested start date.
        date_to: Requested end date.
    """

    def __init__(self, date_from: date, date_to: date) -> None:
        """Initialize the InvalidDateRangeError.

        Args:
            date_from: Requested start date.
            date_to: Requested end date.
        """
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(
            f"Start date {date_from.isoformat()} is after end date "
            f"{date_to.isoformat()}"
        )
