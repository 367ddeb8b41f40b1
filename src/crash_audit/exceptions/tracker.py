from __future__ import annotations

from crash_audit.exceptions.base import CrashAuditError


class TrackerError(CrashAuditError):
    """Exception for issue tracker API failures.

    Non-transient by default: callers must not retry a plain TrackerError.

    Attributes:
        message: Human-readable error message.
        status: HTTP status code returned by the tracker (if any).
        page: Zero-based page number being fetched (if applicable).
    """

    stage = "fetch"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        page: int | None = None,
    ) -> None:
        """Initialize the TrackerError.

        Args:
            message: Human-readable error message.
            status: HTTP status code (if any).
            page: Zero-based page number (if applicable).
        """
        self.status = status
        self.page = page
        super().__init__(message)


class TransientTrackerError(TrackerError):
    """Retryable tracker failure (5xx, connection reset, timeout)."""


class RateLimitedError(TrackerError):
    """The tracker reported that the request quota is exhausted.

    Never retried: the run should fall back to the cache or be deferred.

    Attributes:
        retry_after: Seconds until the quota resets (if reported).
    """

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        retry_after: int | None = None,
        status: int | None = 403,
        page: int | None = None,
    ) -> None:
        """Initialize the RateLimitedError.

        Args:
            message: Human-readable error message.
            retry_after: Seconds until the quota resets (if reported).
            status: HTTP status code.
            page: Zero-based page number.
        """
        self.retry_after = retry_after
        super().__init__(message, status=status, page=page)


class TrackerAuthError(TrackerError):
    """The tracker rejected the supplied credentials."""

    def __init__(self, message: str | None = None, page: int | None = None) -> None:
        """Initialize the TrackerAuthError.

        Args:
            message: Custom error message. Defaults to a token hint.
            page: Zero-based page number.
        """
        super().__init__(
            message
            or "GitHub rejected the token. Check --github-token or GITHUB_TOKEN.",
            status=401,
            page=page,
        )
