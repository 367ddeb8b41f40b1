"""Bounded retry policy for tracker requests.

The policy is a value object handed to the tracker client, so tests can swap
in a zero-delay policy and the retry rules live in one place: only transient
failures are retried, and only a fixed number of times.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from crash_audit.exceptions import TransientTrackerError
from crash_audit.logging import get_logger

__all__ = ["RetryPolicy"]

logger = get_logger(__name__)

#: Default number of attempts per page (first try included)
DEFAULT_MAX_ATTEMPTS: int = 3

#: Default delay before the first retry, in seconds
DEFAULT_BASE_DELAY: float = 1.0

#: Default upper bound on a single backoff delay, in seconds
DEFAULT_MAX_DELAY: float = 8.0


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    logger.warning(
        "tracker_request_retry",
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.upcoming_sleep, 2),
        error=str(error) if error else None,
    )


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential-backoff retry rules.

    Attributes:
        max_attempts: Total attempts per request, first try included.
        base_delay: Delay before the first retry; doubles on each retry.
        max_delay: Cap on any single delay.
        retryable: Exception types worth retrying. Anything else propagates
            on the first failure.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    retryable: tuple[type[BaseException], ...] = field(
        default=(TransientTrackerError,)
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays cannot be negative")

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """A policy that makes exactly one attempt."""
        return cls(max_attempts=1, base_delay=0.0, max_delay=0.0)

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retryable)

    def retrying(self) -> AsyncRetrying:
        """Build a tenacity controller for one request.

        The last error is re-raised unchanged once attempts run out.
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.base_delay,
                min=self.base_delay,
                max=self.max_delay,
            ),
            retry=retry_if_exception_type(self.retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
