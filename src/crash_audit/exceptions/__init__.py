"""crash-audit exception hierarchy.

All exceptions can be imported from this package:
    from crash_audit.exceptions import RepositoryError, TrackerError
"""

from __future__ import annotations

# Base exception
from crash_audit.exceptions.base import CrashAuditError

# Cache exceptions
from crash_audit.exceptions.cache import CacheError

# Configuration exceptions
from crash_audit.exceptions.config import ConfigError

# Repository / history exceptions
from crash_audit.exceptions.git import (
    NoCommitsError,
    RepositoryError,
    RepositoryNotFoundError,
)

# Input validation exceptions
from crash_audit.exceptions.input import InputError, InvalidDateRangeError

# Tracker exceptions
from crash_audit.exceptions.tracker import (
    RateLimitedError,
    TrackerAuthError,
    TrackerError,
    TransientTrackerError,
)

__all__ = [
    "CacheError",
    "ConfigError",
    "CrashAuditError",
    "InputError",
    "InvalidDateRangeError",
    "NoCommitsError",
    "RateLimitedError",
    "RepositoryError",
    "RepositoryNotFoundError",
    "TrackerAuthError",
    "TrackerError",
    "TransientTrackerError",
]
