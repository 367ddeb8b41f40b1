"""Open issue tracker access: client, retry policy and snapshot cache.

Usage:
    ```python
    from crash_audit.tracker import OpenIssueCache, TrackerClient, resolve_open_issues

    client = TrackerClient.for_github(token=token)
    resolution = await resolve_open_issues(
        OpenIssueCache(), client, "rust-lang/rust", refresh=False
    )
    open_issues = resolution.snapshot
    ```
"""

from __future__ import annotations

from crash_audit.tracker.cache import (
    DEFAULT_CACHE_PATH,
    CachedIssues,
    IssueSource,
    OpenIssueCache,
    OpenIssueResolution,
    resolve_open_issues,
)
from crash_audit.tracker.client import (
    ANONYMOUS_RATE_LIMIT,
    AUTHENTICATED_RATE_LIMIT,
    DEFAULT_PER_PAGE,
    GitHubIssueTransport,
    IssuePage,
    IssueTransport,
    TrackerClient,
)
from crash_audit.tracker.retry import RetryPolicy

__all__ = [
    "ANONYMOUS_RATE_LIMIT",
    "AUTHENTICATED_RATE_LIMIT",
    "DEFAULT_CACHE_PATH",
    "DEFAULT_PER_PAGE",
    "CachedIssues",
    "GitHubIssueTransport",
    "IssuePage",
    "IssueSource",
    "IssueTransport",
    "OpenIssueCache",
    "OpenIssueResolution",
    "RetryPolicy",
    "TrackerClient",
    "resolve_open_issues",
]
