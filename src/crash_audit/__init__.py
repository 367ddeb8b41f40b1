"""crash-audit: find crash tests that were deleted while their issue stayed open.

The package reconciles a repository's ``tests/crashes`` directory history with
the open issues of its GitHub tracker.

Usage:
    ```python
    import asyncio

    from crash_audit.audit import AuditOptions, run_audit
    from crash_audit.tracker import OpenIssueCache, TrackerClient

    report = asyncio.run(
        run_audit(
            AuditOptions(repo_path="/path/to/rust"),
            cache=OpenIssueCache(),
            client=TrackerClient.for_github(token=None),
        )
    )
    for item in report.result.out_of_sync:
        print(item.group.issue_id)
    ```
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
