"""Join crash test deletions with the open issue set.

Pure functions: no git, network or filesystem access, so every rule here can
be tested with hand-built values.

Classification rule, checked in order:

1. some file for the issue is still present -> PARTIALLY_CLEANED
   (the issue is expected to be open while a reproduction remains);
2. the issue is open -> OUT_OF_SYNC;
3. otherwise -> SYNCED.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from crash_audit.models import (
    Classification,
    DeletionRecord,
    IssueClassification,
    IssueGroup,
    OpenIssueSnapshot,
    ReconciliationResult,
)
from crash_audit.parser import DEFAULT_TEST_DIR, parse_issue_id

__all__ = [
    "build_issue_groups",
    "classify",
    "reconcile",
]


def build_issue_groups(
    records: Iterable[DeletionRecord],
    current_files: Iterable[str],
    test_dir: str = DEFAULT_TEST_DIR,
) -> list[IssueGroup]:
    """Group deletion records by issue.

    A file deleted and later re-added is present in ``current_files`` and
    therefore counts as remaining, whatever happened to it in between.

    Args:
        records: Deletion records from the history scan.
        current_files: Crash test paths present in the working tree.
        test_dir: Crash test directory used to parse ``current_files``.

    Returns:
        One group per issue with at least one deletion record, ordered by
        issue number.
    """
    by_issue: dict[int, list[DeletionRecord]] = defaultdict(list)
    for record in records:
        by_issue[record.issue_id].append(record)

    present_by_issue: dict[int, set[str]] = defaultdict(set)
    for path in current_files:
        issue_id = parse_issue_id(path, test_dir)
        if issue_id is not None and issue_id in by_issue:
            present_by_issue[issue_id].add(path)

    groups: list[IssueGroup] = []
    for issue_id in sorted(by_issue):
        issue_records = sorted(
            by_issue[issue_id], key=lambda r: r.commit_date, reverse=True
        )
        remaining = frozenset(present_by_issue.get(issue_id, ()))
        deleted = frozenset(r.file_path for r in issue_records) - remaining
        groups.append(
            IssueGroup(
                issue_id=issue_id,
                records=tuple(issue_records),
                deleted_files=deleted,
                remaining_files=remaining,
            )
        )
    return groups


def classify(group: IssueGroup, open_issues: OpenIssueSnapshot) -> Classification:
    """Classify one issue group. See the module docstring for the rule."""
    if group.remaining_files:
        return Classification.PARTIALLY_CLEANED
    if group.issue_id in open_issues:
        return Classification.OUT_OF_SYNC
    return Classification.SYNCED


def reconcile(
    groups: Iterable[IssueGroup],
    open_issues: OpenIssueSnapshot,
) -> ReconciliationResult:
    """Classify every issue group against the open issue snapshot.

    Neither input is modified. Exactly one classification is produced per
    group, so the three classification buckets partition the input.
    """
    items = tuple(
        IssueClassification(group=group, classification=classify(group, open_issues))
        for group in sorted(groups, key=lambda g: g.issue_id)
    )
    return ReconciliationResult(items=items)
