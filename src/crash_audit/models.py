"""Value objects shared by the scan, fetch and reconcile stages.

All types are frozen dataclasses: stages hand them to each other and never
mutate what they receive.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

__all__ = [
    "Classification",
    "DeletionRecord",
    "IssueClassification",
    "IssueGroup",
    "OpenIssueSnapshot",
    "ReconciliationResult",
]


@dataclass(frozen=True, slots=True)
class DeletionRecord:
    """One crash test file removed by one commit.

    Attributes:
        file_path: Repository-relative POSIX path of the removed file.
        issue_id: Issue number parsed from the file name.
        commit_sha: Full SHA of the deleting commit.
        commit_date: Committer timestamp of that commit, in UTC.
        pr_number: Pull request that landed the commit, if the commit
            message names one.
    """

    file_path: str
    issue_id: int
    commit_sha: str
    commit_date: datetime
    pr_number: int | None = None

    @property
    def short_sha(self) -> str:
        """Abbreviated SHA (8 chars)."""
        return self.commit_sha[:8]


@dataclass(frozen=True, slots=True)
class IssueGroup:
    """All deletions for one issue, plus the files for it still on disk.

    Attributes:
        issue_id: Issue number shared by every record.
        records: Deletion records, newest first.
        deleted_files: Paths removed and not present in the working tree.
        remaining_files: Paths for this issue present in the working tree.
    """

    issue_id: int
    records: tuple[DeletionRecord, ...]
    deleted_files: frozenset[str]
    remaining_files: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        overlap = self.deleted_files & self.remaining_files
        if overlap:
            raise ValueError(
                f"Issue #{self.issue_id} lists files as both deleted and "
                f"remaining: {sorted(overlap)}"
            )

    @property
    def latest(self) -> DeletionRecord | None:
        """Most recent deletion record, if any."""
        return self.records[0] if self.records else None

    def deletion_of(self, path: str) -> DeletionRecord | None:
        """Most recent record that deleted ``path``."""
        return next((r for r in self.records if r.file_path == path), None)


@dataclass(frozen=True, slots=True)
class OpenIssueSnapshot:
    """Point-in-time set of open issue numbers.

    Attributes:
        fetched_at: When the set was fetched from the tracker (UTC).
        issue_ids: Open issue numbers.
        repository: ``owner/name`` the set was fetched for, if recorded.
    """

    fetched_at: datetime
    issue_ids: frozenset[int]
    repository: str | None = None

    @classmethod
    def from_numbers(
        cls,
        numbers: Iterable[int],
        *,
        fetched_at: datetime | None = None,
        repository: str | None = None,
    ) -> OpenIssueSnapshot:
        return cls(
            fetched_at=fetched_at or datetime.now(UTC),
            issue_ids=frozenset(numbers),
            repository=repository,
        )

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self.issue_ids

    def __len__(self) -> int:
        return len(self.issue_ids)

    def age(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the snapshot was fetched, never negative."""
        elapsed = (now or datetime.now(UTC)) - self.fetched_at
        return max(elapsed, timedelta(0))

    def matches(self, repository: str | None) -> bool:
        """Whether this snapshot may stand in for ``repository``.

        Snapshots written without a repository match anything.
        """
        if self.repository is None or repository is None:
            return True
        return self.repository.lower() == repository.lower()


class Classification(str, Enum):
    """Reconciliation outcome for one issue.

    Values:
        SYNCED: All files removed and the issue is closed.
        OUT_OF_SYNC: All files removed but the issue is still open.
        PARTIALLY_CLEANED: Some reproduction files are still present.
    """

    SYNCED = "synced"
    OUT_OF_SYNC = "out_of_sync"
    PARTIALLY_CLEANED = "partially_cleaned"


@dataclass(frozen=True, slots=True)
class IssueClassification:
    """An issue group paired with its classification."""

    group: IssueGroup
    classification: Classification

    @property
    def issue_id(self) -> int:
        return self.group.issue_id


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Classifications for every issue group, ordered by issue number."""

    items: tuple[IssueClassification, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[IssueClassification]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def of(self, classification: Classification) -> list[IssueClassification]:
        return [item for item in self.items if item.classification is classification]

    @property
    def synced(self) -> list[IssueClassification]:
        return self.of(Classification.SYNCED)

    @property
    def out_of_sync(self) -> list[IssueClassification]:
        return self.of(Classification.OUT_OF_SYNC)

    @property
    def partially_cleaned(self) -> list[IssueClassification]:
        return self.of(Classification.PARTIALLY_CLEANED)

    @property
    def has_drift(self) -> bool:
        """True when at least one issue is out of sync."""
        return any(
            item.classification is Classification.OUT_OF_SYNC for item in self.items
        )
