"""The audit pipeline: scan history, resolve open issues, reconcile.

Each stage raises its own exception family (see ``crash_audit.exceptions``)
so a failure can be reported against the stage that produced it. Nothing is
reported before reconciliation completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from crash_audit.exceptions import InputError, InvalidDateRangeError
from crash_audit.git import HistoryScanner, ScanResult
from crash_audit.logging import bind_context, clear_context, get_logger
from crash_audit.models import IssueGroup, ReconciliationResult
from crash_audit.parser import DEFAULT_TEST_DIR, normalize_test_dir
from crash_audit.reconcile import build_issue_groups, reconcile
from crash_audit.tracker import (
    OpenIssueCache,
    OpenIssueResolution,
    TrackerClient,
    resolve_open_issues,
)

__all__ = [
    "AuditOptions",
    "AuditReport",
    "run_audit",
]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AuditOptions:
    """Inputs for one audit run.

    Attributes:
        repo_path: Repository to scan.
        date_from: Inclusive lower bound on deletion commit dates.
        date_to: Inclusive upper bound on deletion commit dates.
        refresh_cache: Fetch open issues even if a snapshot is cached.
        repository: ``owner/name`` of the issue tracker repository.
        test_dir: Crash test directory relative to the repository root.
    """

    repo_path: Path
    date_from: date | None = None
    date_to: date | None = None
    refresh_cache: bool = False
    repository: str = "rust-lang/rust"
    test_dir: str = DEFAULT_TEST_DIR

    def validate(self) -> None:
        """Check the inputs before any work starts.

        Raises:
            InputError: If the repository path is missing or not a directory,
                or the tracker repository is not an ``owner/name`` slug.
            InvalidDateRangeError: If ``date_from`` is after ``date_to``.
        """
        path = Path(self.repo_path)
        if not path.exists():
            raise InputError(f"Repository path does not exist: {path}", path=path)
        if not path.is_dir():
            raise InputError(f"Repository path is not a directory: {path}", path=path)
        owner, _, name = self.repository.partition("/")
        if not owner or not name or "/" in name:
            raise InputError(
                f"Tracker repository must look like 'owner/name': {self.repository!r}"
            )
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_from > self.date_to
        ):
            raise InvalidDateRangeError(self.date_from, self.date_to)


@dataclass(frozen=True, slots=True)
class AuditReport:
    """Everything a report needs about one run.

    Attributes:
        options: Inputs the run was started with.
        scan: History scan outcome.
        groups: Deletions grouped by issue.
        result: Classification of every group.
        open_issues: Open issue snapshot and its provenance. None when
            nothing was deleted and the tracker was not consulted.
    """

    options: AuditOptions
    scan: ScanResult
    groups: tuple[IssueGroup, ...] = field(default_factory=tuple)
    result: ReconciliationResult = field(default_factory=ReconciliationResult)
    open_issues: OpenIssueResolution | None = None

    @property
    def has_drift(self) -> bool:
        return self.result.has_drift


async def run_audit(
    options: AuditOptions,
    *,
    cache: OpenIssueCache,
    client: TrackerClient,
    scanner: HistoryScanner | None = None,
) -> AuditReport:
    """Run the full audit.

    Args:
        options: Run inputs.
        cache: Open issue snapshot store.
        client: Tracker client used when the cache misses or is refreshed.
        scanner: History scanner; built from ``options`` when omitted.

    Returns:
        AuditReport with the classification of every affected issue.

    Raises:
        InputError: On invalid options.
        RepositoryError: If the history cannot be scanned.
        TrackerError: If open issues cannot be fetched and nothing is cached.
    """
    options.validate()
    test_dir = normalize_test_dir(options.test_dir)
    bind_context(repo=str(options.repo_path))
    try:
        if scanner is None:
            scanner = HistoryScanner(options.repo_path, test_dir=test_dir)
        scan = scanner.scan(options.date_from, options.date_to)

        if not scan.records:
            logger.info("no_deletions_found")
            return AuditReport(options=options, scan=scan)

        groups = build_issue_groups(scan.records, scanner.current_files(), test_dir)
        logger.info("issues_grouped", issues=len(groups), records=len(scan.records))

        resolution = await resolve_open_issues(
            cache,
            client,
            options.repository,
            refresh=options.refresh_cache,
        )
        result = reconcile(groups, resolution.snapshot)
        logger.info(
            "reconciled",
            out_of_sync=len(result.out_of_sync),
            partially_cleaned=len(result.partially_cleaned),
            synced=len(result.synced),
        )
        return AuditReport(
            options=options,
            scan=scan,
            groups=tuple(groups),
            result=result,
            open_issues=resolution,
        )
    finally:
        clear_context()
