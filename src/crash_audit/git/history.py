"""GitPython-based scan of crash test deletions.

Walks the first-parent history of ``HEAD`` and reports every crash test file
a commit removed. Each commit is diffed against its first parent with the
diff restricted to the crash test directory, so the cost of a scan stays
proportional to the number of commits and not to the size of the tree.

Example:
    ```python
    from datetime import date

    from crash_audit.git import HistoryScanner

    scanner = HistoryScanner("/src/rust")
    result = scanner.scan(date_from=date(2024, 1, 1))
    for record in result.records:
        print(record.issue_id, record.file_path, record.short_sha)
    ```
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path

from git import (
    Commit,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
    Repo,
)
from git.exc import BadName, BadObject, GitCommandNotFound, ODBError

from crash_audit.exceptions import (
    NoCommitsError,
    RepositoryError,
    RepositoryNotFoundError,
)
from crash_audit.logging import get_logger
from crash_audit.models import DeletionRecord
from crash_audit.parser import (
    DEFAULT_TEST_DIR,
    extract_pr_number,
    normalize_test_dir,
    parse_issue_id,
)

logger = get_logger(__name__)

__all__ = [
    "HistoryScanner",
    "ScanResult",
    "list_crash_tests",
]

# =============================================================================
# Constants
# =============================================================================

#: Log a progress line every this many commits
PROGRESS_INTERVAL: int = 1000

#: Errors raised by GitPython when a single commit cannot be read
_UNREADABLE_COMMIT_ERRORS: tuple[type[Exception], ...] = (
    BadName,
    BadObject,
    GitCommandError,
    ODBError,
    ValueError,
)


# =============================================================================
# Value Objects
# =============================================================================


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of a history scan.

    Attributes:
        records: Deletion records, newest commit first.
        commits_scanned: Commits inside the date window that were examined.
        commits_skipped: Commits inside the window that could not be read.
    """

    records: tuple[DeletionRecord, ...]
    commits_scanned: int
    commits_skipped: int = 0

    @property
    def issue_ids(self) -> frozenset[int]:
        return frozenset(record.issue_id for record in self.records)


# =============================================================================
# Helper Functions
# =============================================================================


def _commit_datetime(commit: Commit) -> datetime:
    """Committer timestamp of ``commit`` as an aware UTC datetime."""
    return datetime.fromtimestamp(commit.committed_date, tz=UTC)


def _commit_message(commit: Commit) -> str:
    msg = commit.message
    if isinstance(msg, bytes):
        msg = msg.decode("utf-8", errors="replace")
    return msg


def list_crash_tests(
    root: Path | str,
    test_dir: str = DEFAULT_TEST_DIR,
) -> frozenset[str]:
    """List crash test files currently present in a working tree.

    Args:
        root: Working tree root.
        test_dir: Crash test directory relative to ``root``.

    Returns:
        Repository-relative POSIX paths of files matching the naming
        convention. Empty when the directory does not exist.
    """
    test_dir = normalize_test_dir(test_dir)
    directory = Path(root) / test_dir
    if not directory.is_dir():
        return frozenset()
    found: set[str] = set()
    for entry in directory.iterdir():
        if not entry.is_file():
            continue
        relative = f"{test_dir}/{entry.name}" if test_dir != "." else entry.name
        if parse_issue_id(relative, test_dir) is not None:
            found.add(relative)
    return frozenset(found)


# =============================================================================
# Main Class: HistoryScanner
# =============================================================================


class HistoryScanner:
    """Find crash test deletions along the first-parent history of HEAD.

    Example:
        ```python
        scanner = HistoryScanner("/src/rust", test_dir="tests/crashes")
        result = scanner.scan(date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))
        ```
    """

    def __init__(
        self,
        path: Path | str,
        test_dir: str = DEFAULT_TEST_DIR,
    ) -> None:
        """Open the repository at ``path``.

        Args:
            path: Repository working tree (or bare repository) path.
            test_dir: Crash test directory relative to the repository root.

        Raises:
            RepositoryNotFoundError: If path is missing or not a repository.
            RepositoryError: If git is not installed.
        """
        self._path = Path(path)
        self._test_dir = normalize_test_dir(test_dir)
        try:
            self._repo = Repo(self._path)
        except GitCommandNotFound as e:
            raise RepositoryError("Git CLI not found. Please install git.") from e
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryNotFoundError(self._path) from e

    @property
    def path(self) -> Path:
        return self._path

    @property
    def test_dir(self) -> str:
        return self._test_dir

    @property
    def repo(self) -> Repo:
        """Underlying GitPython Repo instance."""
        return self._repo

    def current_files(self) -> frozenset[str]:
        """Crash test files present in the working tree."""
        if self._repo.bare:
            return self._head_tree_files()
        root = self._repo.working_tree_dir or self._path
        return list_crash_tests(root, self._test_dir)

    def _head_tree_files(self) -> frozenset[str]:
        try:
            tree = self._repo.head.commit.tree / self._test_dir
        except (KeyError, ValueError):
            return frozenset()
        return frozenset(
            blob.path
            for blob in tree.blobs
            if parse_issue_id(blob.path, self._test_dir) is not None
        )

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def _iter_first_parent(self) -> Iterator[Commit]:
        """Yield commits reachable from HEAD along first parents, newest first.

        Raises:
            NoCommitsError: If HEAD does not point at a commit.
        """
        try:
            self._repo.head.commit
        except ValueError as e:
            raise NoCommitsError(
                f"Repository has no commits: {self._path}", path=self._path
            ) from e
        try:
            yield from self._repo.iter_commits("HEAD", first_parent=True)
        except GitCommandError as e:
            raise RepositoryError(
                f"Failed to walk history of {self._path}: {e}", path=self._path
            ) from e

    def _deletions_in(
        self, commit: Commit, commit_date: datetime
    ) -> list[DeletionRecord]:
        """Crash test deletions made by ``commit`` relative to its first parent."""
        if not commit.parents:
            return []
        parent = commit.parents[0]
        records: list[DeletionRecord] = []
        pr_number: int | None = None
        message_parsed = False

        for diff in parent.diff(commit, paths=self._test_dir):
            old_path = diff.a_path
            if old_path is None:
                continue
            removed = diff.deleted_file or (
                diff.renamed_file and diff.b_path != old_path
            )
            if not removed:
                continue
            issue_id = parse_issue_id(old_path, self._test_dir)
            if issue_id is None:
                continue
            if not message_parsed:
                pr_number = extract_pr_number(_commit_message(commit))
                message_parsed = True
            records.append(
                DeletionRecord(
                    file_path=old_path,
                    issue_id=issue_id,
                    commit_sha=commit.hexsha,
                    commit_date=commit_date,
                    pr_number=pr_number,
                )
            )
        return records

    def scan(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> ScanResult:
        """Scan first-parent history for deleted crash tests.

        Commits newer than ``date_to`` are skipped. The walk stops at the
        first commit older than ``date_from``; this assumes commit dates do
        not increase going back along first parents, which rewritten history
        can violate.

        Args:
            date_from: Inclusive lower bound on the commit's UTC date.
            date_to: Inclusive upper bound on the commit's UTC date.

        Returns:
            ScanResult with one record per (file, deleting commit).

        Raises:
            NoCommitsError: If no commit falls inside the window.
            RepositoryError: If the history cannot be walked.
        """
        log = logger.bind(repo=str(self._path), test_dir=self._test_dir)
        log.info(
            "scan_started",
            date_from=date_from.isoformat() if date_from else None,
            date_to=date_to.isoformat() if date_to else None,
        )

        records: list[DeletionRecord] = []
        seen: set[tuple[str, str]] = set()
        scanned = 0
        skipped = 0
        walked = 0

        for commit in self._iter_first_parent():
            walked += 1
            if walked % PROGRESS_INTERVAL == 0:
                log.info("scan_progress", commits=walked, deletions=len(records))
            try:
                commit_date = _commit_datetime(commit)
                day = commit_date.date()
                if date_from is not None and day < date_from:
                    break
                if date_to is not None and day > date_to:
                    continue
                scanned += 1
                found = self._deletions_in(commit, commit_date)
            except _UNREADABLE_COMMIT_ERRORS as e:
                skipped += 1
                log.warning("commit_unreadable", sha=commit.hexsha, error=str(e))
                continue

            for record in found:
                key = (record.file_path, record.commit_sha)
                if key not in seen:
                    seen.add(key)
                    records.append(record)

        if scanned == 0 and skipped == 0:
            raise NoCommitsError(
                f"No commits in {self._path} fall within the requested range",
                path=self._path,
            )

        log.info(
            "scan_finished",
            commits=scanned,
            skipped=skipped,
            deletions=len(records),
        )
        return ScanResult(
            records=tuple(records),
            commits_scanned=scanned,
            commits_skipped=skipped,
        )
