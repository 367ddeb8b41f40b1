"""Persisted snapshot of open issues.

The cache is a single JSON document (``.cache/open_issues.json`` by
default)::

    {
      "fetchedAt": "2024-04-02T10:00:00Z",
      "issueCount": 3,
      "issueNumbers": [1, 5, 9],
      "repository": "rust-lang/rust"
    }

A snapshot on disk is used regardless of its age; refreshing is the user's
call (``--refresh-cache``). Writes replace the file atomically and never
merge with the previous snapshot.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError

from crash_audit.exceptions import CacheError, TrackerError
from crash_audit.logging import get_logger
from crash_audit.models import OpenIssueSnapshot
from crash_audit.tracker.client import TrackerClient
from crash_audit.utils.atomic import atomic_write_json
from crash_audit.utils.text import format_duration

__all__ = [
    "DEFAULT_CACHE_PATH",
    "CachedIssues",
    "IssueSource",
    "OpenIssueCache",
    "OpenIssueResolution",
    "resolve_open_issues",
]

logger = get_logger(__name__)

#: Cache location, relative to the working directory
DEFAULT_CACHE_PATH = Path(".cache") / "open_issues.json"


class CachedIssues(BaseModel):
    """On-disk form of an OpenIssueSnapshot."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fetched_at: datetime = Field(alias="fetchedAt")
    issue_count: NonNegativeInt = Field(alias="issueCount")
    issue_numbers: list[NonNegativeInt] = Field(alias="issueNumbers")
    repository: str | None = None

    @classmethod
    def from_snapshot(cls, snapshot: OpenIssueSnapshot) -> CachedIssues:
        return cls(
            fetched_at=snapshot.fetched_at,
            issue_count=len(snapshot.issue_ids),
            issue_numbers=sorted(snapshot.issue_ids),
            repository=snapshot.repository,
        )

    def to_snapshot(self) -> OpenIssueSnapshot:
        fetched_at = self.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)
        return OpenIssueSnapshot(
            fetched_at=fetched_at,
            issue_ids=frozenset(self.issue_numbers),
            repository=self.repository,
        )


class OpenIssueCache:
    """Reads and writes the open issue snapshot file."""

    def __init__(self, path: Path | str = DEFAULT_CACHE_PATH) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def read(self) -> OpenIssueSnapshot | None:
        """Read the snapshot, raising on a damaged file.

        Returns:
            The snapshot, or None if there is no cache file.

        Raises:
            CacheError: If the file is unreadable or not a valid snapshot.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Cannot read cache file: {e}", path=self._path) from e
        except UnicodeDecodeError as e:
            raise CacheError(
                f"Cache file {self._path} is not UTF-8: {e}", path=self._path
            ) from e

        try:
            cached = CachedIssues.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            raise CacheError(
                f"Cache file {self._path} is corrupt: {e}", path=self._path
            ) from e

        if cached.issue_count != len(set(cached.issue_numbers)):
            logger.debug(
                "cache_count_mismatch",
                path=str(self._path),
                issue_count=cached.issue_count,
                unique_numbers=len(set(cached.issue_numbers)),
            )
        return cached.to_snapshot()

    def load(self) -> OpenIssueSnapshot | None:
        """Read the snapshot, treating a damaged file as a cache miss."""
        try:
            return self.read()
        except CacheError as e:
            logger.warning("cache_unreadable", path=str(self._path), error=e.message)
            return None

    def save(self, snapshot: OpenIssueSnapshot) -> None:
        """Replace the cache file with ``snapshot``.

        Issue numbers are written sorted so successive snapshots diff
        cleanly. If the write is interrupted the previous file is kept.

        Raises:
            CacheError: If the file cannot be written.
        """
        payload = CachedIssues.from_snapshot(snapshot).model_dump(
            mode="json", by_alias=True
        )
        try:
            atomic_write_json(self._path, payload)
        except OSError as e:
            raise CacheError(f"Cannot write cache file: {e}", path=self._path) from e
        logger.debug("cache_saved", path=str(self._path), issues=len(snapshot))


# =============================================================================
# Read-through resolution
# =============================================================================


class IssueSource(str, Enum):
    """Where the open issue set used for a run came from."""

    CACHE = "cache"
    LIVE = "live"
    CACHE_FALLBACK = "cache_fallback"


@dataclass(frozen=True, slots=True)
class OpenIssueResolution:
    """The open issue snapshot chosen for a run and how it was obtained.

    Attributes:
        snapshot: Open issues used for reconciliation.
        source: Cache hit, live fetch, or cache used after a failed fetch.
        warning: Message to show the user when the run degraded.
    """

    snapshot: OpenIssueSnapshot
    source: IssueSource
    warning: str | None = None

    @property
    def from_cache(self) -> bool:
        return self.source is not IssueSource.LIVE

    def notice(self, now: datetime | None = None) -> str | None:
        """Return the "cache last updated" text for cached snapshots."""
        if not self.from_cache:
            return None
        age = format_duration(self.snapshot.age(now))
        return f"Using cached data (updated {age} ago). Use --refresh-cache to update."


def _usable(
    snapshot: OpenIssueSnapshot | None, repository: str
) -> OpenIssueSnapshot | None:
    if snapshot is None:
        return None
    if not snapshot.matches(repository):
        logger.warning(
            "cache_repository_mismatch",
            cached=snapshot.repository,
            requested=repository,
        )
        return None
    return snapshot


async def resolve_open_issues(
    cache: OpenIssueCache,
    client: TrackerClient,
    repository: str,
    *,
    refresh: bool = False,
    now: datetime | None = None,
) -> OpenIssueResolution:
    """Return the open issue snapshot for this run.

    A usable cached snapshot is returned as-is unless ``refresh`` is set.
    Otherwise the tracker is queried and the result replaces the cache. When
    the query fails and a usable snapshot exists, that snapshot is returned
    with a warning instead of failing the run.

    Args:
        cache: Snapshot store.
        client: Tracker client used on a miss or refresh.
        repository: ``owner/name`` of the tracker repository.
        refresh: Ignore an existing snapshot and fetch.
        now: Timestamp recorded for a fresh snapshot (defaults to now).

    Raises:
        TrackerError: If the fetch fails and no usable snapshot exists.
    """
    cached = _usable(cache.load(), repository)
    if cached is not None and not refresh:
        logger.info("cache_hit", path=str(cache.path), issues=len(cached))
        return OpenIssueResolution(snapshot=cached, source=IssueSource.CACHE)

    try:
        numbers = await client.fetch_all_open_issues(repository)
    except TrackerError as e:
        if cached is None:
            raise
        fetched = cached.fetched_at.astimezone(UTC).strftime("%Y-%m-%d %H:%M")
        warning = (
            f"Could not refresh open issues ({e.message}); "
            f"continuing with cached data from {fetched} UTC."
        )
        logger.warning("fetch_failed_using_cache", error=e.message)
        return OpenIssueResolution(
            snapshot=cached, source=IssueSource.CACHE_FALLBACK, warning=warning
        )

    snapshot = OpenIssueSnapshot.from_numbers(
        numbers, fetched_at=now or datetime.now(UTC), repository=repository
    )
    try:
        cache.save(snapshot)
    except CacheError as e:
        logger.warning("cache_save_failed", path=str(cache.path), error=e.message)
    return OpenIssueResolution(snapshot=snapshot, source=IssueSource.LIVE)
