"""Open issue listing from GitHub using PyGithub.

The client asks the "list repository issues" endpoint for open issues one
page at a time until a page comes back short. Requests go through a
transport object so the paging, retry and throttling logic can be exercised
against a fake; ``GitHubIssueTransport`` is the PyGithub-backed one.

Rate limiting is optional and uses aiolimiter. GitHub allows 5000 requests
per hour with a token and 60 without one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import requests
from aiolimiter import AsyncLimiter
from github import (
    Auth,
    BadCredentialsException,
    Github,
    GithubException,
    RateLimitExceededException,
)

from crash_audit.exceptions import (
    RateLimitedError,
    TrackerAuthError,
    TrackerError,
    TransientTrackerError,
)
from crash_audit.logging import get_logger
from crash_audit.tracker.retry import RetryPolicy

if TYPE_CHECKING:
    from github.Issue import Issue

__all__ = [
    "ANONYMOUS_RATE_LIMIT",
    "AUTHENTICATED_RATE_LIMIT",
    "DEFAULT_PER_PAGE",
    "GitHubIssueTransport",
    "IssuePage",
    "IssueTransport",
    "TrackerClient",
]

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

#: Items per page; GitHub's maximum for the issues endpoint
DEFAULT_PER_PAGE: int = 100

#: Requests per hour allowed with a token
AUTHENTICATED_RATE_LIMIT: int = 5000

#: Requests per hour allowed without a token
ANONYMOUS_RATE_LIMIT: int = 60

#: Rate limit window in seconds (1 hour)
RATE_PERIOD: float = 3600.0

#: Per-request timeout in seconds
DEFAULT_TIMEOUT: int = 30


# =============================================================================
# Transport
# =============================================================================


@dataclass(frozen=True, slots=True)
class IssuePage:
    """One page of the open issue listing.

    Attributes:
        page: Zero-based page number.
        item_count: Items the tracker returned, pull requests included.
            A count below the page size marks the last page.
        issue_numbers: Issue numbers on the page, pull requests excluded.
    """

    page: int
    item_count: int
    issue_numbers: frozenset[int]


class IssueTransport(Protocol):
    """Fetches one page of open issues. Blocking; called from a thread."""

    def fetch_open_issue_page(
        self, repository: str, page: int, per_page: int
    ) -> IssuePage: ...


def _is_pull_request(issue: Issue) -> bool:
    # The issues endpoint also lists pull requests; their html_url points at
    # /pull/. Reading html_url never triggers a lazy completion request.
    return "/pull/" in (issue.html_url or "")


def _retry_after(exc: GithubException) -> int | None:
    headers = exc.headers or {}
    value = headers.get("retry-after") or headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def convert_github_error(exc: GithubException, page: int) -> TrackerError:
    """Map a PyGithub exception to a crash-audit tracker error.

    Args:
        exc: PyGithub exception.
        page: Zero-based page being fetched.

    Returns:
        RateLimitedError, TrackerAuthError, TransientTrackerError (5xx) or a
        plain TrackerError for any other client error.
    """
    status = exc.status
    if isinstance(exc, RateLimitExceededException):
        return RateLimitedError(
            f"GitHub API rate limit exceeded on page {page + 1}",
            retry_after=_retry_after(exc),
            status=status,
            page=page,
        )
    if isinstance(exc, BadCredentialsException) or status == 401:
        return TrackerAuthError(page=page)
    if status is not None and status >= 500:
        return TransientTrackerError(
            f"GitHub returned HTTP {status} for page {page + 1}",
            status=status,
            page=page,
        )
    return TrackerError(
        f"GitHub request for page {page + 1} failed (HTTP {status}): {exc.data}",
        status=status,
        page=page,
    )


class GitHubIssueTransport:
    """PyGithub-backed transport.

    Works with or without a token; only the request quota differs.
    PyGithub's built-in retry is disabled so that rate limiting surfaces
    immediately and retries follow the client's RetryPolicy.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        per_page: int = DEFAULT_PER_PAGE,
        timeout: int = DEFAULT_TIMEOUT,
        github: Github | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            token: GitHub token, or None for anonymous access.
            per_page: Page size requested from the API.
            timeout: Per-request timeout in seconds.
            github: Preconfigured PyGithub client (mainly for tests).
        """
        self._authenticated = bool(token) if github is None else True
        if github is None:
            auth = Auth.Token(token) if token else None
            github = Github(auth=auth, per_page=per_page, timeout=timeout, retry=None)
        self._github = github

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def fetch_open_issue_page(
        self, repository: str, page: int, per_page: int
    ) -> IssuePage:
        """Fetch one page of open issues.

        Raises:
            RateLimitedError: If the quota is exhausted.
            TrackerAuthError: If the token is rejected.
            TransientTrackerError: On 5xx responses, resets and timeouts.
            TrackerError: On any other API error.
        """
        try:
            repo = self._github.get_repo(repository, lazy=True)
            items = repo.get_issues(state="open").get_page(page)
        except GithubException as e:
            raise convert_github_error(e, page) from e
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientTrackerError(
                f"Network error fetching page {page + 1}: {e}", page=page
            ) from e

        numbers = frozenset(
            issue.number for issue in items if not _is_pull_request(issue)
        )
        return IssuePage(page=page, item_count=len(items), issue_numbers=numbers)

    def close(self) -> None:
        self._github.close()


# =============================================================================
# Client
# =============================================================================


class TrackerClient:
    """Collects the numbers of every open issue in a repository.

    Pages are requested in windows of ``concurrency`` pages. Every request
    passes through the shared rate limiter (if any) and the retry policy.
    The first page shorter than ``per_page`` ends the listing.

    Example:
        ```python
        client = TrackerClient.for_github(token=os.environ.get("GITHUB_TOKEN"))
        open_issues = await client.fetch_all_open_issues("rust-lang/rust")
        ```
    """

    def __init__(
        self,
        transport: IssueTransport,
        *,
        retry_policy: RetryPolicy | None = None,
        per_page: int = DEFAULT_PER_PAGE,
        concurrency: int = 1,
        rate_limiter: AsyncLimiter | None = None,
    ) -> None:
        """Initialize the TrackerClient.

        Args:
            transport: Object performing the page requests.
            retry_policy: Retry rules for transient failures.
            per_page: Expected page size; a shorter page is the last one.
            concurrency: Pages requested at once.
            rate_limiter: Optional shared limiter for every page request.
        """
        if per_page < 1:
            raise ValueError("per_page must be at least 1")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy()
        self._per_page = per_page
        self._concurrency = concurrency
        self._rate_limiter = rate_limiter

    @classmethod
    def for_github(
        cls,
        token: str | None = None,
        *,
        per_page: int = DEFAULT_PER_PAGE,
        timeout: int = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy | None = None,
        concurrency: int = 1,
        rate_limit: int | None = None,
    ) -> TrackerClient:
        """Create a client talking to GitHub.

        Args:
            token: GitHub token, or None for anonymous access.
            per_page: Page size.
            timeout: Per-request timeout in seconds.
            retry_policy: Retry rules for transient failures.
            concurrency: Pages requested at once.
            rate_limit: Requests per hour for the shared limiter. When None
                and ``concurrency`` > 1, GitHub's documented ceiling for the
                chosen authentication mode is used.
        """
        transport = GitHubIssueTransport(token, per_page=per_page, timeout=timeout)
        if rate_limit is None and concurrency > 1:
            rate_limit = AUTHENTICATED_RATE_LIMIT if token else ANONYMOUS_RATE_LIMIT
        limiter = AsyncLimiter(rate_limit, RATE_PERIOD) if rate_limit else None
        if not token:
            logger.info(
                "tracker_anonymous",
                hint="Set GITHUB_TOKEN for 5000 requests/hour instead of 60",
            )
        return cls(
            transport,
            retry_policy=retry_policy,
            per_page=per_page,
            concurrency=concurrency,
            rate_limiter=limiter,
        )

    @property
    def rate_limiter(self) -> AsyncLimiter | None:
        return self._rate_limiter

    @property
    def per_page(self) -> int:
        return self._per_page

    async def _request(self, repository: str, page: int) -> IssuePage:
        if self._rate_limiter is not None:
            async with self._rate_limiter:
                return await asyncio.to_thread(
                    self._transport.fetch_open_issue_page,
                    repository,
                    page,
                    self._per_page,
                )
        return await asyncio.to_thread(
            self._transport.fetch_open_issue_page, repository, page, self._per_page
        )

    async def fetch_page(self, repository: str, page: int) -> IssuePage:
        """Fetch one page, retrying transient failures per the policy."""
        async for attempt in self._retry_policy.retrying():
            with attempt:
                return await self._request(repository, page)
        raise AssertionError("unreachable: tenacity re-raises the last error")

    async def fetch_all_open_issues(self, repository: str) -> frozenset[int]:
        """Collect every open issue number of ``repository``.

        Args:
            repository: ``owner/name`` of the GitHub repository.

        Returns:
            Open issue numbers (pull requests excluded).

        Raises:
            RateLimitedError: If the quota runs out. Not retried.
            TrackerAuthError: If the token is rejected. Not retried.
            TrackerError: On other failures, after retries for transient ones.
        """
        log = logger.bind(repository=repository)
        log.info(
            "fetch_started",
            per_page=self._per_page,
            concurrency=self._concurrency,
        )

        issues: set[int] = set()
        pages = 0
        start = 0
        while True:
            window = range(start, start + self._concurrency)
            results = await asyncio.gather(
                *(self.fetch_page(repository, page) for page in window)
            )
            # gather() keeps window order; pages after a short one are empty
            last_page = False
            for result in results:
                issues |= result.issue_numbers
                pages += 1
                log.debug(
                    "page_fetched",
                    page=result.page + 1,
                    items=result.item_count,
                    total=len(issues),
                )
                if result.item_count < self._per_page:
                    last_page = True
                    break
            if last_page:
                break
            start += self._concurrency

        log.info("fetch_finished", pages=pages, open_issues=len(issues))
        return frozenset(issues)
