"""Tests for TrackerClient paging and GitHubIssueTransport error mapping."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest
import requests
from aiolimiter import AsyncLimiter
from github import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
)

from crash_audit.exceptions import (
    RateLimitedError,
    TrackerAuthError,
    TrackerError,
    TransientTrackerError,
)
from crash_audit.tracker import (
    ANONYMOUS_RATE_LIMIT,
    AUTHENTICATED_RATE_LIMIT,
    GitHubIssueTransport,
    RetryPolicy,
    TrackerClient,
)
from crash_audit.tracker.client import convert_github_error
from tests.fixtures.tracker import FakeTransport, numbered_pages

REPO = "rust-lang/rust"


# =============================================================================
# TrackerClient
# =============================================================================


class TestFetchAllOpenIssues:
    @pytest.mark.asyncio
    async def test_stops_at_short_page(self, fast_retry: RetryPolicy) -> None:
        transport = FakeTransport(numbered_pages(237))
        client = TrackerClient(transport, retry_policy=fast_retry)

        issues = await client.fetch_all_open_issues(REPO)

        assert issues == frozenset(range(1, 238))
        assert transport.calls == [0, 1, 2]
        assert set(transport.repositories) == {REPO}

    @pytest.mark.asyncio
    async def test_exact_multiple_needs_empty_page(
        self, fast_retry: RetryPolicy
    ) -> None:
        transport = FakeTransport(numbered_pages(200))
        client = TrackerClient(transport, retry_policy=fast_retry)

        issues = await client.fetch_all_open_issues(REPO)

        assert len(issues) == 200
        assert transport.calls == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_no_open_issues(self, fast_retry: RetryPolicy) -> None:
        transport = FakeTransport([])
        client = TrackerClient(transport, retry_policy=fast_retry)

        assert await client.fetch_all_open_issues(REPO) == frozenset()
        assert transport.calls == [0]

    @pytest.mark.asyncio
    async def test_duplicates_across_pages(self, fast_retry: RetryPolicy) -> None:
        pages = [list(range(1, 101)), [100, 101, 102]]
        client = TrackerClient(FakeTransport(pages), retry_policy=fast_retry)

        issues = await client.fetch_all_open_issues(REPO)

        assert issues == frozenset(range(1, 103))

    @pytest.mark.asyncio
    async def test_pull_requests_excluded_but_counted(
        self, fast_retry: RetryPolicy
    ) -> None:
        # Page 0 is full only because of the pull requests on it
        pages = [list(range(1, 101)), [150]]
        transport = FakeTransport(pages, pull_requests=range(51, 101))
        client = TrackerClient(transport, retry_policy=fast_retry)

        issues = await client.fetch_all_open_issues(REPO)

        assert issues == frozenset(range(1, 51)) | {150}
        assert transport.calls == [0, 1]

    @pytest.mark.asyncio
    async def test_custom_page_size(self, fast_retry: RetryPolicy) -> None:
        transport = FakeTransport(numbered_pages(25, per_page=10))
        client = TrackerClient(transport, retry_policy=fast_retry, per_page=10)

        assert len(await client.fetch_all_open_issues(REPO)) == 25
        assert transport.calls == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_concurrent_windows(self, fast_retry: RetryPolicy) -> None:
        transport = FakeTransport(numbered_pages(537))
        client = TrackerClient(transport, retry_policy=fast_retry, concurrency=4)

        issues = await client.fetch_all_open_issues(REPO)

        assert issues == frozenset(range(1, 538))
        # Two windows of four pages; the second holds the short page
        assert sorted(transport.calls) == list(range(8))

    @pytest.mark.asyncio
    async def test_rate_limiter_is_used(self, fast_retry: RetryPolicy) -> None:
        limiter = AsyncLimiter(1000, 1)
        transport = FakeTransport(numbered_pages(150))
        client = TrackerClient(
            transport, retry_policy=fast_retry, concurrency=2, rate_limiter=limiter
        )

        assert len(await client.fetch_all_open_issues(REPO)) == 150
        assert client.rate_limiter is limiter

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError, match="per_page"):
            TrackerClient(FakeTransport(), per_page=0)
        with pytest.raises(ValueError, match="concurrency"):
            TrackerClient(FakeTransport(), concurrency=0)


class TestRetries:
    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, fast_retry: RetryPolicy) -> None:
        transport = FakeTransport(
            numbered_pages(150),
            errors={1: [TransientTrackerError("HTTP 502", status=502, page=1)]},
        )
        client = TrackerClient(transport, retry_policy=fast_retry)

        issues = await client.fetch_all_open_issues(REPO)

        assert len(issues) == 150
        assert transport.calls == [0, 1, 1]

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, fast_retry: RetryPolicy) -> None:
        errors = [TransientTrackerError(f"attempt {n}", page=0) for n in range(5)]
        transport = FakeTransport(numbered_pages(10), errors={0: errors})
        client = TrackerClient(transport, retry_policy=fast_retry)

        with pytest.raises(TransientTrackerError, match="attempt 2"):
            await client.fetch_all_open_issues(REPO)
        assert transport.calls == [0, 0, 0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RateLimitedError(page=0),
            TrackerAuthError(page=0),
            TrackerError("HTTP 404", status=404, page=0),
        ],
    )
    async def test_permanent_failures_not_retried(
        self, fast_retry: RetryPolicy, error: TrackerError
    ) -> None:
        transport = FakeTransport(numbered_pages(10), errors={0: [error]})
        client = TrackerClient(transport, retry_policy=fast_retry)

        with pytest.raises(type(error)):
            await client.fetch_all_open_issues(REPO)
        assert transport.calls == [0]

    @pytest.mark.asyncio
    async def test_no_retry_policy(self) -> None:
        transport = FakeTransport(
            numbered_pages(10), errors={0: [TransientTrackerError("boom")]}
        )
        client = TrackerClient(transport, retry_policy=RetryPolicy.no_retry())

        with pytest.raises(TransientTrackerError):
            await client.fetch_page(REPO, 0)
        assert transport.calls == [0]


class TestForGithub:
    def test_single_page_at_a_time_has_no_limiter(self) -> None:
        client = TrackerClient.for_github(token=None)
        assert client.rate_limiter is None

    def test_concurrent_anonymous_uses_anonymous_ceiling(self) -> None:
        client = TrackerClient.for_github(token=None, concurrency=4)
        assert client.rate_limiter is not None
        assert client.rate_limiter.max_rate == ANONYMOUS_RATE_LIMIT

    def test_concurrent_authenticated_ceiling(self) -> None:
        client = TrackerClient.for_github(token="ghp_test", concurrency=4)
        assert client.rate_limiter is not None
        assert client.rate_limiter.max_rate == AUTHENTICATED_RATE_LIMIT

    def test_explicit_rate_limit(self) -> None:
        client = TrackerClient.for_github(token="ghp_test", rate_limit=120)
        assert client.rate_limiter is not None
        assert client.rate_limiter.max_rate == 120


# =============================================================================
# GitHubIssueTransport
# =============================================================================


def _issue(number: int, *, pull: bool = False) -> MagicMock:
    issue = MagicMock()
    issue.number = number
    kind = "pull" if pull else "issues"
    issue.html_url = f"https://github.com/{REPO}/{kind}/{number}"
    return issue


@pytest.fixture
def mock_github() -> MagicMock:
    return MagicMock()


@pytest.fixture
def issue_page(mock_github: MagicMock) -> Callable[..., None]:
    """Set what get_issues(...).get_page(n) returns or raises."""

    def configure(items=None, error: BaseException | None = None) -> None:
        listing = mock_github.get_repo.return_value.get_issues.return_value
        if error is not None:
            listing.get_page.side_effect = error
        else:
            listing.get_page.return_value = items or []

    return configure


class TestGitHubIssueTransport:
    def test_fetch_page(
        self, mock_github: MagicMock, issue_page: Callable[..., None]
    ) -> None:
        issue_page([_issue(1), _issue(2, pull=True), _issue(3)])
        transport = GitHubIssueTransport(github=mock_github)

        page = transport.fetch_open_issue_page(REPO, 4, 100)

        assert page.page == 4
        assert page.item_count == 3
        assert page.issue_numbers == {1, 3}
        mock_github.get_repo.assert_called_once_with(REPO, lazy=True)
        get_issues = mock_github.get_repo.return_value.get_issues
        get_issues.assert_called_once_with(state="open")
        get_issues.return_value.get_page.assert_called_once_with(4)

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (
                RateLimitExceededException(403, {"message": "rate limit"}, {}),
                RateLimitedError,
            ),
            (
                BadCredentialsException(401, {"message": "Bad credentials"}, {}),
                TrackerAuthError,
            ),
            (
                GithubException(502, {"message": "Bad Gateway"}, {}),
                TransientTrackerError,
            ),
            (requests.ConnectionError("reset"), TransientTrackerError),
            (requests.Timeout("slow"), TransientTrackerError),
        ],
    )
    def test_error_mapping(
        self,
        mock_github: MagicMock,
        issue_page: Callable[..., None],
        error: BaseException,
        expected: type[TrackerError],
    ) -> None:
        issue_page(error=error)
        transport = GitHubIssueTransport(github=mock_github)

        with pytest.raises(expected) as exc_info:
            transport.fetch_open_issue_page(REPO, 2, 100)
        assert exc_info.value.page == 2
        assert exc_info.value.__cause__ is error

    def test_close(self, mock_github: MagicMock) -> None:
        GitHubIssueTransport(github=mock_github).close()
        mock_github.close.assert_called_once()


class TestConvertGithubError:
    def test_rate_limit_retry_after(self) -> None:
        exc = RateLimitExceededException(403, {}, {"Retry-After": "60"})
        error = convert_github_error(exc, page=0)
        assert isinstance(error, RateLimitedError)
        assert error.retry_after == 60
        assert error.stage == "fetch"

    def test_not_found_is_permanent(self) -> None:
        exc = GithubException(404, {"message": "Not Found"}, {})
        error = convert_github_error(exc, 1)
        assert type(error) is TrackerError
        assert error.status == 404
        assert "page 2" in error.message

    def test_unauthorized_status(self) -> None:
        error = convert_github_error(GithubException(401, {}, {}), 0)
        assert isinstance(error, TrackerAuthError)
