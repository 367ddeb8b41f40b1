"""End-to-end audit against a real git repository and a fake tracker.

Builds a small history in which:

- 100.rs is deleted and issue #100 is closed        -> synced
- 200-1.rs is deleted, 200-2.rs remains, #200 open  -> partially cleaned
- 300.rs is deleted by a bors merge, #300 open      -> out of sync
- 400.rs is deleted and re-added later              -> partially cleaned
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from crash_audit.audit import AuditOptions, run_audit
from crash_audit.models import Classification
from crash_audit.report import ReportFormat, render_report
from crash_audit.tracker import IssueSource, OpenIssueCache, RetryPolicy, TrackerClient
from tests.fixtures.git import SEED_DATE, CrashRepo
from tests.fixtures.tracker import FakeTransport

pytestmark = pytest.mark.integration


def day(n: int) -> datetime:
    return SEED_DATE + timedelta(days=n)


@pytest.fixture
def history(crash_repo: CrashRepo) -> CrashRepo:
    crash_repo.commit(
        "Add crash tests",
        when=day(0),
        add=[
            "tests/crashes/100.rs",
            "tests/crashes/200-1.rs",
            "tests/crashes/200-2.rs",
            "tests/crashes/300.rs",
            "tests/crashes/400.rs",
        ],
    )
    crash_repo.commit("Fix #100", when=day(1), remove=["tests/crashes/100.rs"])
    crash_repo.commit(
        "Fix part of #200", when=day(2), remove=["tests/crashes/200-1.rs"]
    )
    crash_repo.commit(
        "Auto merge of #3000 - someone:fix-300, r=reviewer",
        when=day(3),
        remove=["tests/crashes/300.rs"],
    )
    crash_repo.commit("Drop 400", when=day(4), remove=["tests/crashes/400.rs"])
    crash_repo.commit("Restore 400", when=day(5), add=["tests/crashes/400.rs"])
    return crash_repo


@pytest.mark.asyncio
async def test_full_audit(history: CrashRepo, tmp_path: Path) -> None:
    transport = FakeTransport([[200, 300, 400, 999]], pull_requests=[999])
    client = TrackerClient(transport, retry_policy=RetryPolicy.no_retry())
    cache = OpenIssueCache(tmp_path / "open_issues.json")

    report = await run_audit(
        AuditOptions(repo_path=history.path), cache=cache, client=client
    )

    by_id = {item.issue_id: item for item in report.result}
    assert {i: item.classification for i, item in by_id.items()} == {
        100: Classification.SYNCED,
        200: Classification.PARTIALLY_CLEANED,
        300: Classification.OUT_OF_SYNC,
        400: Classification.PARTIALLY_CLEANED,
    }
    assert by_id[300].group.latest is not None
    assert by_id[300].group.latest.pr_number == 3000
    assert by_id[400].group.remaining_files == {"tests/crashes/400.rs"}
    assert report.has_drift
    assert report.scan.commits_scanned == 6

    # The live fetch populated the cache; a second run reads it instead
    assert cache.exists()
    second = await run_audit(
        AuditOptions(repo_path=history.path), cache=cache, client=client
    )
    assert second.open_issues is not None
    assert second.open_issues.source is IssueSource.CACHE
    assert transport.calls == [0]
    assert [(i.issue_id, i.classification) for i in second.result] == [
        (i.issue_id, i.classification) for i in report.result
    ]

    text = render_report(report, ReportFormat.TEXT)
    assert "Issue #300: tests/crashes/300.rs deleted" in text
    assert "PR #3000" in text


@pytest.mark.asyncio
async def test_date_window_limits_issues(history: CrashRepo, tmp_path: Path) -> None:
    transport = FakeTransport([[200, 300]])
    client = TrackerClient(transport, retry_policy=RetryPolicy.no_retry())

    report = await run_audit(
        AuditOptions(
            repo_path=history.path,
            date_from=day(2).date(),
            date_to=day(3).date(),
        ),
        cache=OpenIssueCache(tmp_path / "open_issues.json"),
        client=client,
    )

    assert [item.issue_id for item in report.result] == [200, 300]
    for record in report.scan.records:
        assert date(2024, 1, 12) <= record.commit_date.date() <= date(2024, 1, 13)
