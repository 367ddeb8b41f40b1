"""Render an AuditReport as text, JSON or Markdown."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from crash_audit.audit import AuditReport
from crash_audit.models import IssueClassification
from crash_audit.utils.text import percentage

__all__ = [
    "ReportFormat",
    "issue_url",
    "render_report",
    "report_to_dict",
]

_RULE = "─" * 49


class ReportFormat(str, Enum):
    """Supported report formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


def issue_url(repository: str, issue_id: int) -> str:
    return f"https://github.com/{repository}/issues/{issue_id}"


def _deleted_paths(item: IssueClassification) -> list[str]:
    return sorted(item.group.deleted_files)


def report_to_dict(
    report: AuditReport, now: datetime | None = None
) -> dict[str, Any]:
    """Build the JSON-serializable form of a report."""
    repository = report.options.repository
    open_issues: dict[str, Any] | None = None
    if report.open_issues is not None:
        snapshot = report.open_issues.snapshot
        open_issues = {
            "source": report.open_issues.source.value,
            "fetchedAt": snapshot.fetched_at.isoformat(),
            "count": len(snapshot),
            "notice": report.open_issues.notice(now),
            "warning": report.open_issues.warning,
        }

    issues = []
    for item in report.result:
        group = item.group
        issues.append(
            {
                "issue": group.issue_id,
                "classification": item.classification.value,
                "url": issue_url(repository, group.issue_id),
                "deletedFiles": sorted(group.deleted_files),
                "remainingFiles": sorted(group.remaining_files),
                "deletions": [
                    {
                        "file": record.file_path,
                        "commit": record.commit_sha,
                        "date": record.commit_date.isoformat(),
                        "pr": record.pr_number,
                    }
                    for record in group.records
                ],
            }
        )

    date_from = report.options.date_from
    date_to = report.options.date_to
    return {
        "repository": repository,
        "repoPath": str(report.options.repo_path),
        "dateFrom": date_from.isoformat() if date_from else None,
        "dateTo": date_to.isoformat() if date_to else None,
        "commitsScanned": report.scan.commits_scanned,
        "commitsSkipped": report.scan.commits_skipped,
        "deletedFiles": len(report.scan.records),
        "openIssues": open_issues,
        "summary": {
            "issues": len(report.result),
            "outOfSync": len(report.result.out_of_sync),
            "partiallyCleaned": len(report.result.partially_cleaned),
            "synced": len(report.result.synced),
        },
        "issues": issues,
    }


def _render_text(report: AuditReport, now: datetime | None) -> str:
    repository = report.options.repository
    result = report.result
    lines: list[str] = []

    if report.open_issues is not None:
        notice = report.open_issues.notice(now)
        if notice:
            lines += [notice, ""]

    if not report.scan.records:
        lines.append("No deleted crash test files found in the specified range.")
        return "\n".join(lines)

    if result.out_of_sync:
        lines += ["⚠️  Out-of-sync issues (test deleted but issue still open):", ""]
        for item in result.out_of_sync:
            for path in _deleted_paths(item):
                record = item.group.deletion_of(path)
                detail = ""
                if record is not None:
                    detail = f" in {record.short_sha} ({record.commit_date.date()})"
                    if record.pr_number is not None:
                        detail += f", PR #{record.pr_number}"
                lines.append(f"  • Issue #{item.issue_id}: {path} deleted{detail}")
            lines += [f"    {issue_url(repository, item.issue_id)}", ""]

    if result.partially_cleaned:
        lines += ["ℹ️  Partially cleaned issues (some crash tests remain):", ""]
        for item in result.partially_cleaned:
            deleted = ", ".join(_deleted_paths(item)) or "(re-added)"
            remaining = ", ".join(sorted(item.group.remaining_files))
            lines.append(f"  • Issue #{item.issue_id}: deleted {deleted}")
            lines.append(f"    remaining: {remaining}")
        lines.append("")

    total = len(result)
    open_count = len(report.open_issues.snapshot) if report.open_issues else 0
    lines += [
        _RULE,
        "Summary:",
        f"  Deleted crash test files: {len(report.scan.records)}",
        f"  Issues affected: {total}",
        f"  Open issues in {repository}: {open_count}",
        "",
        f"  ⚠️  Out of sync: {len(result.out_of_sync)} "
        f"({percentage(len(result.out_of_sync), total):.1f}%)",
        f"  ℹ️  Partially cleaned: {len(result.partially_cleaned)} "
        f"({percentage(len(result.partially_cleaned), total):.1f}%)",
        f"  ✅ Synced: {len(result.synced)} "
        f"({percentage(len(result.synced), total):.1f}%)",
        _RULE,
        "",
    ]

    if result.out_of_sync:
        lines += [
            f"⚠️  Found {len(result.out_of_sync)} out-of-sync issue(s) "
            "that need attention.",
            "",
            "These issues should either:",
            "  1. Be reopened (if the crash test was removed by mistake)",
            "  2. Be closed (if the issue is actually fixed)",
        ]
    else:
        lines.append("✅ All deleted crash tests have properly closed issues!")
    return "\n".join(lines)


def _render_markdown(report: AuditReport, now: datetime | None) -> str:
    repository = report.options.repository
    result = report.result
    lines = [f"# Crash test audit: {repository}", ""]

    if report.open_issues is not None:
        notice = report.open_issues.notice(now)
        if notice:
            lines += [f"> {notice}", ""]

    lines += [
        f"- Commits scanned: {report.scan.commits_scanned}",
        f"- Deleted crash test files: {len(report.scan.records)}",
        f"- Out of sync: **{len(result.out_of_sync)}**",
        f"- Partially cleaned: {len(result.partially_cleaned)}",
        f"- Synced: {len(result.synced)}",
        "",
    ]

    if result.out_of_sync:
        lines += [
            "## Out of sync",
            "",
            "| Issue | Deleted file | Commit | Date | PR |",
            "| --- | --- | --- | --- | --- |",
        ]
        # One row per file; files of one issue may go in different commits
        for item in result.out_of_sync:
            link = f"[#{item.issue_id}]({issue_url(repository, item.issue_id)})"
            for path in _deleted_paths(item):
                record = item.group.deletion_of(path)
                commit = f"`{record.short_sha}`" if record else ""
                day = str(record.commit_date.date()) if record else ""
                pr = f"#{record.pr_number}" if record and record.pr_number else ""
                lines.append(f"| {link} | `{path}` | {commit} | {day} | {pr} |")
        lines.append("")

    if result.partially_cleaned:
        lines += [
            "## Partially cleaned",
            "",
            "| Issue | Deleted files | Remaining files |",
            "| --- | --- | --- |",
        ]
        for item in result.partially_cleaned:
            deleted = "<br>".join(f"`{p}`" for p in _deleted_paths(item))
            remaining = "<br>".join(
                f"`{p}`" for p in sorted(item.group.remaining_files)
            )
            link = f"[#{item.issue_id}]({issue_url(repository, item.issue_id)})"
            lines.append(f"| {link} | {deleted} | {remaining} |")
        lines.append("")

    if not result.out_of_sync:
        lines.append("No out-of-sync issues found.")
    return "\n".join(lines)


def render_report(
    report: AuditReport,
    fmt: ReportFormat | str = ReportFormat.TEXT,
    *,
    now: datetime | None = None,
) -> str:
    """Render ``report`` in the requested format.

    Args:
        report: Audit outcome.
        fmt: Output format.
        now: Reference time for the cache age notice (defaults to now).
    """
    fmt = ReportFormat(fmt)
    if fmt is ReportFormat.JSON:
        return json.dumps(report_to_dict(report, now), indent=2, ensure_ascii=False)
    if fmt is ReportFormat.MARKDOWN:
        return _render_markdown(report, now)
    return _render_text(report, now)
