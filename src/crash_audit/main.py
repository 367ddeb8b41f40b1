"""CLI entry point for crash-audit.

This module defines the Click-based command-line interface.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

import click
from dotenv import load_dotenv

# Load GITHUB_TOKEN and CRASH_AUDIT_* from a .env file in the working
# directory before Click resolves environment-backed options
load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

from crash_audit import __version__  # noqa: E402
from crash_audit.audit import AuditOptions, run_audit  # noqa: E402
from crash_audit.cli.console import err_console  # noqa: E402
from crash_audit.cli.context import ExitCode, async_command  # noqa: E402
from crash_audit.cli.output import format_error, format_warning  # noqa: E402
from crash_audit.config import (  # noqa: E402
    CrashAuditConfig,
    TrackerConfig,
    load_config,
)
from crash_audit.exceptions import ConfigError, CrashAuditError  # noqa: E402
from crash_audit.logging import configure_logging, get_logger  # noqa: E402
from crash_audit.report import ReportFormat, render_report  # noqa: E402
from crash_audit.tracker import OpenIssueCache, TrackerClient  # noqa: E402

logger = get_logger(__name__)

_VERBOSITY_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def build_tracker_client(settings: TrackerConfig, token: str | None) -> TrackerClient:
    """Create the GitHub tracker client from configuration."""
    return TrackerClient.for_github(
        token=token,
        per_page=settings.per_page,
        timeout=settings.timeout_seconds,
        retry_policy=settings.retry_policy(),
        concurrency=settings.concurrency,
        rate_limit=settings.rate_limit,
    )


def _log_level(config: CrashAuditConfig, verbose: int, quiet: bool) -> int | None:
    # Priority: quiet > verbose > config > CRASH_AUDIT_LOG_LEVEL
    if quiet:
        return logging.ERROR
    if verbose > 0:
        return logging.INFO if verbose == 1 else logging.DEBUG
    if "verbosity" in config.model_fields_set:
        return _VERBOSITY_LEVELS[config.verbosity]
    return None


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _status(message: str, fmt: ReportFormat, quiet: bool) -> None:
    if fmt is ReportFormat.TEXT and not quiet:
        err_console.print(message, markup=False, highlight=False)


@click.command()
@click.version_option(version=__version__, prog_name="crash-audit")
@click.argument("repo_path", type=click.Path(path_type=Path))
@click.option(
    "--from",
    "date_from",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Only consider commits on or after this date (YYYY-MM-DD).",
)
@click.option(
    "--to",
    "date_to",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Only consider commits on or before this date (YYYY-MM-DD).",
)
@click.option(
    "--refresh-cache",
    is_flag=True,
    default=False,
    help="Fetch open issues from GitHub even if a cached snapshot exists.",
)
@click.option(
    "--github-token",
    envvar="GITHUB_TOKEN",
    show_envvar=True,
    default=None,
    help="GitHub token. Without one the API allows 60 requests/hour.",
)
@click.option(
    "--repository",
    default=None,
    help="GitHub repository (owner/name) whose issues are checked.",
)
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in ReportFormat]),
    default=ReportFormat.TEXT.value,
    help="Report format.",
)
@click.option(
    "--cache-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Open issue cache file (default: .cache/open_issues.json).",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (default: ./crash-audit.yaml).",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress progress messages (ERROR level logging only).",
)
@async_command
async def cli(
    repo_path: Path,
    date_from: datetime | None,
    date_to: datetime | None,
    refresh_cache: bool,
    github_token: str | None,
    repository: str | None,
    fmt: str,
    cache_path: Path | None,
    config_file: Path | None,
    verbose: int,
    quiet: bool,
) -> None:
    """Audit REPO_PATH for crash tests deleted while their issue is still open.

    Exit status is 0 when every fully deleted crash test has a closed issue,
    1 when out-of-sync issues were found and 2 on operational failure.

    Examples:
        crash-audit ~/src/rust
        crash-audit ~/src/rust --from 2024-01-01 --format markdown
        crash-audit ~/src/rust --refresh-cache --github-token "$TOKEN"
    """
    try:
        config = load_config(config_file)
    except ConfigError as e:
        click.echo(format_error(e.message, stage="config"), err=True)
        if e.field:
            click.echo(f"  Field: {e.field}", err=True)
        raise SystemExit(ExitCode.FAILURE) from e

    configure_logging(level=_log_level(config, verbose, quiet))
    report_format = ReportFormat(fmt)

    options = AuditOptions(
        repo_path=repo_path,
        date_from=_as_date(date_from),
        date_to=_as_date(date_to),
        refresh_cache=refresh_cache,
        repository=repository or config.github.repository,
        test_dir=config.scan.test_dir,
    )
    cache = OpenIssueCache(cache_path or config.cache.path)
    client = build_tracker_client(config.github, github_token or config.github.token)

    _status(f"Scanning {repo_path} ...", report_format, quiet)
    if options.date_from or options.date_to:
        start = options.date_from.isoformat() if options.date_from else "beginning"
        end = options.date_to.isoformat() if options.date_to else "present"
        _status(f"Date range: {start} to {end}", report_format, quiet)

    try:
        report = await run_audit(options, cache=cache, client=client)
    except CrashAuditError as e:
        logger.debug("audit_failed", stage=e.stage, exc_info=True)
        click.echo(format_error(e.message, stage=e.stage), err=True)
        raise SystemExit(ExitCode.FAILURE) from e

    if report.open_issues is not None and report.open_issues.warning:
        err_console.print(
            format_warning(report.open_issues.warning),
            style="yellow",
            markup=False,
            highlight=False,
        )

    click.echo(render_report(report, report_format))

    if report.has_drift:
        raise SystemExit(ExitCode.OUT_OF_SYNC)


if __name__ == "__main__":
    cli()
