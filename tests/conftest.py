from __future__ import annotations

import logging
import os
from collections.abc import Generator
from pathlib import Path

import pytest

# Register fixture plugins from tests/fixtures/
pytest_plugins = [
    "tests.fixtures.git",
    "tests.fixtures.tracker",
]


@pytest.fixture(autouse=True)
def configure_test_logging() -> Generator[None, None, None]:
    """Configure structlog for test environment.

    Runs automatically for all tests so that log output goes to stderr
    at WARNING level and never mixes with report output on stdout.
    """
    from crash_audit.logging import clear_context, configure_logging

    configure_logging(level=logging.WARNING)
    yield
    clear_context()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove CRASH_AUDIT_ and GITHUB_TOKEN variables for clean testing."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("CRASH_AUDIT_") or key == "GITHUB_TOKEN":
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def isolated_home(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: None
) -> Path:
    """Point Path.home() and the working directory at empty temp dirs.

    Keeps the user's ~/.config/crash-audit/config.yaml and any project
    crash-audit.yaml or .env out of the test.
    """
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(work)
    return work
