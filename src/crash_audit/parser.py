"""Crash test file name and commit message parsing.

Crash tests are named after the issue they reproduce::

    tests/crashes/12345.rs        -> 12345
    tests/crashes/12345-2.rs      -> 12345
    tests/crashes/12345-foo.rs    -> 12345
    tests/crashes/foo.rs          -> None
    tests/crashes/foo-12345.rs    -> None
    tests/ui/12345.rs             -> None

Most paths in a repository do not match, so parsing returns ``None`` rather
than raising.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

__all__ = [
    "DEFAULT_TEST_DIR",
    "extract_pr_number",
    "is_crash_test",
    "normalize_test_dir",
    "parse_issue_id",
]

#: Directory holding crash tests, relative to the repository root
DEFAULT_TEST_DIR = "tests/crashes"

_FILENAME_PATTERN = re.compile(r"^(?P<issue>[0-9]+)(?:-[^/]+)?\.rs$")

#: Merge commit subjects that name the pull request they land
_PR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"Auto merge of #(\d+)"),
    re.compile(r"Merge pull request #(\d+)"),
)


def normalize_test_dir(test_dir: str) -> str:
    """Return ``test_dir`` as a POSIX path without leading/trailing slashes."""
    return str(PurePosixPath(test_dir.replace("\\", "/").strip("/")))


def parse_issue_id(path: str, test_dir: str = DEFAULT_TEST_DIR) -> int | None:
    """Extract the issue number from a crash test path.

    Args:
        path: Repository-relative path.
        test_dir: Directory crash tests live in. Files in subdirectories
            of it do not match.

    Returns:
        Issue number, or None when the path is not a crash test.
    """
    posix = PurePosixPath(path.replace("\\", "/"))
    if str(posix.parent) != normalize_test_dir(test_dir):
        return None
    match = _FILENAME_PATTERN.match(posix.name)
    if match is None:
        return None
    return int(match.group("issue"))


def is_crash_test(path: str, test_dir: str = DEFAULT_TEST_DIR) -> bool:
    return parse_issue_id(path, test_dir) is not None


def extract_pr_number(message: str) -> int | None:
    """Extract the pull request number from a merge commit message.

    Example:
        >>> extract_pr_number("Auto merge of #147900 - Zalathar:rollup, r=Zalathar")
        147900
        >>> extract_pr_number("Mention #12345 but not auto merge") is None
        True
    """
    for pattern in _PR_PATTERNS:
        match = pattern.search(message)
        if match:
            return int(match.group(1))
    return None
