"""Tests for crash test path and commit message parsing."""

from __future__ import annotations

import pytest

from crash_audit.parser import (
    DEFAULT_TEST_DIR,
    extract_pr_number,
    is_crash_test,
    normalize_test_dir,
    parse_issue_id,
)


class TestParseIssueId:
    """Tests for parse_issue_id."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("tests/crashes/12345.rs", 12345),
            ("tests/crashes/12345-2.rs", 12345),
            ("tests/crashes/12345-foo.rs", 12345),
            ("tests/crashes/12345-foo-bar.rs", 12345),
            ("tests/crashes/007.rs", 7),
        ],
    )
    def test_matching_names(self, path: str, expected: int) -> None:
        assert parse_issue_id(path) == expected

    @pytest.mark.parametrize(
        "path",
        [
            "tests/crashes/foo.rs",
            "tests/crashes/foo-12345.rs",
            "tests/crashes/12345.txt",
            "tests/crashes/12345.rs.bak",
            "tests/crashes/12345-.rs",
            "tests/crashes/README.md",
            "tests/ui/12345.rs",
            "tests/crashes/sub/12345.rs",
            "12345.rs",
            "tests/crashes/١٢٣.rs",
            "tests/crashes/１２.rs",
        ],
    )
    def test_non_matching_paths(self, path: str) -> None:
        assert parse_issue_id(path) is None

    def test_backslash_separators(self) -> None:
        assert parse_issue_id("tests\\crashes\\42.rs") == 42

    def test_custom_test_dir(self) -> None:
        assert parse_issue_id("src/test/crashes/9.rs", "src/test/crashes/") == 9
        assert parse_issue_id("tests/crashes/9.rs", "src/test/crashes") is None

    def test_is_crash_test(self) -> None:
        assert is_crash_test("tests/crashes/1.rs")
        assert not is_crash_test("tests/crashes/one.rs")


class TestNormalizeTestDir:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("tests/crashes", "tests/crashes"),
            ("/tests/crashes/", "tests/crashes"),
            ("tests\\crashes", "tests/crashes"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_test_dir(raw) == expected

    def test_default(self) -> None:
        assert DEFAULT_TEST_DIR == "tests/crashes"


class TestExtractPrNumber:
    def test_bors_merge(self) -> None:
        message = "Auto merge of #147900 - Zalathar:rollup, r=Zalathar\n\nRollup"
        assert extract_pr_number(message) == 147900

    def test_github_merge(self) -> None:
        assert extract_pr_number("Merge pull request #42 from a/b") == 42

    def test_no_pr(self) -> None:
        assert extract_pr_number("Remove fixed crash test for #12345") is None
