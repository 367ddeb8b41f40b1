"""Shared test fixtures for the crash-audit test suite.

Fixtures are organized by concern and registered as pytest plugins from
``tests/conftest.py``.

Available Fixtures
==================

Git repositories (from tests/fixtures/git.py)
---------------------------------------------

Classes:
    CrashRepo: Builds a throwaway git repository commit by commit, with
        explicit commit dates, for exercising the history scanner.

Fixtures:
    crash_repo: Empty CrashRepo in a temporary directory.
    seeded_crash_repo: CrashRepo whose first commit adds crash tests
        100.rs, 200-1.rs and 200-2.rs.

Issue tracker (from tests/fixtures/tracker.py)
----------------------------------------------

Classes:
    FakeTransport: In-memory IssueTransport serving pages from a list and
        raising queued errors per page.

Fixtures:
    fast_retry: RetryPolicy with three attempts and no delays.
    fake_transport: Factory building FakeTransport instances.
"""
