"""Git history access using GitPython.

Usage:
    ```python
    from crash_audit.git import HistoryScanner

    scanner = HistoryScanner("/path/to/repo")
    result = scanner.scan()
    present = scanner.current_files()
    ```
"""

from __future__ import annotations

from crash_audit.git.history import HistoryScanner, ScanResult, list_crash_tests

__all__ = [
    "HistoryScanner",
    "ScanResult",
    "list_crash_tests",
]
