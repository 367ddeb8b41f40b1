"""Shared helpers for crash-audit."""

from __future__ import annotations

from crash_audit.utils.atomic import atomic_write_json, atomic_write_text
from crash_audit.utils.text import format_duration, percentage

__all__ = [
    "atomic_write_json",
    "atomic_write_text",
    "format_duration",
    "percentage",
]
