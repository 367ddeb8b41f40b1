"""All-or-nothing file writes.

Content is written to a temporary file next to the destination and renamed
into place with the atomicwrites library, so readers see either the previous
file or the complete new one, never a truncated mix. An interrupted write
(exception, KeyboardInterrupt) removes the temporary file and leaves the
destination untouched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from atomicwrites import atomic_write  # type: ignore[import-untyped]

__all__ = [
    "atomic_write_json",
    "atomic_write_text",
]


def atomic_write_text(
    path: Path | str,
    content: str,
    *,
    encoding: str = "utf-8",
    mkdir: bool = True,
) -> None:
    """Replace ``path`` with ``content`` atomically.

    Args:
        path: Destination file path.
        content: Text content to write.
        encoding: Character encoding. Defaults to "utf-8".
        mkdir: Create missing parent directories. Defaults to True.

    Raises:
        OSError: If the write or rename fails.
    """
    file_path = Path(path)

    if mkdir:
        file_path.parent.mkdir(parents=True, exist_ok=True)

    with atomic_write(str(file_path), mode="w", encoding=encoding, overwrite=True) as f:
        f.write(content)


def atomic_write_json(
    path: Path | str,
    data: Any,
    *,
    indent: int | None = 2,
    mkdir: bool = True,
) -> None:
    """Serialize ``data`` as JSON and replace ``path`` with it atomically.

    Serialization happens before the temporary file is created, so a
    non-serializable payload never touches the filesystem.

    Raises:
        OSError: If the write or rename fails.
        TypeError: If the data is not JSON-serializable.
    """
    content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    atomic_write_text(path, content, mkdir=mkdir)
