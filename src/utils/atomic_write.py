"""
Atomic JSON writes for the preference file.

The data goes to a temp file in the target directory, which then replaces
the target, so readers see either the old file or the new one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union


def atomic_write_json(
    path: Union[str, Path],
    data: Any,
    indent: int = 2,
    mode: int = 0o600,
) -> None:
    """
    Serialize data as JSON and write it to path atomically.

    Args:
        path: Destination file; parent directories are created
        data: JSON-serializable data
        indent: JSON indentation
        mode: Permissions of the written file (preferences may hold tokens)

    Raises:
        TypeError, ValueError: If data is not serializable; nothing is written
        OSError: If the file cannot be written
    """
    path = Path(path)
    content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
