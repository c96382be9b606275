from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path


def write_atomic(
    path: Path,
    data: bytes,
    *,
    prefix: str = ".readiness-",
    mode: int = 0o644,
) -> None:
    """Write ``data`` to ``path`` via temp file + rename in the same directory.

    Readers see either the previous content or the complete new content.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=str(path.parent), prefix=prefix, suffix=".tmp"
    )
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(temp_fd, "wb") as handle:
            handle.write(data)
        os.chmod(temp_path, mode)
        temp_path.replace(path)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise
