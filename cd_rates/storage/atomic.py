# cd_rates/storage/atomic.py

"""Crash-safe file replacement for output files."""

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str, newline: str | None = None) -> Path:
    """Write *text* to *path* so readers see the old or the new file, never half.

    The content goes to a temp file in the same directory which then
    replaces *path*. On any error the temp file is removed and the
    original file is left as it was.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline=newline) as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
