"""Safe file I/O utilities.

Provides atomic whole-file replacement: the new content is written to a
temporary sibling, ``fsync``-ed, then moved over the target with
``os.replace`` so readers see either the old or the new file, never a
partial one.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace *path* with *text* atomically.

    * The temporary file lives in the same directory so ``os.replace``
      stays on one filesystem and is atomic.
    * ``os.fsync`` ensures the data hits disk before the rename.
    * Parent directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_text(path: Path) -> str | None:
    """Read *path* as UTF-8, returning ``None`` if it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
