"""State directory and atomic file writes shared by the persisted caches."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

__all__ = [
    'STATE_DIR',
    'atomic_write_text',
]

STATE_DIR = Path('~/.claude/statusline').expanduser()


def atomic_write_text(path: Path, data: str, mode: int = 0o600) -> None:
    """Atomically write text to path (temp in same dir → fsync → rename).

    Readers see either the old or the new content, never a partial file.
    Raises OSError on failure after removing the temp file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        tmp.replace(path)
    except OSError:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
