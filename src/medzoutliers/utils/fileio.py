"""
Atomic file-write utilities.

Pipeline outputs are written to a temporary file in the destination directory
and moved into place with ``os.replace()`` (POSIX rename guarantee), so an
interrupted run never leaves a truncated table behind.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


@contextmanager
def atomic_open(path: str | os.PathLike) -> Iterator[IO[str]]:
    """Open a text handle whose contents replace *path* only on clean exit.

    Missing parent directories are created. If the body raises, the
    temporary file is removed and *path* is left untouched.

    Parameters
    ----------
    path:
        Destination file path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp",
            delete=False, newline="",
        ) as tmp:
            tmp_path = tmp.name
            yield tmp
        # NamedTemporaryFile creates 0600; use the mode a plain open() would give
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_lines(path: str | os.PathLike, lines) -> None:
    """Write one item per line to *path* atomically.

    Parameters
    ----------
    path:
        Destination file path.
    lines:
        Iterable of values; each is converted with ``str()``.
    """
    with atomic_open(path) as handle:
        for line in lines:
            handle.write(f"{line}\n")
