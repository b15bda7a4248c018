"""Atomic file write utilities for document edits."""

from __future__ import annotations

import errno
import os
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock, RLock
from typing import IO, Any, Iterator
from uuid import uuid4

_PATH_LOCKS: dict[str, RLock] = {}
_PATH_LOCKS_GUARD = Lock()


@contextmanager
def locked_path(target: Path) -> Iterator[None]:
    """Serialise access to ``target`` to avoid rename conflicts on Windows."""

    key = str(target)
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = RLock()
            _PATH_LOCKS[key] = lock
    lock.acquire()
    try:
        yield
    finally:
        lock.release()


def flush_handle(handle: IO[Any], *, durable: bool) -> None:
    """Flush file buffers and optionally fsync for durability."""

    handle.flush()
    if durable:
        os.fsync(handle.fileno())


_TRANSIENT_ERRNOS = {errno.EACCES, errno.EPERM}
_TRANSIENT_WINERRORS = {5, 32}


def replace_file(
    temp_path: Path,
    target_path: Path,
    *,
    attempts: int = 5,
    delay: float = 0.05,
) -> None:
    """Atomically replace ``target_path`` with retry support on Windows."""

    last_error: OSError | None = None
    for attempt in range(attempts):
        try:
            temp_path.replace(target_path)
            return
        except OSError as exc:
            winerror = getattr(exc, "winerror", None)
            if exc.errno not in _TRANSIENT_ERRNOS and winerror not in _TRANSIENT_WINERRORS:
                raise
            last_error = exc
            if attempt == attempts - 1:
                break
            time.sleep(delay * (attempt + 1))
    if last_error is not None:
        raise last_error


def read_text_exact(path: Path) -> str:
    """Read UTF-8 text without translating line endings."""

    with path.open("r", encoding="utf-8", newline="") as handle:
        return handle.read()


def write_text_atomic(path: Path, content: str, *, durable: bool = True) -> None:
    """Write ``content`` verbatim via a temp file and rename.

    Line endings and the trailing newline are left exactly as given so edits
    never rewrite text outside the replaced range.
    """

    with locked_path(path):
        temp_path = path.parent / f".{path.name}.{uuid4().hex}.tmp"
        try:
            with temp_path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(content)
                flush_handle(handle, durable=durable)
            replace_file(temp_path, path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise


__all__ = [
    "flush_handle",
    "locked_path",
    "read_text_exact",
    "replace_file",
    "write_text_atomic",
]
