import fcntl
import os

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from stymie.utils.errors import PersistenceError
from stymie.utils.helper import FILE_MODE


@contextmanager
def store_lock(path: Path, blocking: bool = True) -> Iterator[Path]:
    """Exclusive advisory lock around one command's read-modify-write of the store."""
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, FILE_MODE)
    except OSError as e:
        raise PersistenceError(f"Could not open lock file {path}: {e}") from e
    try:
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except BlockingIOError as e:
            raise PersistenceError(f"Store is locked by another process ({path})") from e
        try:
            yield path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
