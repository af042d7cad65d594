import os
import shutil
import subprocess

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from stymie.utils import log
from stymie.utils.errors import PersistenceError


@dataclass
class ShredResult:
    path: Path
    returncode: int
    secure: bool


def shred(path: Path, timeout: Optional[float] = None) -> ShredResult:
    """Overwrite and remove a file, falling back to a plain unlink when `shred` is unavailable."""
    path = Path(path)
    tool = shutil.which("shred")
    if tool is None:
        log.warn("Your OS doesn't have the `shred` utility installed, falling back to plain removal...")
        try:
            os.remove(path)
        except OSError as e:
            raise PersistenceError(f"Could not remove {path}: {e}") from e
        return ShredResult(path, 0, secure=False)

    try:
        p = subprocess.run(
            [tool, "--zero", "--remove", str(path)],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise PersistenceError(f"shred did not finish within {timeout}s for {path}") from e
    if p.returncode != 0:
        err = p.stderr.decode("utf-8", "replace").strip()
        raise PersistenceError(f"shred exited with {p.returncode} for {path}: {err}")
    return ShredResult(path, p.returncode, secure=True)
