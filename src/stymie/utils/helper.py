import os

from pathlib import Path
from typing import Dict, List, Sequence

from stymie.utils.dataModels import BLOB_DIRNAME, CONFIG_FILENAME, LOCK_FILENAME, MANIFEST_FILENAME
from stymie.utils.errors import InvalidPathError

FILE_MODE = 0o600
DIR_MODE = 0o700


def repo_paths(repo: Path) -> Dict[str, Path]:
    return {
        "blobs": repo / BLOB_DIRNAME,
        "manifest": repo / MANIFEST_FILENAME,
        "config": repo / CONFIG_FILENAME,
        "lock": repo / LOCK_FILENAME,
    }


def strip_anchors(path: str) -> str:
    """Drop a single leading and a single trailing slash.

        `/notes/fp/curry/` -> `notes/fp/curry`
    """
    if path.startswith("/"):
        path = path[1:]
    if path.endswith("/"):
        path = path[:-1]
    return path


def is_dir_path(path: str) -> bool:
    return path.endswith("/")


def split_dirs(path: str, allow_root: bool = False) -> List[str]:
    """Turn a CLI path into the ordered list of segments used to walk the manifest."""
    if path is None:
        raise InvalidPathError("Must supply a path")
    stripped = strip_anchors(path)
    if not stripped:
        if allow_root:
            return []
        raise InvalidPathError(f"Not a valid entry path: {path!r}")
    parts = stripped.split("/")
    if any(not p for p in parts):
        raise InvalidPathError(f"Empty path segment in {path!r}")
    return parts


def normalize(path: str, allow_root: bool = False) -> str:
    """Traversal key for a path.

        `/notes/fp/curry` -> `notes.fp.curry`
    """
    return ".".join(split_dirs(path, allow_root=allow_root))


def join_path(segments: Sequence[str]) -> str:
    return "/".join(segments)


def write_private(path: Path, data: bytes) -> None:
    """Atomically replace `path` with `data`, readable only by the owner."""
    tmp = path.with_name(path.name + ".tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)
