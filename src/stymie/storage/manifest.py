"""In-memory manifest tree.

A Directory is a dict of name -> Directory | Leaf, a Leaf carries the blob
identifier of one secret. On disk (after decryption) it is plain JSON:

    {
        "notes": {
            "fp": {
                "curry": "3f1c...e9"
            }
        }
    }

Old stores mark leaves with `true` instead of an identifier; those are
upgraded on load by hashing the leaf's path.
"""
import json
import re

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

from stymie.utils.errors import (
    AlreadyExistsError,
    CorruptManifestError,
    DirectoryNotEmptyError,
    InvalidPathError,
    NotFoundError,
)
from stymie.utils.helper import join_path, split_dirs


class Directory(dict):
    pass


@dataclass(frozen=True)
class Leaf:
    identifier: str


Node = Union[Directory, Leaf]
PathLike = Union[str, Sequence[str]]

IDENTIFIER_RE = re.compile(r"[0-9a-f]+")


def _segments(path: PathLike, allow_root: bool = False) -> List[str]:
    segments = split_dirs(path, allow_root=True) if isinstance(path, str) else list(path)
    if not segments and not allow_root:
        raise InvalidPathError("Must supply a path")
    return segments


def walk(tree: Directory, path: PathLike) -> Tuple[Optional[Directory], str, Optional[Node]]:
    """Find the entry at `path`.

    Returns `(parent, name, value)`. `value` is None when `parent` exists but
    holds no `name`; `parent` is None when some segment before the last is
    missing or is a leaf.
    """
    segments = _segments(path)
    *dirs, name = segments
    node: Node = tree
    for seg in dirs:
        node = node.get(seg) if isinstance(node, Directory) else None
        if not isinstance(node, Directory):
            return None, name, None
    return node, name, node.get(name)


def lookup(tree: Directory, path: PathLike) -> Optional[Node]:
    segments = _segments(path, allow_root=True)
    if not segments:
        return tree
    _, _, value = walk(tree, segments)
    return value


def create_dirs(tree: Directory, names: Sequence[str]) -> Directory:
    """mkdir -p: make sure every directory in the chain exists, return the last one."""
    node = tree
    for i, name in enumerate(names):
        child = node.get(name)
        if child is None:
            child = node[name] = Directory()
        elif not isinstance(child, Directory):
            raise AlreadyExistsError(f"{join_path(names[:i + 1])} is an entry, not a directory")
        node = child
    return node


def insert_leaf(tree: Directory, path: PathLike, identifier: str) -> Leaf:
    *dirs, name = _segments(path)
    parent = create_dirs(tree, dirs)
    if name in parent:
        raise AlreadyExistsError(f"{join_path([*dirs, name])} already exists")
    leaf = parent[name] = Leaf(identifier)
    return leaf


def remove_entry(tree: Directory, path: PathLike) -> Node:
    segments = _segments(path)
    parent, name, value = walk(tree, segments)
    if parent is None or value is None:
        raise NotFoundError(f"No matching entry: {join_path(segments)}")
    if isinstance(value, Directory) and value:
        raise DirectoryNotEmptyError(f"Directory not empty: {join_path(segments)}")
    del parent[name]
    return value


def list_dir(tree: Directory, path: Optional[PathLike] = None) -> List[str]:
    base = tree if path is None else lookup(tree, path)
    if not isinstance(base, Directory):
        raise CorruptManifestError(f"Could not list {path!r}, bad object lookup?")
    return sorted(f"{name}/" if isinstance(child, Directory) else name for name, child in base.items())


def iter_leaves(tree: Directory, prefix: Sequence[str] = ()) -> Iterator[Tuple[str, Leaf]]:
    stack: List[Tuple[List[str], Node]] = [(list(prefix), tree)]
    while stack:
        here, node = stack.pop()
        if isinstance(node, Leaf):
            yield join_path(here), node
            continue
        for name in sorted(node, reverse=True):
            stack.append((here + [name], node[name]))


def _parse(obj, here: List[str], recompute: Callable[[str], str]) -> Directory:
    out = Directory()
    for name, value in obj.items():
        if not name or "/" in name:
            raise CorruptManifestError(f"Invalid entry name {name!r} under /{join_path(here)}")
        if isinstance(value, dict):
            out[name] = _parse(value, here + [name], recompute)
        elif isinstance(value, str) and IDENTIFIER_RE.fullmatch(value):
            out[name] = Leaf(value)
        elif isinstance(value, str):
            raise CorruptManifestError(f"Entry /{join_path(here + [name])} has a malformed identifier {value!r}")
        elif value is True:
            out[name] = Leaf(recompute(join_path(here + [name])))
        else:
            raise CorruptManifestError(f"Entry /{join_path(here + [name])} is neither directory nor leaf")
    return out


def from_json(data: bytes, recompute: Callable[[str], str]) -> Directory:
    """Parse a decrypted manifest. `recompute` maps a logical path to its identifier."""
    if not data.strip():
        return Directory()
    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptManifestError(f"Manifest does not parse: {e}") from e
    if obj is None:
        return Directory()
    if not isinstance(obj, dict):
        raise CorruptManifestError("Manifest root is not a directory")
    return _parse(obj, [], recompute)


def to_plain(node: Node):
    if isinstance(node, Leaf):
        return node.identifier
    return {name: to_plain(child) for name, child in sorted(node.items())}


def to_json(tree: Directory) -> bytes:
    return json.dumps(to_plain(tree), indent=4).encode("utf-8")
