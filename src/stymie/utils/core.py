import argparse
import json
import sys
import tempfile

from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from stymie.crypto.cipher import Cipher, make_cipher
from stymie.storage.manifest import (
    Directory,
    Leaf,
    create_dirs,
    insert_leaf,
    iter_leaves,
    list_dir,
    lookup,
    to_plain,
    walk,
)
from stymie.storage.vault import Vault, open_store
from stymie.ui.editor import Editor
from stymie.ui.prompt import confirm
from stymie.utils import log
from stymie.utils.dataModels import Settings, StoreConfig
from stymie.utils.errors import (
    AlreadyExistsError,
    CorruptManifestError,
    InvalidOperationError,
    NotFoundError,
    PersistenceError,
)
from stymie.utils.helper import is_dir_path, join_path, split_dirs, write_private
from stymie.utils.shred import ShredResult, shred


@dataclass
class StoreContext:
    """Everything one command needs: the unlocked vault plus its collaborators."""
    vault: Vault
    editor: Callable[[Path], int]
    confirm: Callable[[str], bool] = confirm
    shred: Callable[[Path], ShredResult] = shred


@dataclass
class VerifyReport:
    dangling: List[str] = field(default_factory=list)
    orphaned: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.dangling


@contextmanager
def session(settings: Settings, cipher: Optional[Cipher] = None) -> Iterator[StoreContext]:
    with open_store(settings, cipher) as vault:
        yield StoreContext(
            vault=vault,
            editor=Editor(settings.editor, settings.timeout),
            shred=partial(shred, timeout=settings.timeout),
        )


def init_store(settings: Settings, config: StoreConfig, force: bool = False, cipher: Optional[Cipher] = None) -> Vault:
    vault = Vault(settings.root, cipher or make_cipher(settings))
    vault.init(config, force=force)
    return vault


def _add_leaf(vault: Vault, tree: Directory, segments: Sequence[str], payload: bytes) -> str:
    _, _, value = walk(tree, segments)
    if value is not None:
        raise AlreadyExistsError(f"/{join_path(segments)} already exists")
    identifier = vault.identifier(join_path(segments))
    # Insert in memory first so a leaf in the way fails before anything is written.
    insert_leaf(tree, segments, identifier)
    # Blob before manifest: a failure here can orphan a blob but never leave a dangling entry.
    vault.write_blob(identifier, payload)
    vault.save_manifest(tree)
    return identifier


def add(ctx: StoreContext, path: str, payload: bytes = b"") -> Optional[str]:
    """Create an entry, or a directory chain when `path` ends in a slash.

    Returns the new blob identifier, or None for directories.
    """
    tree = ctx.vault.load_manifest()
    if is_dir_path(path):
        create_dirs(tree, split_dirs(path))
        ctx.vault.save_manifest(tree)
        return None
    return _add_leaf(ctx.vault, tree, split_dirs(path), payload)


def _resolve_leaf(tree: Directory, path: str) -> Leaf:
    node = lookup(tree, split_dirs(path))
    if isinstance(node, Directory):
        raise NotFoundError(f"{path} is a directory")
    if node is None:
        raise NotFoundError(f"No matching entry: {path}")
    return node


def get(ctx: StoreContext, path: str) -> int:
    """Decrypt an entry into a private temp file, edit it, and re-encrypt it in place."""
    vault = ctx.vault
    leaf = _resolve_leaf(vault.load_manifest(), path)
    if not vault.has_blob(leaf.identifier):
        raise NotFoundError(f"Entry {path} has no backing blob ({leaf.identifier})")

    with tempfile.TemporaryDirectory(prefix="stymie-") as tmp:
        plain = Path(tmp) / split_dirs(path)[-1]
        vault.cipher.decrypt_to_file(vault.blob_path(leaf.identifier), plain)
        try:
            code = ctx.editor(plain)
            vault.write_blob(leaf.identifier, plain.read_bytes())
        finally:
            if plain.exists():
                ctx.shred(plain)
    return code


def has(ctx: StoreContext, path: str) -> bool:
    return lookup(ctx.vault.load_manifest(), split_dirs(path)) is not None


def list_entries(ctx: StoreContext, path: Optional[str] = None) -> List[str]:
    tree = ctx.vault.load_manifest()
    return list_dir(tree, split_dirs(path, allow_root=True) if path else None)


def import_file(ctx: StoreContext, src: Path, dest_dir: Optional[str] = None) -> str:
    """Add an external file under `dest_dir` (default the root), keeping its base name."""
    src = Path(src)
    if not src.is_file():
        raise NotFoundError(f"Not a file: {src}")
    dest = split_dirs(dest_dir or "/", allow_root=True)
    tree = ctx.vault.load_manifest()
    node = lookup(tree, dest)
    if node is None:
        raise NotFoundError(f"No such directory: /{join_path(dest)}")
    if not isinstance(node, Directory):
        raise InvalidOperationError(f"/{join_path(dest)} is not a directory")
    try:
        payload = src.read_bytes()
    except OSError as e:
        raise PersistenceError(f"Could not read {src}: {e}") from e
    target = [*dest, src.name]
    _add_leaf(ctx.vault, tree, target, payload)
    return "/" + join_path(target)


def export(ctx: StoreContext, path: str, contents: bool = False) -> bytes:
    """Plaintext of a leaf. For a directory, either its structure or (contents=True)
    a JSON map of every descendant entry to its decrypted text."""
    vault = ctx.vault
    segments = split_dirs(path, allow_root=True)
    node = lookup(vault.load_manifest(), segments)
    if node is None:
        raise NotFoundError(f"No matching entry: {path}")
    if isinstance(node, Leaf):
        return vault.read_blob(node.identifier)
    if not contents:
        return json.dumps(to_plain(node), indent=4).encode("utf-8") + b"\n"
    dump: Dict[str, str] = {}
    for logical, leaf in iter_leaves(node, segments):
        dump["/" + logical] = vault.read_blob(leaf.identifier).decode("utf-8", "replace")
    return json.dumps(dump, indent=4, sort_keys=True).encode("utf-8") + b"\n"


def verify(ctx: StoreContext) -> VerifyReport:
    vault = ctx.vault
    report = VerifyReport()
    referenced = set()
    for logical, leaf in iter_leaves(vault.load_manifest()):
        referenced.add(leaf.identifier)
        if not vault.has_blob(leaf.identifier):
            report.dangling.append("/" + logical)
    report.orphaned = sorted(vault.blob_ids() - referenced)
    return report


def cmd_init(args: argparse.Namespace) -> None:
    settings = args.settings
    config = StoreConfig(
        recipient=args.recipient,
        armor=args.armor,
        sign=not args.no_sign,
        hash=args.hash,
        t_cost=args.t,
        m_cost_kib=args.m,
        parallelism=args.p,
    )
    if not settings.passphrase and not config.recipient:
        raise InvalidOperationError("GPG stores need --recipient (or use --passphrase)")
    init_store(settings, config, force=args.force)
    log.success(f"Initialized store at {settings.root}")


def cmd_add(args: argparse.Namespace) -> None:
    payload = b""
    if args.stdin:
        payload = sys.stdin.buffer.read()
    elif args.message is not None:
        payload = args.message.encode("utf-8")
    with session(args.settings) as ctx:
        identifier = add(ctx, args.path, payload)
    log.success("Directory created" if identifier is None else "File created successfully")


def cmd_get(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        code = get(ctx, args.path)
    if code != 0:
        log.warn(f"Editor exited with status {code}; the file was re-encrypted anyway")
    log.info("Re-encrypted and closed the file")


def cmd_has(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        found = has(ctx, args.path)
    if not found:
        raise NotFoundError(f"No matching entry: {args.path}")
    log.success("Entry exists")


def cmd_ls(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        entries = list_entries(ctx, args.path)
    if not entries:
        print("(empty)")
        return
    for entry in entries:
        print(entry)


def cmd_import(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        target = import_file(ctx, Path(args.file), args.dest)
    log.success(f"Imported {args.file} as {target}")


def cmd_export(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        data = export(ctx, args.path, contents=args.contents)
    if args.out:
        try:
            write_private(Path(args.out), data)
        except OSError as e:
            raise PersistenceError(f"Could not write {args.out}: {e}") from e
        log.success(f"Exported {args.path} -> {args.out}")
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def cmd_verify(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        report = verify(ctx)
    for blob in report.orphaned:
        log.warn(f"Orphaned blob: {blob}")
    for entry in report.dangling:
        log.error(f"Dangling entry: {entry}")
    if not report.ok:
        raise CorruptManifestError(f"{len(report.dangling)} entries have no backing blob")
    log.success(f"Store is consistent ({len(report.orphaned)} orphaned blobs)")
