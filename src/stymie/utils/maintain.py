import argparse

from stymie.storage.manifest import Directory, insert_leaf, lookup, remove_entry, walk
from stymie.utils import log
from stymie.utils.core import StoreContext, session
from stymie.utils.errors import (
    AlreadyExistsError,
    DirectoryNotEmptyError,
    InvalidOperationError,
    NotFoundError,
    PersistenceError,
)
from stymie.utils.helper import is_dir_path, join_path, split_dirs


def mv(ctx: StoreContext, src: str, dest: str) -> str:
    """Move an entry. Moving into an existing directory (or a path ending in a
    slash) keeps the base name. Returns the new logical path."""
    vault = ctx.vault
    tree = vault.load_manifest()
    src_parts = split_dirs(src)
    parent, name, value = walk(tree, src_parts)
    if value is None:
        raise NotFoundError(f"No matching entry: {src}")
    if isinstance(value, Directory):
        raise InvalidOperationError(f"{src} is a directory; moving directories is not supported")

    dest_parts = split_dirs(dest, allow_root=True)
    if isinstance(lookup(tree, dest_parts), Directory) or is_dir_path(dest) or not dest_parts:
        dest_parts = [*dest_parts, name]
    if dest_parts == src_parts:
        return "/" + join_path(dest_parts)
    if lookup(tree, dest_parts) is not None:
        raise AlreadyExistsError(f"/{join_path(dest_parts)} already exists")

    old_id = value.identifier
    new_id = vault.identifier(join_path(dest_parts))
    del parent[name]
    insert_leaf(tree, dest_parts, new_id)

    # Rename before touching the manifest on disk; roll back if the manifest can't be written.
    vault.rename_blob(old_id, new_id)
    try:
        vault.save_manifest(tree)
    except PersistenceError:
        try:
            vault.rename_blob(new_id, old_id)
        except PersistenceError as e:
            log.error(f"Could not restore blob {old_id}: {e}")
        raise
    return "/" + join_path(dest_parts)


def rm(ctx: StoreContext, path: str, assume_yes: bool = False) -> bool:
    """Remove a leaf or an empty directory. Returns False when the user declines."""
    vault = ctx.vault
    tree = vault.load_manifest()
    segments = split_dirs(path)
    _, _, value = walk(tree, segments)
    if value is None:
        raise NotFoundError(f"No matching entry: {path}")
    if isinstance(value, Directory) and value:
        raise DirectoryNotEmptyError(f"Directory not empty: {path}")

    if not assume_yes and not ctx.confirm("Are you sure?"):
        return False

    remove_entry(tree, segments)
    vault.save_manifest(tree)
    if not isinstance(value, Directory) and vault.has_blob(value.identifier):
        try:
            ctx.shred(vault.blob_path(value.identifier))
        except PersistenceError as e:
            log.warn(f"Entry removed but its blob could not be erased: {e}")
    return True


def rmdir(ctx: StoreContext, path: str) -> None:
    vault = ctx.vault
    tree = vault.load_manifest()
    segments = split_dirs(path)
    _, _, value = walk(tree, segments)
    if value is None:
        raise NotFoundError(f"No matching entry: {path}")
    if not isinstance(value, Directory):
        raise InvalidOperationError(f"{path} is not a directory; use rm")
    remove_entry(tree, segments)
    vault.save_manifest(tree)


def cmd_mv(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        target = mv(ctx, args.src, args.dest)
    log.success(f"Moved {args.src} -> {target}")


def cmd_rm(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        removed = rm(ctx, args.path, assume_yes=args.yes)
    if removed:
        log.success("The entry has been removed")
    else:
        log.info("No removal")


def cmd_rmdir(args: argparse.Namespace) -> None:
    with session(args.settings) as ctx:
        rmdir(ctx, args.path)
    log.success(f"Removed directory {args.path}")
