import argparse

from stymie import __version__
from stymie.utils.core import cmd_add, cmd_export, cmd_get, cmd_has, cmd_import, cmd_init, cmd_ls, cmd_verify
from stymie.utils.dataModels import (
    DEFAULT_HASH,
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
    Settings,
)
from stymie.utils.maintain import cmd_mv, cmd_rm, cmd_rmdir


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stymie", description="Encrypted secret store with a virtual directory tree")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--root", help="Store directory (default: $STYMIE/.stymie.d or ~/.stymie.d)")
    p.add_argument("--passphrase", help="Use the passphrase backend (default: $STYMIE_PASSPHRASE, else GPG)")
    p.add_argument("--timeout", type=float, help="Seconds to wait for gpg/editor/shred (default: no limit)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Initialize a store")
    p_init.add_argument("--recipient", help="GPG key id or email to encrypt to")
    p_init.add_argument("--armor", action="store_true", help="Write ASCII-armored records")
    p_init.add_argument("--no-sign", action="store_true", help="Don't sign records (GPG only)")
    p_init.add_argument("--hash", default=DEFAULT_HASH, help="Digest used to name blobs")
    p_init.add_argument("-t", type=int, default=DEFAULT_T_COST, help="Argon2 time cost (iterations)")
    p_init.add_argument("-m", type=int, default=DEFAULT_M_COST_KiB, help="Argon2 memory (KiB)")
    p_init.add_argument("-p", type=int, default=DEFAULT_PARALLELISM, help="Argon2 parallelism")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing store")
    p_init.set_defaults(func=cmd_init)

    p_add = sub.add_parser("add", help="Add an entry, or a directory when the path ends in /")
    p_add.add_argument("path", help="Logical path, e.g. /notes/fp/curry")
    src = p_add.add_mutually_exclusive_group()
    src.add_argument("-m", "--message", help="Initial content")
    src.add_argument("--stdin", action="store_true", help="Read initial content from stdin")
    p_add.set_defaults(func=cmd_add)

    p_get = sub.add_parser("get", help="Open an entry in $EDITOR and re-encrypt it on exit")
    p_get.add_argument("path")
    p_get.set_defaults(func=cmd_get)

    p_has = sub.add_parser("has", help="Check whether an entry exists")
    p_has.add_argument("path")
    p_has.set_defaults(func=cmd_has)

    p_ls = sub.add_parser("list", aliases=["ls"], help="List a directory")
    p_ls.add_argument("path", nargs="?", default=None)
    p_ls.set_defaults(func=cmd_ls)

    p_mv = sub.add_parser("mv", help="Move or rename an entry")
    p_mv.add_argument("src")
    p_mv.add_argument("dest")
    p_mv.set_defaults(func=cmd_mv)

    p_rm = sub.add_parser("rm", help="Remove an entry or an empty directory")
    p_rm.add_argument("path")
    p_rm.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")
    p_rm.set_defaults(func=cmd_rm)

    p_rmdir = sub.add_parser("rmdir", help="Remove an empty directory")
    p_rmdir.add_argument("path")
    p_rmdir.set_defaults(func=cmd_rmdir)

    p_imp = sub.add_parser("import", help="Encrypt an external file into the store")
    p_imp.add_argument("file", help="Plaintext file to import")
    p_imp.add_argument("dest", nargs="?", default=None, help="Destination directory (default: /)")
    p_imp.set_defaults(func=cmd_import)

    p_exp = sub.add_parser("export", help="Decrypt an entry, or dump a directory")
    p_exp.add_argument("path")
    p_exp.add_argument("--contents", action="store_true", help="For directories, dump every entry's content")
    p_exp.add_argument("-o", "--out", help="Write to a file instead of stdout")
    p_exp.set_defaults(func=cmd_export)

    p_ver = sub.add_parser("verify", help="Check that every entry has a blob")
    p_ver.set_defaults(func=cmd_verify)

    return p


def resolve_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(root=args.root, passphrase=args.passphrase, timeout=args.timeout)
