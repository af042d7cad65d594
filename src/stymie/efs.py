#!/usr/bin/env python3
"""
stymie – encrypted secret store laid out as a virtual directory tree

Every logical path (`/notes/fp/curry`) is a separately encrypted blob named by
a digest of the path. An encrypted manifest records the tree and which blob
each entry lives in; it is decrypted, changed and re-encrypted by every
command that alters the namespace.

Store layout:
  $STYMIE/.stymie.d/      (default ~/.stymie.d)
    c                     # encrypted config: recipient, armor, sign, hash
    f                     # encrypted manifest (JSON tree)
    s/
      <digest>            # one encrypted blob per entry
    .lock                 # advisory lock held for the length of a command

Commands:
  init                    Create a store (GPG recipient or passphrase)
  add <path>              Add an entry; a trailing / creates directories
  get <path>              Edit an entry in $EDITOR, re-encrypt on exit
  has <path>              Check whether an entry exists
  list [path]             List a directory
  mv <src> <dest>         Move/rename an entry
  rm <path>               Remove an entry or empty directory (asks first)
  rmdir <path>            Remove an empty directory
  import <file> [dir]     Encrypt an external file into the store
  export <path>           Decrypt an entry or dump a directory
  verify                  Report dangling entries and orphaned blobs

Write ordering keeps the manifest from ever pointing at a missing blob: blobs
are written (or renamed) before the manifest, and removed after it.
"""
from __future__ import annotations

import sys

from stymie.ui.cli import build_parser, resolve_settings
from stymie.ui.constants import EXIT_ERROR, EXIT_OK
from stymie.utils import log
from stymie.utils.errors import StymieError


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.settings = resolve_settings(args)
        args.func(args)
    except StymieError as e:
        log.error(str(e))
        return EXIT_ERROR
    except KeyboardInterrupt:
        log.error("Aborted")
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
