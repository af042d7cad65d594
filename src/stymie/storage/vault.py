import os

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Set

from stymie.crypto.cipher import Cipher, GpgCipher, is_passphrase_record, make_cipher
from stymie.crypto.hash import hash_path, resolve_digest
from stymie.storage import manifest
from stymie.storage.lock import store_lock
from stymie.storage.manifest import Directory
from stymie.utils.dataModels import Settings, StoreConfig
from stymie.utils.errors import NotFoundError, PersistenceError
from stymie.utils.helper import DIR_MODE, repo_paths


class Vault:
    """Encrypted persistence for one store: config record, manifest record and blobs.

    Every method that touches disk goes through the cipher, so nothing here
    ever writes plaintext.
    """

    def __init__(self, root: Path, cipher: Cipher):
        self.root = Path(root)
        self.cipher = cipher
        self.paths = repo_paths(self.root)
        self.config: Optional[StoreConfig] = None

    def exists(self) -> bool:
        return self.paths["config"].exists() and self.paths["manifest"].exists()

    def init(self, config: StoreConfig, force: bool = False) -> None:
        if self.exists() and not force:
            raise PersistenceError(f"{self.root} already holds a store. Use --force to overwrite.")
        resolve_digest(config.hash)
        try:
            self.root.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            self.paths["blobs"].mkdir(mode=DIR_MODE, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create {self.root}: {e}") from e
        self.cipher.configure(config)
        self.config = config
        self.cipher.encrypt_to_file(self.paths["config"], config.to_bytes())
        self.save_manifest(Directory())

    def load_config(self) -> StoreConfig:
        path = self.paths["config"]
        if not path.exists():
            raise PersistenceError(f"No store found at {self.root}. Run `stymie init` first.")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e
        if isinstance(self.cipher, GpgCipher) and is_passphrase_record(data):
            raise PersistenceError("This store is passphrase protected. Supply --passphrase or $STYMIE_PASSPHRASE.")
        config = StoreConfig.from_bytes(self.cipher.decrypt(data))
        self.cipher.configure(config)
        self.config = config
        return config

    def identifier(self, path: str) -> str:
        return hash_path(path, self.config.hash)

    def load_manifest(self) -> Directory:
        path = self.paths["manifest"]
        if not path.exists():
            raise PersistenceError(f"Manifest missing at {path}")
        return manifest.from_json(self.cipher.decrypt_file(path), self.identifier)

    def save_manifest(self, tree: Directory) -> None:
        self.cipher.encrypt_to_file(self.paths["manifest"], manifest.to_json(tree))

    def blob_path(self, identifier: str) -> Path:
        return self.paths["blobs"] / identifier

    def has_blob(self, identifier: str) -> bool:
        return self.blob_path(identifier).is_file()

    def write_blob(self, identifier: str, plaintext: bytes) -> Path:
        return self.cipher.encrypt_to_file(self.blob_path(identifier), plaintext)

    def read_blob(self, identifier: str) -> bytes:
        path = self.blob_path(identifier)
        if not path.is_file():
            raise NotFoundError(f"Blob {identifier} is missing from {self.paths['blobs']}")
        return self.cipher.decrypt_file(path)

    def rename_blob(self, old: str, new: str) -> None:
        try:
            os.rename(self.blob_path(old), self.blob_path(new))
        except OSError as e:
            raise PersistenceError(f"Could not rename blob {old} -> {new}: {e}") from e

    def blob_ids(self) -> Set[str]:
        blobs = self.paths["blobs"]
        if not blobs.is_dir():
            return set()
        return {p.name for p in blobs.iterdir() if p.is_file() and not p.name.endswith(".tmp")}


@contextmanager
def open_store(settings: Settings, cipher: Optional[Cipher] = None) -> Iterator[Vault]:
    """Lock the store and decrypt its configuration for the length of one command."""
    root = Path(settings.root)
    if not root.is_dir():
        raise PersistenceError(f"No store found at {root}. Run `stymie init` first.")
    vault = Vault(root, cipher or make_cipher(settings))
    with store_lock(vault.paths["lock"]):
        vault.load_config()
        yield vault
