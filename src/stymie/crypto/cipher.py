"""Cipher collaborators.

The store never looks inside ciphertext: every record and blob goes through a
`Cipher`, which only has to turn bytes into bytes and back. Two backends exist:

  GpgCipher         spawns `gpg` once per call (public-key, optional signing)
  PassphraseCipher  Argon2id(SHA3-512(passphrase)) -> AES-256-GCM, in-process

PassphraseCipher output (big-endian):
    magic     : 4 bytes   -> b"STY1"
    version   : 1 byte    -> 0x01
    t_cost    : u32
    m_cost    : u32  (KiB)
    parallel  : u32
    salt      : 16 bytes
    nonce     : 12 bytes
    ciphertext: remaining bytes

With `armor` on, the same bytes are base64 encoded between BEGIN/END lines.
"""
import base64
import os
import struct
import subprocess

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from stymie.crypto.aead import aead_decrypt, aead_encrypt
from stymie.crypto.hash import derive_kmaster
from stymie.utils.dataModels import (
    ARMOR_BEGIN,
    ARMOR_END,
    RECORD_HDR_FMT,
    RECORD_HDR_SIZE,
    RECORD_MAGIC,
    RECORD_VERSION,
    Settings,
    StoreConfig,
)
from stymie.utils.errors import PersistenceError
from stymie.utils.helper import write_private


class Cipher:
    """Opaque encrypt/decrypt service. Subclasses implement `encrypt` and `decrypt`."""

    def configure(self, config: StoreConfig) -> None:
        self.config = config

    def encrypt(self, plaintext: bytes) -> bytes:
        raise NotImplementedError

    def decrypt(self, ciphertext: bytes) -> bytes:
        raise NotImplementedError

    def encrypt_to_file(self, path: Path, plaintext: bytes) -> Path:
        ct = self.encrypt(plaintext)
        try:
            write_private(path, ct)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e
        return path

    def decrypt_file(self, path: Path) -> bytes:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e
        return self.decrypt(data)

    def decrypt_to_file(self, src: Path, dest: Path) -> Path:
        plaintext = self.decrypt_file(src)
        try:
            write_private(dest, plaintext)
        except OSError as e:
            raise PersistenceError(f"Could not write {dest}: {e}") from e
        return dest


def armor(data: bytes) -> bytes:
    body = base64.encodebytes(data)
    return ARMOR_BEGIN + b"\n" + body + ARMOR_END + b"\n"


def dearmor(data: bytes) -> bytes:
    text = data.strip()
    if not text.startswith(ARMOR_BEGIN):
        return data
    if not text.endswith(ARMOR_END):
        raise PersistenceError("Truncated armored record")
    body = text[len(ARMOR_BEGIN):-len(ARMOR_END)]
    try:
        return base64.b64decode(b"".join(body.split()), validate=True)
    except ValueError as e:
        raise PersistenceError("Armored record is not valid base64") from e


def is_passphrase_record(data: bytes) -> bool:
    return data.startswith(RECORD_MAGIC) or data.lstrip().startswith(ARMOR_BEGIN)


class PassphraseCipher(Cipher):
    def __init__(self, passphrase: str, config: Optional[StoreConfig] = None):
        if not passphrase:
            raise PersistenceError("A passphrase is required for this store")
        self._passphrase = passphrase
        self._keys: Dict[Tuple[bytes, int, int, int], bytes] = {}
        self._salt: Optional[bytes] = None
        self.configure(config or StoreConfig())

    def configure(self, config: StoreConfig) -> None:
        super().configure(config)
        # New cost parameters mean a fresh salt for anything written from now on.
        self._salt = None

    def _key(self, salt: bytes, t: int, m: int, p: int) -> bytes:
        k = (salt, t, m, p)
        if k not in self._keys:
            self._keys[k] = derive_kmaster(self._passphrase, salt, t, m, p)
        return self._keys[k]

    def encrypt(self, plaintext: bytes) -> bytes:
        c = self.config
        if self._salt is None:
            self._salt = os.urandom(16)
        kmaster = self._key(self._salt, c.t_cost, c.m_cost_kib, c.parallelism)
        nonce, ct = aead_encrypt(kmaster, plaintext)
        header = struct.pack(
            RECORD_HDR_FMT, RECORD_MAGIC, RECORD_VERSION,
            c.t_cost, c.m_cost_kib, c.parallelism, self._salt, nonce,
        )
        data = header + ct
        return armor(data) if c.armor else data

    def decrypt(self, ciphertext: bytes) -> bytes:
        data = dearmor(ciphertext)
        if len(data) < RECORD_HDR_SIZE:
            raise PersistenceError("Record is too small or corrupt")
        magic, ver, t, m, p, salt, nonce = struct.unpack(RECORD_HDR_FMT, data[:RECORD_HDR_SIZE])
        if magic != RECORD_MAGIC:
            raise PersistenceError("Invalid record magic (not a passphrase store?)")
        if ver != RECORD_VERSION:
            raise PersistenceError("Unsupported record version")
        return aead_decrypt(self._key(salt, t, m, p), nonce, data[RECORD_HDR_SIZE:])


class GpgCipher(Cipher):
    def __init__(self, config: Optional[StoreConfig] = None, gpg: str = "gpg", timeout: Optional[float] = None):
        self.gpg = gpg
        self.timeout = timeout
        self.configure(config or StoreConfig())

    def encrypt_args(self) -> List[str]:
        if not self.config.recipient:
            raise PersistenceError("No GPG recipient configured")
        args = ["--encrypt", "-r", self.config.recipient]
        if self.config.armor:
            args.append("--armor")
        if self.config.sign:
            args.append("--sign")
        return args

    def _run(self, args: List[str], data: bytes) -> bytes:
        cmd = [self.gpg, "--batch", "--yes", "--quiet", *args]
        try:
            p = subprocess.run(
                cmd,
                input=data,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise PersistenceError(f"{self.gpg} not found in PATH. Install GnuPG and retry.") from e
        except subprocess.TimeoutExpired as e:
            raise PersistenceError(f"{self.gpg} did not finish within {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            err = e.stderr.decode("utf-8", "replace").strip()
            raise PersistenceError(f"{self.gpg} exited with {e.returncode}: {err}") from e
        return p.stdout

    def encrypt(self, plaintext: bytes) -> bytes:
        return self._run(self.encrypt_args(), plaintext)

    def decrypt(self, ciphertext: bytes) -> bytes:
        return self._run(["--decrypt"], ciphertext)


def make_cipher(settings: Settings) -> Cipher:
    if settings.passphrase:
        return PassphraseCipher(settings.passphrase)
    return GpgCipher(timeout=settings.timeout)
