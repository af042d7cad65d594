from argon2.low_level import hash_secret_raw, Type as Argon2Type
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes

from stymie.utils.errors import InvalidOperationError
from stymie.utils.helper import join_path, split_dirs

# Names older stores were set up with (OpenSSL signature aliases).
DIGEST_ALIASES = {
    "sha256withrsaencryption": "SHA256",
    "sha512withrsaencryption": "SHA512",
    "sha1withrsaencryption": "SHA1",
}

# Variable-length digests need an explicit size.
DIGEST_SIZES = {
    "BLAKE2b": 64,
    "BLAKE2s": 32,
    "SHAKE128": 16,
    "SHAKE256": 32,
}

# Lower-cased name -> class, e.g. "blake2b" -> hashes.BLAKE2b.
DIGEST_CLASSES = {
    attr.lower(): getattr(hashes, attr)
    for attr in dir(hashes)
    if isinstance(getattr(hashes, attr), type)
    and issubclass(getattr(hashes, attr), hashes.HashAlgorithm)
    and getattr(hashes, attr) is not hashes.HashAlgorithm
}


def resolve_digest(name: str) -> hashes.HashAlgorithm:
    """Map a configured digest name (`sha256`, `sha3-512`, `blake2b`, ...) to an algorithm."""
    key = (name or "").strip().lower()
    algo = DIGEST_CLASSES.get(DIGEST_ALIASES.get(key, key.replace("-", "_")).lower())
    if algo is None:
        raise InvalidOperationError(f"Unsupported digest algorithm: {name!r}")
    if algo.__name__ in DIGEST_SIZES:
        return algo(DIGEST_SIZES[algo.__name__])
    return algo()


def digest_hex(data: bytes, algorithm: str) -> str:
    digest = hashes.Hash(resolve_digest(algorithm), backend=default_backend())
    digest.update(data)
    return digest.finalize().hex()


def hash_path(path: str, algorithm: str) -> str:
    """Blob identifier for a logical path. `/a/b`, `a/b` and `a/b/` all map to the same id."""
    canonical = join_path(split_dirs(path))
    return digest_hex(canonical.encode("utf-8"), algorithm)


def sha3_512_bytes(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA3_512(), backend=default_backend())
    digest.update(data)
    return digest.finalize()


def derive_kmaster(passphrase: str, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> bytes:
    """Kmaster = Argon2id(SHA3-512(passphrase)) -> 32 bytes"""
    prehash = sha3_512_bytes(passphrase.encode("utf-8"))
    kmaster = hash_secret_raw(
        secret=prehash,
        salt=salt,
        time_cost=t_cost,
        memory_cost=m_cost_kib,
        parallelism=parallelism,
        hash_len=32,
        type=Argon2Type.ID,
    )
    return kmaster
