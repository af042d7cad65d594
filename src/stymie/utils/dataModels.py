import json
import os
import struct

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from stymie.utils.errors import CorruptManifestError, InvalidOperationError

DEFAULT_T_COST = 4
DEFAULT_M_COST_KiB = 262144  # 256 MiB (tune per device)
DEFAULT_PARALLELISM = 2
DEFAULT_HASH = "sha256"

RECORD_MAGIC = b"STY1"
RECORD_VERSION = 1
RECORD_HDR_FMT = ">4sBIII16s12s"  # magic, ver, t, m, p, salt(16), nonce(12)
RECORD_HDR_SIZE = struct.calcsize(RECORD_HDR_FMT)

ARMOR_BEGIN = b"-----BEGIN STYMIE MESSAGE-----"
ARMOR_END = b"-----END STYMIE MESSAGE-----"

STORE_DIRNAME = ".stymie.d"
BLOB_DIRNAME = "s"
MANIFEST_FILENAME = "f"
CONFIG_FILENAME = "c"
LOCK_FILENAME = ".lock"


@dataclass
class StoreConfig:
    """Contents of the encrypted configuration record."""
    recipient: Optional[str] = None
    armor: bool = False
    sign: bool = True
    hash: str = DEFAULT_HASH
    t_cost: int = DEFAULT_T_COST
    m_cost_kib: int = DEFAULT_M_COST_KiB
    parallelism: int = DEFAULT_PARALLELISM

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self), indent=4, sort_keys=True).encode("utf-8")

    @staticmethod
    def from_bytes(b: bytes) -> "StoreConfig":
        try:
            obj = json.loads(b.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptManifestError(f"Configuration record does not parse: {e}") from e
        if not isinstance(obj, dict):
            raise CorruptManifestError("Configuration record is not an object")
        known = {k: v for k, v in obj.items() if k in StoreConfig.__dataclass_fields__}
        return StoreConfig(**known)


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise InvalidOperationError(f"STYMIE_TIMEOUT must be a number of seconds, got {value!r}") from None


@dataclass
class Settings:
    """Per-invocation runtime settings, resolved from CLI flags and the environment."""
    root: Path
    passphrase: Optional[str] = None
    editor: str = "vim"
    timeout: Optional[float] = None

    @staticmethod
    def from_env(env: Optional[Dict[str, str]] = None, **overrides: Any) -> "Settings":
        env = os.environ if env is None else env
        base = env.get("STYMIE") or env.get("HOME") or str(Path.home())
        timeout = env.get("STYMIE_TIMEOUT")
        values: Dict[str, Any] = {
            "root": Path(base).expanduser() / STORE_DIRNAME,
            "passphrase": env.get("STYMIE_PASSPHRASE") or None,
            "editor": env.get("EDITOR") or "vim",
            "timeout": _parse_timeout(timeout),
        }
        root = overrides.pop("root", None)
        if root is not None:
            values["root"] = Path(root).expanduser()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Settings(**values)
