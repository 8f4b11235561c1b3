"""
keys.py — Signer keys and key sources

Two ways of holding signer keys:

  StoredKeys   every signer has an independent random key; the verifier is
               handed the whole pool, looked up by position.
  DerivedKeys  every signer key is derived on demand from one master secret:

      b[0 .. BYTES]   = HMAC(master, "derived" || U32LE(index) || 0x00)
      b[BYTES .. ]    = HMAC(master, b[0 .. BYTES] || 0x01)

For sha384 the two blocks give 96 bytes, short of KEYBYTES=128, so the key
is zero-padded to KEYBYTES. HMAC zero-pads short keys to the block size
anyway, so the padded key tags exactly like the bare 96-byte one.

Random bytes come from an injectable ``random_bytes(n)`` callable that
defaults to ``os.urandom``.
"""

from __future__ import annotations
import base64
import binascii
import os
import struct
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence, Union

from .algorithms import AlgorithmProfile
from .errors import EncodingError, IndexRangeError, KeyLengthError

# One bit per signer in a 32-bit bitmask.
MAX_SIGNERS = 32

KDF_INFO_PREFIX = b"derived"

RandomBytes = Callable[[int], bytes]


def check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise IndexRangeError(f"index must be an int, got {type(index).__name__}")
    if not 0 <= index < MAX_SIGNERS:
        raise IndexRangeError(f"got {index}")
    return index


def check_key_length(profile: AlgorithmProfile, material: bytes, what: str = "key") -> bytes:
    if not isinstance(material, (bytes, bytearray)):
        raise KeyLengthError(f"{what} must be bytes, got {type(material).__name__}")
    if len(material) != profile.key_bytes:
        raise KeyLengthError(
            f"{what} is {len(material)} bytes, {profile.name} needs {profile.key_bytes}"
        )
    return bytes(material)


@dataclass(frozen=True)
class Key:
    """A signer index paired with its HMAC key material."""
    index: int
    material: bytes

    def __repr__(self) -> str:
        return f"Key(index={self.index}, material=<{len(self.material)} bytes>)"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "key_b64": base64.b64encode(self.material).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Key":
        try:
            index = data["index"]
            material = decode_b64(data["key_b64"])
        except (KeyError, TypeError) as exc:
            raise EncodingError(f"key entry: {exc}") from exc
        return cls(check_index(index), material)


def decode_b64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise EncodingError(f"invalid base64: {exc}") from exc


def _random(profile: AlgorithmProfile, random_bytes: RandomBytes) -> bytes:
    out = random_bytes(profile.key_bytes)
    if len(out) != profile.key_bytes:
        raise KeyLengthError(
            f"random source returned {len(out)} bytes, expected {profile.key_bytes}"
        )
    return bytes(out)


def generate_key(
    profile: AlgorithmProfile,
    index: int,
    random_bytes: RandomBytes = os.urandom,
) -> Key:
    """Generate a new independent random key for signer ``index``."""
    return Key(check_index(index), _random(profile, random_bytes))


def generate_master_secret(
    profile: AlgorithmProfile,
    random_bytes: RandomBytes = os.urandom,
) -> bytes:
    """Generate a new random master secret of KEYBYTES length."""
    return _random(profile, random_bytes)


def kdf_info(index: int) -> bytes:
    return KDF_INFO_PREFIX + struct.pack("<I", index)


def derive_key(profile: AlgorithmProfile, master_secret: bytes, index: int) -> Key:
    """
    Derive the sub key for ``index`` from ``master_secret``.

    Pure: the same (master_secret, index) always yields the same key, which
    is what lets the verifier re-derive keys instead of storing them.
    """
    master_secret = check_key_length(profile, master_secret, "master secret")
    check_index(index)

    h0 = profile.mac(master_secret, kdf_info(index), b"\x00")
    h1 = profile.mac(master_secret, h0, b"\x01")
    return Key(index, (h0 + h1).ljust(profile.key_bytes, b"\x00"))


class StoredKeys:
    """Key source backed by a pool of stored keys; ``pool[i]`` is signer i."""

    def __init__(self, profile: AlgorithmProfile, pool: Sequence[Key]):
        self.profile = profile
        self.pool: List[Key] = list(pool)
        for position, key in enumerate(self.pool):
            check_key_length(self.profile, key.material, f"stored key at position {position}")

    def __len__(self) -> int:
        return len(self.pool)

    def resolve(self, index: int) -> Key:
        return self.pool[index]


class DerivedKeys:
    """Key source that derives each signer key from a master secret."""

    def __init__(self, profile: AlgorithmProfile, master_secret: bytes):
        self.profile = profile
        self.master_secret = check_key_length(profile, master_secret, "master secret")

    def resolve(self, index: int) -> Key:
        return derive_key(self.profile, self.master_secret, index)


KeySource = Union[StoredKeys, DerivedKeys]
