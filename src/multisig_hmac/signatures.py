"""
signatures.py — Partial and combined signatures

A partial signature is one signer's HMAC tag plus a bitmask with only that
signer's bit set. Partials combine by XOR, both the bitmasks and the tags,
so they can be collected in any order and out of band:

    combined.bitmask = p1.bitmask ^ p2.bitmask ^ ...
    combined.tag     = p1.tag     ^ p2.tag     ^ ...

Only include each signer once; a repeated signer cancels itself out.

Wire format (both kinds):  U32LE(bitmask) || tag
"""

from __future__ import annotations
import base64
import struct
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Type, TypeVar

from .algorithms import AlgorithmProfile
from .errors import EncodingError, SignatureLengthError
from .keys import MAX_SIGNERS, Key, decode_b64, check_index, check_key_length

_BITMASK = struct.Struct("<I")
_BITMASK_MAX = (1 << MAX_SIGNERS) - 1

_S = TypeVar("_S", bound="_SignatureBase")


def popcount(bitmask: int) -> int:
    return bin(bitmask).count("1")


def key_indexes(bitmask: int) -> List[int]:
    """Indexes of the set bits, lowest first."""
    indexes = []
    i = 0
    while bitmask > 0:
        if bitmask & 1:
            indexes.append(i)
        bitmask >>= 1
        i += 1
    return indexes


def xor_bytes(a: bytes, b: bytes, tag_bytes: int) -> bytes:
    """Byte-wise XOR of two tags that must both be ``tag_bytes`` long."""
    if len(a) != tag_bytes or len(b) != tag_bytes:
        raise SignatureLengthError(
            f"cannot xor {len(a)} and {len(b)} byte tags, expected {tag_bytes}"
        )
    return bytes(x ^ y for x, y in zip(a, b))


@dataclass(frozen=True)
class _SignatureBase:
    bitmask: int
    tag: bytes

    @property
    def signers(self) -> List[int]:
        return key_indexes(self.bitmask)

    def to_bytes(self) -> bytes:
        return _BITMASK.pack(self.bitmask) + self.tag

    @classmethod
    def from_bytes(cls: Type[_S], data: bytes, tag_bytes: int) -> _S:
        if len(data) != _BITMASK.size + tag_bytes:
            raise SignatureLengthError(
                f"wire signature is {len(data)} bytes, expected {_BITMASK.size + tag_bytes}"
            )
        (bitmask,) = _BITMASK.unpack_from(data)
        return cls(bitmask, bytes(data[_BITMASK.size:]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bitmask": self.bitmask,
            "signers": self.signers,
            "signature_b64": base64.b64encode(self.tag).decode("ascii"),
        }

    @classmethod
    def from_dict(cls: Type[_S], data: Dict[str, Any]) -> _S:
        try:
            bitmask = data["bitmask"]
            tag = decode_b64(data["signature_b64"])
        except (KeyError, TypeError) as exc:
            raise EncodingError(f"signature entry: {exc}") from exc
        if isinstance(bitmask, bool) or not isinstance(bitmask, int) or not 0 <= bitmask <= _BITMASK_MAX:
            raise EncodingError(f"bitmask must be a 32-bit unsigned int, got {bitmask!r}")
        return cls(bitmask, tag)


@dataclass(frozen=True)
class PartialSignature(_SignatureBase):
    """One signer's tag; ``bitmask`` has exactly the signer's bit set."""


@dataclass(frozen=True)
class CombinedSignature(_SignatureBase):
    """XOR-fold of partial signatures."""


def sign(profile: AlgorithmProfile, key: Key, message: bytes) -> PartialSignature:
    """Sign ``message`` with one signer key."""
    check_index(key.index)
    material = check_key_length(profile, key.material)
    return PartialSignature(1 << key.index, profile.mac(material, message))


def combine(profile: AlgorithmProfile, partials: Iterable[_SignatureBase]) -> CombinedSignature:
    """Fold signatures into one. Order is irrelevant."""
    bitmask = 0
    tag = bytes(profile.tag_bytes)
    for partial in partials:
        bitmask ^= partial.bitmask
        tag = xor_bytes(tag, partial.tag, profile.tag_bytes)
    return CombinedSignature(bitmask, tag)
