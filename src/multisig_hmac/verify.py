"""
verify.py — Threshold verification of combined signatures

Because combination is pure XOR, recomputing every claimed signer's tag and
XOR-ing it back out of the combined signature drives both the bitmask and
the tag to zero exactly when those signers, each once, signed this message
with the expected keys. Wrong message, wrong key, tampered tag, or a
missing or duplicated signer all leave a residue.

Misuse (bad lengths, threshold < 1, a stored pool too small for the
bitmask) raises a ``ValidationError``. A signature that does not check out
returns ``False``.
"""

from __future__ import annotations
import logging
from typing import Sequence

from cryptography.hazmat.primitives import constant_time

from .algorithms import AlgorithmProfile
from .errors import (
    IndexRangeError,
    InsufficientKeysError,
    SignatureLengthError,
    ThresholdError,
)
from .keys import MAX_SIGNERS, DerivedKeys, Key, KeySource, StoredKeys
from .signatures import CombinedSignature, key_indexes, popcount, xor_bytes

logger = logging.getLogger(__name__)


def _check_inputs(
    profile: AlgorithmProfile,
    combined: CombinedSignature,
    message: bytes,
    threshold: int,
) -> None:
    if len(combined.tag) != profile.tag_bytes:
        raise SignatureLengthError(
            f"tag is {len(combined.tag)} bytes, {profile.name} needs {profile.tag_bytes}"
        )
    if not 0 <= combined.bitmask < 1 << MAX_SIGNERS:
        raise IndexRangeError(f"bitmask {combined.bitmask:#x} does not fit in {MAX_SIGNERS} bits")
    if not isinstance(message, (bytes, bytearray)):
        raise TypeError("message must be bytes")
    if threshold < 1:
        raise ThresholdError(f"got {threshold}")


def _check_pool(keys: StoredKeys, bitmask: int) -> None:
    n_signers = popcount(bitmask)
    highest = bitmask.bit_length()
    if len(keys) < n_signers or len(keys) < highest:
        raise InsufficientKeysError(
            f"{len(keys)} keys given, bitmask {bitmask:#x} needs at least {max(n_signers, highest)}"
        )


def verify(
    key_source: KeySource,
    combined: CombinedSignature,
    message: bytes,
    threshold: int,
) -> bool:
    """Verify ``combined`` over ``message`` against any key source."""
    profile = key_source.profile
    _check_inputs(profile, combined, message, threshold)
    if isinstance(key_source, StoredKeys):
        _check_pool(key_source, combined.bitmask)

    bitmask = combined.bitmask
    n_signers = popcount(bitmask)
    if n_signers < threshold:
        logger.debug("threshold not met: %d signers claimed, %d required", n_signers, threshold)
        return False

    tag = combined.tag
    for index in key_indexes(bitmask):
        key = key_source.resolve(index)
        tag = xor_bytes(tag, profile.mac(key.material, message), profile.tag_bytes)
        bitmask ^= 1 << index

    ok = bitmask == 0 and constant_time.bytes_eq(tag, bytes(profile.tag_bytes))
    if not ok:
        logger.debug("signature residue non-zero for signers %s", key_indexes(combined.bitmask))
    return ok


def verify_stored(
    profile: AlgorithmProfile,
    keys: Sequence[Key],
    combined: CombinedSignature,
    message: bytes,
    threshold: int,
) -> bool:
    """Verify against a stored key pool, where ``keys[i]`` belongs to signer i."""
    return verify(StoredKeys(profile, keys), combined, message, threshold)


def verify_derived(
    profile: AlgorithmProfile,
    master_secret: bytes,
    combined: CombinedSignature,
    message: bytes,
    threshold: int,
) -> bool:
    """Verify against keys derived on demand from ``master_secret``."""
    return verify(DerivedKeys(profile, master_secret), combined, message, threshold)
