"""
algorithms.py — HMAC algorithm profiles

Static table of the supported HMAC constructions and their sizes:

  sha256  KEYBYTES=64   BYTES=32
  sha512  KEYBYTES=128  BYTES=64
  sha384  KEYBYTES=128  BYTES=48

KEYBYTES is the block size of the underlying hash (the recommended HMAC key
length), BYTES is the tag length.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Union

from cryptography.hazmat.primitives import hashes, hmac

from .errors import UnsupportedAlgorithmError


class Algorithm(Enum):
    SHA256 = "sha256"
    SHA512 = "sha512"
    SHA384 = "sha384"


@dataclass(frozen=True)
class AlgorithmProfile:
    algorithm: Algorithm
    key_bytes: int
    tag_bytes: int
    hash_factory: Callable[[], hashes.HashAlgorithm]

    @property
    def name(self) -> str:
        return self.algorithm.value

    def mac(self, key: bytes, *parts: bytes) -> bytes:
        """HMAC over the concatenation of ``parts``."""
        h = hmac.HMAC(key, self.hash_factory())
        for part in parts:
            h.update(part)
        return h.finalize()


_PROFILES: Dict[Algorithm, AlgorithmProfile] = {
    Algorithm.SHA256: AlgorithmProfile(Algorithm.SHA256, 64, 32, hashes.SHA256),
    Algorithm.SHA512: AlgorithmProfile(Algorithm.SHA512, 128, 64, hashes.SHA512),
    Algorithm.SHA384: AlgorithmProfile(Algorithm.SHA384, 128, 48, hashes.SHA384),
}


# Accepted spellings besides the enum values, e.g. the JCA names "HmacSHA256".
_ALIASES: Dict[str, Algorithm] = {}
for _alg in Algorithm:
    _ALIASES[_alg.value] = _alg
    _ALIASES[f"hmac{_alg.value}"] = _alg
    _ALIASES[_alg.value.replace("sha", "sha-")] = _alg


def parse_algorithm(selector: Union[Algorithm, str]) -> Algorithm:
    """Resolve an enum member or a case-insensitive name to an ``Algorithm``."""
    if isinstance(selector, Algorithm):
        return selector
    if isinstance(selector, str):
        found = _ALIASES.get(selector.strip().lower())
        if found is not None:
            return found
    raise UnsupportedAlgorithmError(f"got {selector!r}")


def get_profile(selector: Union[Algorithm, str]) -> AlgorithmProfile:
    return _PROFILES[parse_algorithm(selector)]


def supported_algorithms() -> list:
    return [alg.value for alg in Algorithm]
