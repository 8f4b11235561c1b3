"""multisig-hmac public API.

Threshold multisignatures over HMAC: each signer tags the message with its
own key, the tags are XOR-combined into one fixed-size signature, and the
verifier accepts it only if at least ``threshold`` signers contributed.

Example:
    from multisig_hmac import Scheme

    scheme = Scheme("sha256")
    k0, k1, k2 = (scheme.generate_key(i) for i in range(3))

    combined = scheme.combine([
        scheme.sign(k0, b"hello world"),
        scheme.sign(k2, b"hello world"),
    ])
    assert scheme.verify_stored([k0, k1, k2], combined, b"hello world", 2)
"""

import os
from typing import Iterable, Sequence, Union

from .algorithms import Algorithm, AlgorithmProfile, get_profile, supported_algorithms
from .errors import (
    MultisigError,
    ConfigurationError,
    UnsupportedAlgorithmError,
    ValidationError,
    KeyLengthError,
    SignatureLengthError,
    ThresholdError,
    InsufficientKeysError,
    IndexRangeError,
    EncodingError,
)
from .keys import (
    MAX_SIGNERS,
    DerivedKeys,
    Key,
    KeySource,
    RandomBytes,
    StoredKeys,
    derive_key,
    generate_key,
    generate_master_secret,
)
from .signatures import (
    CombinedSignature,
    PartialSignature,
    combine,
    key_indexes,
    popcount,
    sign,
    xor_bytes,
)
from .verify import verify, verify_derived, verify_stored

__version__ = "0.1.0"


class Scheme:
    """High-level facade binding every operation to one HMAC algorithm."""

    def __init__(
        self,
        algorithm: Union[Algorithm, str] = Algorithm.SHA256,
        random_bytes: RandomBytes = os.urandom,
    ):
        self.profile: AlgorithmProfile = get_profile(algorithm)
        self.random_bytes = random_bytes

    def __repr__(self) -> str:
        return f"Scheme({self.profile.name!r})"

    @property
    def algorithm(self) -> Algorithm:
        return self.profile.algorithm

    @property
    def key_bytes(self) -> int:
        return self.profile.key_bytes

    @property
    def tag_bytes(self) -> int:
        return self.profile.tag_bytes

    def generate_key(self, index: int) -> Key:
        """Generate an independent random key for signer ``index``.

        Raises:
            IndexRangeError: If ``index`` is outside 0..31.
        """
        return generate_key(self.profile, index, self.random_bytes)

    def generate_master_secret(self) -> bytes:
        """Generate a master secret for derived-key mode."""
        return generate_master_secret(self.profile, self.random_bytes)

    def derive_key(self, master_secret: bytes, index: int) -> Key:
        """Derive signer ``index``'s key from ``master_secret``.

        Raises:
            KeyLengthError: If ``master_secret`` is not KEYBYTES long.
        """
        return derive_key(self.profile, master_secret, index)

    def stored_keys(self, pool: Sequence[Key]) -> StoredKeys:
        return StoredKeys(self.profile, pool)

    def derived_keys(self, master_secret: bytes) -> DerivedKeys:
        return DerivedKeys(self.profile, master_secret)

    def sign(self, key: Key, message: bytes) -> PartialSignature:
        return sign(self.profile, key, message)

    def combine(self, partials: Iterable[PartialSignature]) -> CombinedSignature:
        """XOR-combine partial signatures. Include each signer at most once."""
        return combine(self.profile, partials)

    def verify(
        self,
        key_source: KeySource,
        combined: CombinedSignature,
        message: bytes,
        threshold: int,
    ) -> bool:
        return verify(key_source, combined, message, threshold)

    def verify_stored(
        self,
        keys: Sequence[Key],
        combined: CombinedSignature,
        message: bytes,
        threshold: int,
    ) -> bool:
        """Verify against stored keys; ``keys[i]`` must be signer i's key.

        Returns:
            bool: True if at least ``threshold`` signers are claimed and every
            claimed signer's tag cancels out of ``combined``.

        Raises:
            ValidationError: On wrong lengths, ``threshold < 1`` or a key pool
            too small for the signature's bitmask.
        """
        return verify_stored(self.profile, keys, combined, message, threshold)

    def verify_derived(
        self,
        master_secret: bytes,
        combined: CombinedSignature,
        message: bytes,
        threshold: int,
    ) -> bool:
        """Verify against keys derived from ``master_secret``.

        Raises:
            ValidationError: On wrong lengths or ``threshold < 1``.
        """
        return verify_derived(self.profile, master_secret, combined, message, threshold)

    def signature_from_bytes(self, data: bytes) -> CombinedSignature:
        return CombinedSignature.from_bytes(data, self.tag_bytes)


def new_scheme(
    algorithm: Union[Algorithm, str] = Algorithm.SHA256,
    random_bytes: RandomBytes = os.urandom,
) -> Scheme:
    return Scheme(algorithm, random_bytes)


__all__ = [
    "__version__",
    # facade
    "Scheme", "new_scheme",
    # algorithms
    "Algorithm", "AlgorithmProfile", "get_profile", "supported_algorithms",
    # keys
    "MAX_SIGNERS", "Key", "KeySource", "StoredKeys", "DerivedKeys",
    "generate_key", "generate_master_secret", "derive_key",
    # signatures
    "PartialSignature", "CombinedSignature", "sign", "combine",
    "xor_bytes", "popcount", "key_indexes",
    # verification
    "verify", "verify_stored", "verify_derived",
    # errors
    "MultisigError", "ConfigurationError", "UnsupportedAlgorithmError",
    "ValidationError", "KeyLengthError", "SignatureLengthError",
    "ThresholdError", "InsufficientKeysError", "IndexRangeError",
    "EncodingError",
]
