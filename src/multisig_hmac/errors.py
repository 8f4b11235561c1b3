"""
errors.py — multisig-hmac Error Taxonomy

Coded errors for caller misuse. A signature that simply fails to verify
is never an error: the verifier returns ``False`` for that.

  E0xx  configuration errors (fatal, checked once at scheme setup)
  E1xx  validation errors (wrong lengths, bad threshold, short key pool)
"""

from typing import Optional

__all__ = [
    "MultisigError",
    "ConfigurationError",
    "UnsupportedAlgorithmError",
    "ValidationError",
    "KeyLengthError",
    "SignatureLengthError",
    "ThresholdError",
    "InsufficientKeysError",
    "IndexRangeError",
    "EncodingError",
]

class MultisigError(Exception):
    """Base class for all multisig-hmac errors."""
    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[str] = None,
    ):
        self.code = code
        self.message = message
        self.context = context

        full_msg = f"[{code}] {message}"
        if context:
            full_msg += f" Context: {context}"

        super().__init__(full_msg)

# Configuration Errors (E0xx)
class ConfigurationError(MultisigError):
    pass

class UnsupportedAlgorithmError(ConfigurationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E001", "The algorithm selector does not name a supported HMAC algorithm (sha256, sha384, sha512).", context)

# Validation Errors (E1xx)
class ValidationError(MultisigError, ValueError):
    pass

class KeyLengthError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E100", "Key material or master secret must be exactly KEYBYTES long.", context)

class SignatureLengthError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E101", "Signature tag must be exactly BYTES long.", context)

class ThresholdError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E102", "Threshold must be at least 1.", context)

class InsufficientKeysError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E103", "Not enough keys given based on the signature bitmask.", context)

class IndexRangeError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E104", "Signer index must be in the range 0..31.", context)

class EncodingError(ValidationError):
    def __init__(self, context: Optional[str] = None):
        super().__init__("MULTISIG_E105", "Serialized key or signature data is malformed.", context)
