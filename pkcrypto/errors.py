"""
Error taxonomy for the encryption engines.

Every engine catches low-level arithmetic and format errors at its public
boundary and re-raises one of these, so callers only ever deal with
PKCryptoError subclasses.
"""


class PKCryptoError(Exception):
    """Base class for all errors raised by pkcrypto."""


class KeyGenerationError(PKCryptoError):
    """Prime search or modular inverse failed while generating keys."""


class OperationCancelledError(KeyGenerationError):
    """A long-running key generation was cancelled or timed out."""


class EncryptionError(PKCryptoError):
    """Malformed public key or arithmetic failure during encryption."""


class MessageTooLongError(EncryptionError):
    """Plaintext exceeds what the scheme can carry."""

    def __init__(self, length: int, maximum: int, scheme: str = ''):
        self.length = length
        self.maximum = maximum
        prefix = f"{scheme}: " if scheme else ''
        super().__init__(
            f"{prefix}message is {length} bytes, maximum is {maximum} bytes"
        )


class DecryptionError(PKCryptoError):
    """Malformed private key or envelope, or failed integrity check."""


class DecodingError(DecryptionError):
    """Padding, label or byte-to-text decoding failed."""


class MissingFieldError(DecryptionError):
    """An envelope lacks a field the scheme requires."""

    def __init__(self, field: str, scheme: str = ''):
        self.field = field
        prefix = f"{scheme}: " if scheme else ''
        super().__init__(f"{prefix}envelope is missing required field '{field}'")


class NoInverseError(PKCryptoError, ArithmeticError):
    """gcd(a, m) != 1, so a has no inverse modulo m."""


class NoSquareRootError(PKCryptoError, ArithmeticError):
    """Value is not a quadratic residue modulo p."""


class InternalConsistencyError(PKCryptoError):
    """An algorithm failed to converge; indicates bad domain parameters."""


class UnsupportedAlgorithmError(PKCryptoError, LookupError):
    """Unknown algorithm or hash name."""
