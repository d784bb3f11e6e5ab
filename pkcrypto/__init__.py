# pkcrypto/__init__.py
"""
Public-Key Encryption Teaching Core

This package provides from-scratch public-key primitives:
- RSA with OAEP padding (MGF1)
- ElGamal over the RFC 3526 2048-bit MODP group
- ECIES-style encryption on secp256k1 / NIST P-256

NO HIGH-LEVEL CRYPTO LIBRARIES USED.
Only hashlib, hmac and secrets are imported.
"""

from .errors import (
    PKCryptoError,
    KeyGenerationError,
    OperationCancelledError,
    EncryptionError,
    MessageTooLongError,
    DecryptionError,
    DecodingError,
    MissingFieldError,
    NoInverseError,
    NoSquareRootError,
    InternalConsistencyError,
    UnsupportedAlgorithmError,
)
from .models import Envelope, KeyPair
from .interfaces import EncryptionAlgorithm
from .config import Settings, load_settings
from .rsa import RSA, RSAPublicKey, RSAPrivateKey
from .elgamal import ElGamal, ElGamalPublicKey, ElGamalPrivateKey
from .ecc import ECC, ECPoint, ECCPublicKey, ECCPrivateKey
from .registry import AlgorithmRegistry, registry

__all__ = [
    'PKCryptoError', 'KeyGenerationError', 'OperationCancelledError',
    'EncryptionError', 'MessageTooLongError', 'DecryptionError',
    'DecodingError', 'MissingFieldError', 'NoInverseError',
    'NoSquareRootError', 'InternalConsistencyError', 'UnsupportedAlgorithmError',
    'Envelope', 'KeyPair', 'EncryptionAlgorithm', 'Settings', 'load_settings',
    'RSA', 'RSAPublicKey', 'RSAPrivateKey',
    'ElGamal', 'ElGamalPublicKey', 'ElGamalPrivateKey',
    'ECC', 'ECPoint', 'ECCPublicKey', 'ECCPrivateKey',
    'AlgorithmRegistry', 'registry',
]
