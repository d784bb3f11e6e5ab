"""Capability interface shared by the encryption engines.

RSA, ElGamal and ECC each implement this Protocol independently and register
themselves with the algorithm registry. Callers only use these methods.
"""

from __future__ import annotations
from typing import Any, Protocol

from .models import Envelope, KeyPair


class EncryptionAlgorithm(Protocol):
    """Public-key encryption contract."""
    name: str
    description: str
    def generate_keys(self, cancel_event: Any = None) -> KeyPair: ...
    def encrypt(self, message: str, public_key: Any) -> Envelope: ...
    def decrypt(self, envelope: Envelope, private_key: Any) -> str: ...
