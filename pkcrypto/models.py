"""
Key pair and ciphertext envelope containers.

The Envelope is the wire format between encrypt() and decrypt(). All three
engines fill the same shape so callers can stay algorithm-agnostic:

    ciphertext     always present (string)
    ephemeral_key  ElGamal k / ECIES ephemeral point, when the scheme has one
    iv             hex IV for schemes with a stream cipher
    metadata       scheme-specific tags
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import DecryptionError, MissingFieldError


@dataclass(frozen=True)
class KeyPair:
    """A freshly generated key pair plus display-friendly summaries."""
    algorithm: str
    public_key: Any
    private_key: Any
    key_size: int
    public_key_details: Dict[str, str] = field(default_factory=dict)
    private_key_details: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Envelope:
    ciphertext: str
    ephemeral_key: Optional[str] = None
    iv: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'ciphertext': self.ciphertext}
        if self.ephemeral_key is not None:
            data['ephemeral_key'] = self.ephemeral_key
        if self.iv is not None:
            data['iv'] = self.iv
        data['metadata'] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Envelope':
        if not isinstance(data, dict):
            raise DecryptionError(f"envelope must be an object, got {type(data).__name__}")
        if data.get('ciphertext') is None:
            raise MissingFieldError('ciphertext')
        metadata = data.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise DecryptionError("envelope metadata must be an object")
        return cls(
            ciphertext=data['ciphertext'],
            ephemeral_key=data.get('ephemeral_key'),
            iv=data.get('iv'),
            metadata=dict(metadata),
        )

    @classmethod
    def coerce(cls, value: Any) -> 'Envelope':
        """Accept an Envelope, its dict form, or its JSON form."""
        if isinstance(value, Envelope):
            return value
        if isinstance(value, str):
            return cls.from_json(value)
        return cls.from_dict(value)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> 'Envelope':
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DecryptionError(f"envelope is not valid JSON: {exc}") from exc
        return cls.from_dict(data)
