"""
Toy Hash Function

A small mixing function that stands in for SHA-256 inside OAEP/MGF1 and
the ECC key derivation of the teaching demo. It keeps the SHA-256 output
size and initial values so the visualization looks familiar, but it is
NOT collision resistant: every lane is just h = 31*h + byte mod 2^32.

The class mirrors the hashlib object interface so it can be swapped with
hashlib.sha256 (and used as an hmac digestmod).
"""

import hashlib

from .errors import UnsupportedAlgorithmError

# SHA-256 initial hash values H0..H7
HASH_INIT = (
    0x6a09e667, 0xbb67ae85, 0x3c6ef372, 0xa54ff53a,
    0x510e527f, 0x9b05688c, 0x1f83d9ab, 0x5be0cd19,
)

MASK32 = 0xFFFFFFFF


class ToyHash:
    """
    hashlib-style toy hash object.

    Usage:
        h = ToyHash(b'abc')
        h.update(b'def')
        digest = h.digest()   # 32 bytes
    """

    name = 'toy'
    digest_size = 32
    block_size = 64

    def __init__(self, data: bytes = b''):
        self._h = list(HASH_INIT)
        if data:
            self.update(data)

    def update(self, data: bytes) -> None:
        h = self._h
        for byte in bytes(data):
            for j in range(8):
                h[j] = ((h[j] << 5) - h[j] + byte) & MASK32

    def digest(self) -> bytes:
        return b''.join(lane.to_bytes(4, 'big') for lane in self._h)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def copy(self) -> 'ToyHash':
        clone = ToyHash()
        clone._h = list(self._h)
        return clone


def toy_hash(data: bytes) -> bytes:
    """One-shot toy hash of data (32 bytes)."""
    return ToyHash(data).digest()


HASHES = {
    'toy': ToyHash,
    'sha256': hashlib.sha256,
}


def get_hash(name: str):
    """
    Look up a hash constructor by name ('toy' or 'sha256').

    The returned callable takes optional initial data and produces an
    object with update()/digest() and a digest_size attribute.
    """
    try:
        return HASHES[name.lower()]
    except KeyError:
        raise UnsupportedAlgorithmError(
            f"Unknown hash '{name}', expected one of {sorted(HASHES)}"
        ) from None


def digest_size(hash_ctor) -> int:
    """Output length in bytes of a hash constructor."""
    return hash_ctor().digest_size
