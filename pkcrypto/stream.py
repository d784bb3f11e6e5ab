"""
Hash-Counter Stream Cipher

Block-cipher-free keystream used by the ECIES engine:

    K_i = H(IV || key || i)      i = 0, 1, 2, ... as 4-byte big-endian
    C_i = P_i XOR K_i

Encryption and decryption are the same operation.
"""

from .toyhash import ToyHash
from .utils import random_bytes, xor_bytes


class HashStreamCipher:
    """
    XOR stream cipher keyed by a derived symmetric key.

    Usage:
        cipher = HashStreamCipher(key)
        ciphertext, iv = cipher.encrypt(plaintext)
        plaintext = cipher.decrypt(ciphertext, iv)
    """

    IV_SIZE = 16

    def __init__(self, key: bytes, hash_ctor=ToyHash):
        """
        Args:
            key: Symmetric key material (any length)
            hash_ctor: hashlib-style constructor producing keystream blocks
        """
        if not key:
            raise ValueError("Key must not be empty")
        self._key = key
        self._hash = hash_ctor

    def keystream(self, iv: bytes, length: int) -> bytes:
        """First `length` keystream bytes for this key and IV."""
        output = bytearray()
        counter = 0
        while len(output) < length:
            block = self._hash(iv + self._key + counter.to_bytes(4, 'big')).digest()
            output.extend(block)
            counter += 1
        return bytes(output[:length])

    def encrypt(self, plaintext: bytes, iv: bytes = None) -> tuple:
        """
        Encrypt data of any length.

        Args:
            plaintext: Data to encrypt
            iv: 16-byte initialization vector (generated if None)

        Returns:
            (ciphertext, iv) tuple
        """
        if iv is None:
            iv = self.generate_iv()
        elif len(iv) != self.IV_SIZE:
            raise ValueError(f"IV must be exactly {self.IV_SIZE} bytes")
        return xor_bytes(plaintext, self.keystream(iv, len(plaintext))), iv

    def decrypt(self, ciphertext: bytes, iv: bytes) -> bytes:
        # XOR with the same keystream undoes encryption
        plaintext, _ = self.encrypt(ciphertext, iv)
        return plaintext

    @staticmethod
    def generate_iv(rng=None) -> bytes:
        """Generate a random 128-bit IV."""
        return random_bytes(HashStreamCipher.IV_SIZE, rng)
