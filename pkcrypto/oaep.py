"""
OAEP Padding (RFC 8017, section 7.1)

Implements:
- MGF1 mask generation
- EME-OAEP encoding and decoding

The hash is pluggable: any hashlib-style constructor works, the default
being the toy hash used throughout the demo.
"""

from .errors import DecodingError, MessageTooLongError
from .toyhash import ToyHash
from .utils import random_bytes, xor_bytes


def mgf1(seed: bytes, length: int, hash_ctor=ToyHash) -> bytes:
    """
    MGF1 mask generation function.

    Concatenates H(seed || C) for a 4-byte big-endian counter C = 0, 1, ...
    until `length` bytes are available, then truncates.
    """
    if length < 0:
        raise ValueError("mask length must be non-negative")
    output = bytearray()
    counter = 0
    while len(output) < length:
        output.extend(hash_ctor(seed + counter.to_bytes(4, 'big')).digest())
        counter += 1
    return bytes(output[:length])


def max_message_length(k: int, hash_ctor=ToyHash) -> int:
    """Largest message (bytes) that fits a k-byte modulus."""
    return k - 2 * hash_ctor().digest_size - 2


def oaep_encode(message: bytes, k: int, label: bytes = b'',
                hash_ctor=ToyHash, rng=None) -> bytes:
    """
    EME-OAEP encode `message` into a k-byte encoded message.

    EM = 0x00 || maskedSeed || maskedDB
    DB = lHash || PS || 0x01 || M

    Raises:
        MessageTooLongError: len(message) > k - 2*hLen - 2
    """
    h_len = hash_ctor().digest_size
    maximum = k - 2 * h_len - 2
    if len(message) > maximum:
        raise MessageTooLongError(len(message), max(maximum, 0), 'OAEP')

    l_hash = hash_ctor(label).digest()
    ps = b'\x00' * (maximum - len(message))
    db = l_hash + ps + b'\x01' + message

    seed = random_bytes(h_len, rng)
    masked_db = xor_bytes(db, mgf1(seed, k - h_len - 1, hash_ctor))
    masked_seed = xor_bytes(seed, mgf1(masked_db, h_len, hash_ctor))

    return b'\x00' + masked_seed + masked_db


def oaep_decode(encoded: bytes, k: int, label: bytes = b'',
                hash_ctor=ToyHash) -> bytes:
    """
    EME-OAEP decode a k-byte encoded message.

    Every failure (length, leading byte, label hash, separator) raises the
    same DecodingError, and all checks run before raising.
    """
    h_len = hash_ctor().digest_size
    if k < 2 * h_len + 2 or len(encoded) != k:
        raise DecodingError("OAEP decoding error")

    y = encoded[0]
    masked_seed = encoded[1:1 + h_len]
    masked_db = encoded[1 + h_len:]

    seed = xor_bytes(masked_seed, mgf1(masked_db, h_len, hash_ctor))
    db = xor_bytes(masked_db, mgf1(seed, k - h_len - 1, hash_ctor))

    l_hash = hash_ctor(label).digest()
    l_hash_ok = db[:h_len] == l_hash

    # Scan the whole padding string; no early exit on the first bad byte
    separator_index = -1
    bad_padding = False
    for i in range(h_len, len(db)):
        byte = db[i]
        if separator_index < 0:
            if byte == 0x01:
                separator_index = i
            elif byte != 0x00:
                bad_padding = True

    if y != 0 or not l_hash_ok or bad_padding or separator_index < 0:
        raise DecodingError("OAEP decoding error")

    return db[separator_index + 1:]
