from __future__ import annotations

import hashlib

import pytest

from pkcrypto.errors import DecodingError, MessageTooLongError
from pkcrypto.oaep import max_message_length, mgf1, oaep_decode, oaep_encode
from pkcrypto.toyhash import ToyHash, toy_hash
from pkcrypto.utils import xor_bytes

K = 128  # 1024-bit modulus
H_LEN = 32


def _raw_encode(db: bytes, seed: bytes, k: int = K, hash_ctor=ToyHash) -> bytes:
    """Build EM from an explicit DB so each check in decode can be hit alone."""
    masked_db = xor_bytes(db, mgf1(seed, k - H_LEN - 1, hash_ctor))
    masked_seed = xor_bytes(seed, mgf1(masked_db, H_LEN, hash_ctor))
    return b'\x00' + masked_seed + masked_db


def _db(message: bytes, l_hash: bytes = None, separator: bytes = b'\x01') -> bytes:
    l_hash = toy_hash(b'') if l_hash is None else l_hash
    ps = b'\x00' * (K - 2 * H_LEN - 2 - len(message))
    return l_hash + ps + separator + message


def test_mgf1_blocks_follow_counter():
    seed = b'seed'
    mask = mgf1(seed, 70)
    assert len(mask) == 70
    assert mask[:32] == toy_hash(seed + b'\x00\x00\x00\x00')
    assert mask[32:64] == toy_hash(seed + b'\x00\x00\x00\x01')
    assert mgf1(seed, 10) == mask[:10]
    assert mgf1(seed, 0) == b''


def test_mgf1_rejects_negative_length():
    with pytest.raises(ValueError):
        mgf1(b'seed', -1)


def test_max_message_length():
    assert max_message_length(256) == 190
    assert max_message_length(K) == 62


@pytest.mark.parametrize("length", [0, 1, 31, 61, 62])
def test_encode_decode_lengths(length, rng):
    message = bytes((i * 7) % 256 for i in range(length))
    encoded = oaep_encode(message, K, rng=rng)
    assert len(encoded) == K
    assert encoded[0] == 0
    assert oaep_decode(encoded, K) == message


def test_encode_is_randomized(rng):
    assert oaep_encode(b'hi', K, rng=rng) != oaep_encode(b'hi', K, rng=rng)


def test_message_too_long(rng):
    with pytest.raises(MessageTooLongError) as excinfo:
        oaep_encode(b'x' * 63, K, rng=rng)
    assert excinfo.value.length == 63
    assert excinfo.value.maximum == 62


def test_label_must_match(rng):
    encoded = oaep_encode(b'hi', K, label=b'label', rng=rng)
    assert oaep_decode(encoded, K, label=b'label') == b'hi'
    with pytest.raises(DecodingError):
        oaep_decode(encoded, K, label=b'other')


def test_sha256_variant(rng):
    encoded = oaep_encode(b'hello', K, hash_ctor=hashlib.sha256, rng=rng)
    assert oaep_decode(encoded, K, hash_ctor=hashlib.sha256) == b'hello'


def test_raw_encoding_decodes():
    assert oaep_decode(_raw_encode(_db(b'abc'), b'\x11' * H_LEN), K) == b'abc'


def test_nonzero_leading_byte_rejected():
    encoded = bytearray(_raw_encode(_db(b'abc'), b'\x11' * H_LEN))
    encoded[0] = 1
    with pytest.raises(DecodingError):
        oaep_decode(bytes(encoded), K)


def test_corrupt_label_hash_rejected():
    l_hash = bytearray(toy_hash(b''))
    l_hash[5] ^= 0xFF
    with pytest.raises(DecodingError):
        oaep_decode(_raw_encode(_db(b'abc', bytes(l_hash)), b'\x22' * H_LEN), K)


def test_missing_separator_rejected():
    db = toy_hash(b'') + b'\x00' * (K - H_LEN - 1 - H_LEN)
    with pytest.raises(DecodingError):
        oaep_decode(_raw_encode(db, b'\x33' * H_LEN), K)


def test_nonzero_padding_before_separator_rejected():
    db = bytearray(_db(b'abc'))
    db[H_LEN + 3] = 0x02
    with pytest.raises(DecodingError):
        oaep_decode(_raw_encode(bytes(db), b'\x44' * H_LEN), K)


def test_wrong_length_rejected(rng):
    encoded = oaep_encode(b'hi', K, rng=rng)
    with pytest.raises(DecodingError):
        oaep_decode(encoded[1:], K)
    with pytest.raises(DecodingError):
        oaep_decode(encoded, 2 * H_LEN + 1)
