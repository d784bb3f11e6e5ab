from __future__ import annotations

import itertools
import threading

import pytest

from pkcrypto import rsa as rsa_module
from pkcrypto.errors import (
    DecodingError,
    DecryptionError,
    EncryptionError,
    KeyGenerationError,
    MessageTooLongError,
    OperationCancelledError,
)
from pkcrypto.models import Envelope
from pkcrypto.primality import is_probable_prime
from pkcrypto.rsa import PUBLIC_EXPONENT, RSA, RSAPrivateKey, RSAPublicKey
from pkcrypto.utils import base64_to_bytes, bytes_to_base64, mod_pow


def test_key_pair_is_consistent(rsa_2048):
    _, keys = rsa_2048
    pub, priv = keys.public_key, keys.private_key
    assert pub.e == PUBLIC_EXPONENT
    assert pub.n == priv.n == priv.p * priv.q
    assert priv.p != priv.q
    phi = (priv.p - 1) * (priv.q - 1)
    assert (pub.e * priv.d) % phi == 1
    assert priv.n.bit_length() in (2047, 2048)
    assert keys.key_size == priv.n.bit_length()
    assert (priv.qinv * priv.q) % priv.p == 1


def test_key_details_are_abbreviated(rsa_2048):
    _, keys = rsa_2048
    assert keys.algorithm == 'RSA'
    assert keys.public_key_details['modulus'].startswith('n = ')
    assert '...' in keys.public_key_details['modulus']
    assert set(keys.private_key_details) >= {'private_exponent', 'p', 'q'}


def test_hello_rsa_round_trip(rsa_2048):
    engine, keys = rsa_2048
    envelope = engine.encrypt("Hello, RSA Encryption!", keys.public_key)
    assert len(base64_to_bytes(envelope.ciphertext)) == keys.public_key.size_bytes
    assert envelope.metadata['padding'] == 'OAEP'
    assert envelope.metadata['hash_algorithm'] == 'toy'
    assert engine.decrypt(envelope, keys.private_key) == "Hello, RSA Encryption!"


def test_unicode_and_empty_messages(rsa_2048):
    engine, keys = rsa_2048
    for message in ('', 'héllo wörld', '你好 \U0001F512'):
        envelope = engine.encrypt(message, keys.public_key)
        assert engine.decrypt(envelope, keys.private_key) == message


def test_encryption_is_randomized(rsa_2048):
    engine, keys = rsa_2048
    a = engine.encrypt('same', keys.public_key)
    b = engine.encrypt('same', keys.public_key)
    assert a.ciphertext != b.ciphertext


def test_maximum_message_length(rsa_2048):
    engine, keys = rsa_2048
    maximum = engine.max_message_length(keys.public_key)
    assert maximum == keys.public_key.size_bytes - 2 * 32 - 2

    message = 'a' * maximum
    assert engine.decrypt(engine.encrypt(message, keys.public_key), keys.private_key) == message

    with pytest.raises(MessageTooLongError) as excinfo:
        engine.encrypt('a' * (maximum + 1), keys.public_key)
    assert excinfo.value.maximum == maximum


def test_envelope_accepted_as_json_and_dict(rsa_2048):
    engine, keys = rsa_2048
    envelope = engine.encrypt('wire', keys.public_key)
    assert engine.decrypt(envelope.to_json(), keys.private_key) == 'wire'
    assert engine.decrypt(envelope.to_dict(), keys.private_key) == 'wire'


def test_decrypt_without_crt_parameters(rsa_2048):
    engine, keys = rsa_2048
    priv = keys.private_key
    plain_key = RSAPrivateKey(n=priv.n, d=priv.d, p=priv.p, q=priv.q)
    envelope = engine.encrypt('no crt', keys.public_key)
    assert engine.decrypt(envelope, plain_key) == 'no crt'
    c = 0x1234567890
    assert engine._private_op(c, priv) == mod_pow(c, priv.d, priv.n)


def test_tampered_ciphertext_fails_decoding(rsa_2048):
    engine, keys = rsa_2048
    envelope = engine.encrypt('tamper me', keys.public_key)
    raw = bytearray(base64_to_bytes(envelope.ciphertext))
    raw[-1] ^= 0x01
    tampered = Envelope(ciphertext=bytes_to_base64(bytes(raw)), metadata=envelope.metadata)
    with pytest.raises(DecodingError):
        engine.decrypt(tampered, keys.private_key)


def test_malformed_ciphertexts(rsa_2048):
    engine, keys = rsa_2048
    k = keys.public_key.size_bytes
    with pytest.raises(DecryptionError):
        engine.decrypt(Envelope(ciphertext='***'), keys.private_key)
    with pytest.raises(DecryptionError):
        engine.decrypt(Envelope(ciphertext=bytes_to_base64(b'\x01' * (k - 1))), keys.private_key)
    with pytest.raises(DecryptionError):
        engine.decrypt(Envelope(ciphertext=bytes_to_base64(b'\xff' * k)), keys.private_key)


def test_wrong_key_types(rsa_2048):
    engine, keys = rsa_2048
    with pytest.raises(EncryptionError):
        engine.encrypt('x', keys.private_key)
    with pytest.raises(EncryptionError):
        engine.encrypt(b'bytes', keys.public_key)
    with pytest.raises(EncryptionError):
        engine.encrypt('\ud800', keys.public_key)
    with pytest.raises(EncryptionError):
        engine.encrypt('x', RSAPublicKey(0, 3))
    envelope = engine.encrypt('x', keys.public_key)
    with pytest.raises(DecryptionError):
        engine.decrypt(envelope, keys.public_key)


def test_other_key_pair_cannot_decrypt(rsa_1024):
    engine, keys = rsa_1024
    other = RSA(key_size=1024, rng=engine.rng).generate_keys()
    envelope = engine.encrypt('private', keys.public_key)
    with pytest.raises(DecryptionError):
        engine.decrypt(envelope, other.private_key)


def test_label_mismatch(rsa_1024):
    engine, keys = rsa_1024
    labelled = RSA(key_size=1024, label=b'context', rng=engine.rng)
    envelope = labelled.encrypt('labelled', keys.public_key)
    assert labelled.decrypt(envelope, keys.private_key) == 'labelled'
    with pytest.raises(DecodingError):
        engine.decrypt(envelope, keys.private_key)


def test_sha256_oaep(rsa_1024):
    engine, keys = rsa_1024
    sha = RSA(key_size=1024, hash_name='sha256', rng=engine.rng)
    envelope = sha.encrypt('sha', keys.public_key)
    assert envelope.metadata['hash_algorithm'] == 'sha256'
    assert sha.decrypt(envelope, keys.private_key) == 'sha'


def test_small_key_size_rejected():
    with pytest.raises(ValueError):
        RSA(key_size=512)


def test_keygen_retries_when_primes_collide(monkeypatch, caplog):
    primes = iter([61, 61, 61, 53])
    monkeypatch.setattr(rsa_module, 'generate_large_prime', lambda *args, **kwargs: next(primes))

    keys = RSA(key_size=1024).generate_keys()
    assert keys.public_key.n == 61 * 53 == 3233
    assert (keys.private_key.d * PUBLIC_EXPONENT) % (60 * 52) == 1
    assert "p == q" in caplog.text


def test_keygen_retries_when_e_divides_phi(monkeypatch, caplog):
    # smallest prime p with 65537 | p - 1
    bad = next(
        65537 * k + 1 for k in itertools.count(2, 2) if is_probable_prime(65537 * k + 1)
    )
    primes = iter([bad, 61, 61, 53])
    monkeypatch.setattr(rsa_module, 'generate_large_prime', lambda *args, **kwargs: next(primes))

    keys = RSA(key_size=1024).generate_keys()
    assert keys.public_key.n == 61 * 53
    assert "gcd(e, phi) != 1" in caplog.text
    assert next(primes, None) is None


def test_keygen_gives_up_after_repeated_failures(monkeypatch):
    monkeypatch.setattr(rsa_module, 'generate_large_prime', lambda *args, **kwargs: 61)
    with pytest.raises(KeyGenerationError):
        RSA(key_size=1024).generate_keys()


def test_keygen_cancelled(rng):
    event = threading.Event()
    event.set()
    with pytest.raises(OperationCancelledError):
        RSA(key_size=2048, rng=rng).generate_keys(cancel_event=event)
