from __future__ import annotations

import threading

import pytest

from pkcrypto.ecc import NIST_P256, SECP256K1
from pkcrypto.elgamal import MODP_2048
from pkcrypto.errors import KeyGenerationError, OperationCancelledError
from pkcrypto.primality import SMALL_PRIMES, generate_large_prime, is_probable_prime


KNOWN_PRIMES = [
    2, 3, 5, 97, 997, 1009, 7919,
    2**31 - 1,
    2**61 - 1,
    2**127 - 1,
    SECP256K1['p'],
    SECP256K1['n'],
    NIST_P256['p'],
]

# Carmichael numbers fool the Fermat test but not Miller-Rabin
KNOWN_COMPOSITES = [
    0, 1, 4, 9, 15, 561, 1105, 41041, 825265,
    1009 * 7919,
    (2**61 - 1) * (2**31 - 1),
    SECP256K1['p'] * SECP256K1['n'],
]


@pytest.mark.parametrize("n", KNOWN_PRIMES)
def test_known_primes(n, rng):
    assert is_probable_prime(n, rng=rng)


@pytest.mark.parametrize("n", KNOWN_COMPOSITES)
def test_known_composites(n, rng):
    assert not is_probable_prime(n, rng=rng)


def test_negative_and_even_inputs():
    assert not is_probable_prime(-7)
    assert not is_probable_prime(2**64)


def test_modp_group_prime_is_prime(rng):
    assert is_probable_prime(MODP_2048, rounds=5, rng=rng)


def test_small_prime_table():
    assert SMALL_PRIMES[:5] == [3, 5, 7, 11, 13]
    assert SMALL_PRIMES[-1] == 997
    assert 2 not in SMALL_PRIMES


@pytest.mark.parametrize("bits", [16, 64, 256])
def test_generate_large_prime_has_exact_width(bits, rng):
    p = generate_large_prime(bits, rng=rng)
    assert p.bit_length() == bits
    assert p % 2 == 1
    assert is_probable_prime(p, rng=rng)


def test_generate_large_prime_is_reproducible_with_seed():
    from pkcrypto.utils import SeededRandomSource

    a = generate_large_prime(128, rng=SeededRandomSource(99))
    b = generate_large_prime(128, rng=SeededRandomSource(99))
    assert a == b


def test_generate_large_prime_honours_cancel_event(rng):
    event = threading.Event()
    event.set()
    with pytest.raises(OperationCancelledError):
        generate_large_prime(512, rng=rng, cancel_event=event)


def test_generate_large_prime_attempt_cap(rng):
    with pytest.raises(KeyGenerationError):
        generate_large_prime(512, rng=rng, max_attempts=0)


def test_generate_large_prime_rejects_tiny_widths():
    with pytest.raises(ValueError):
        generate_large_prime(1)
