"""
Primality Testing and Prime Generation

Implements:
- Miller-Rabin probabilistic primality test
- Random large-prime search for RSA key generation

Only used by the RSA engine.
"""

import logging

from .errors import KeyGenerationError, OperationCancelledError
from .utils import mod_pow, random_below, random_bits

log = logging.getLogger(__name__)

DEFAULT_ROUNDS = 20

# Odd primes below 1000, used to reject most candidates before Miller-Rabin
SMALL_PRIMES = [
    p for p in range(3, 1000, 2)
    if all(p % d for d in range(3, int(p ** 0.5) + 1, 2))
]


def is_probable_prime(n: int, rounds: int = DEFAULT_ROUNDS, rng=None) -> bool:
    """
    Miller-Rabin primality test.

    Writes n - 1 = d * 2^r with d odd, then for `rounds` random bases
    a in [2, n-2] checks that a^d = 1 or a^(d*2^j) = n-1 for some j < r.
    A composite survives one round with probability at most 1/4.

    Args:
        n: Candidate integer
        rounds: Number of independent random bases
        rng: Random source (OS CSPRNG when None)

    Returns:
        False if n is certainly composite, True if n is probably prime
    """
    if n <= 1:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False

    for p in SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False

    r = 0
    d = n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for _ in range(rounds):
        # a uniform in [2, n-2]
        a = random_below(n - 3, rng) + 2
        x = mod_pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = (x * x) % n
            if x == n - 1:
                break
        else:
            return False
    return True


def generate_large_prime(bits: int, rounds: int = DEFAULT_ROUNDS, rng=None,
                         cancel_event=None, max_attempts: int = None) -> int:
    """
    Search for a random probable prime of exactly `bits` bits.

    Candidates have the top bit and the low bit forced on. The search has
    no attempt cap unless `max_attempts` is given; callers that need to
    bound latency pass a threading.Event as `cancel_event`.

    Raises:
        OperationCancelledError: cancel_event was set
        KeyGenerationError: max_attempts candidates were all composite
    """
    if bits < 2:
        raise ValueError("prime must have at least 2 bits")

    attempts = 0
    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(
                f"prime search cancelled after {attempts} candidates"
            )
        if max_attempts is not None and attempts >= max_attempts:
            raise KeyGenerationError(
                f"no {bits}-bit prime found in {max_attempts} candidates"
            )
        attempts += 1

        candidate = random_bits(bits, rng) | (1 << (bits - 1)) | 1
        if is_probable_prime(candidate, rounds, rng):
            log.debug("Found %d-bit prime after %d candidates", bits, attempts)
            return candidate
