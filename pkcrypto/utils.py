# Big-integer and encoding utilities shared by all three engines

import base64
import binascii
import logging
import random
import secrets

from .errors import NoInverseError

log = logging.getLogger(__name__)


# =============================================================================
# RANDOMNESS SOURCES
# =============================================================================

class SystemRandomSource:
    """Random bytes from the operating system CSPRNG (secrets module)."""

    name = 'system'

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)


class SeededRandomSource:
    """
    Deterministic, NON-cryptographic random source.

    Backed by random.Random so that tests and recorded demos can replay
    the exact same keys and ciphertexts. Never use it for real secrets.
    """

    name = 'seeded'

    def __init__(self, seed: int):
        log.warning("Using seeded random source (seed=%r); output is predictable", seed)
        self.seed = seed
        self._random = random.Random(seed)

    def token_bytes(self, n: int) -> bytes:
        return self._random.randbytes(n)


def default_random_source() -> SystemRandomSource:
    """Return the process default (OS-backed) random source."""
    return SystemRandomSource()


def random_bytes(n: int, rng=None) -> bytes:
    """Generate n random bytes from rng (OS CSPRNG when rng is None)."""
    if rng is None:
        rng = default_random_source()
    return rng.token_bytes(n)


def random_bits(bits: int, rng=None) -> int:
    """Generate a random non-negative integer of at most `bits` bits."""
    if bits <= 0:
        return 0
    nbytes = (bits + 7) // 8
    value = bytes_to_int(random_bytes(nbytes, rng))
    return value >> (nbytes * 8 - bits)


def random_below(upper: int, rng=None) -> int:
    """
    Uniform random integer in [0, upper).

    Rejection sampling over bit_length(upper - 1) bits, so there is no
    modulo bias near the top of the range.
    """
    if upper <= 0:
        raise ValueError("upper bound must be positive")
    if upper == 1:
        return 0
    bits = (upper - 1).bit_length()
    while True:
        candidate = random_bits(bits, rng)
        if candidate < upper:
            return candidate


def random_bigint(upper: int, rng=None) -> int:
    """Uniform random integer in the open interval (0, upper)."""
    if upper <= 1:
        raise ValueError("upper bound must be greater than 1")
    return random_below(upper - 1, rng) + 1


# =============================================================================
# MODULAR ARITHMETIC
# =============================================================================

def mod_pow(base: int, exponent: int, modulus: int) -> int:
    """
    Compute base^exponent mod modulus by square-and-multiply.

    The exponent is consumed from the least-significant bit.
    """
    if modulus <= 0:
        raise ValueError("modulus must be positive")
    if exponent < 0:
        raise ValueError("exponent must be non-negative")
    if modulus == 1:
        return 0

    result = 1
    base = base % modulus
    while exponent > 0:
        if exponent & 1:
            result = (result * base) % modulus
        exponent >>= 1
        base = (base * base) % modulus
    return result


def extended_gcd(a: int, b: int) -> tuple:
    """
    Extended Euclidean Algorithm.
    Returns (gcd, x, y) such that a*x + b*y = gcd.
    """
    old_r, r = a, b
    old_s, s = 1, 0
    old_t, t = 0, 1
    while r != 0:
        quotient = old_r // r
        old_r, r = r, old_r - quotient * r
        old_s, s = s, old_s - quotient * s
        old_t, t = t, old_t - quotient * t
    return old_r, old_s, old_t


def mod_inverse(a: int, m: int) -> int:
    """
    Compute modular multiplicative inverse of a modulo m.
    Uses Extended Euclidean Algorithm.
    """
    if m <= 0:
        raise ValueError("modulus must be positive")
    a = a % m
    g, x, _ = extended_gcd(a, m)
    if g != 1:
        raise NoInverseError(f"No modular inverse exists: gcd({a}, {m}) = {g}")
    return x % m


def bit_length(n: int) -> int:
    """Number of bits needed to represent |n| (0 for n == 0)."""
    return abs(n).bit_length()


def byte_length(n: int) -> int:
    """Number of bytes needed to represent a non-negative integer."""
    return (bit_length(n) + 7) // 8


# =============================================================================
# ENCODINGS
# =============================================================================

def bytes_to_int(b: bytes) -> int:
    """Convert bytes to integer (big-endian)."""
    return int.from_bytes(b, 'big')


def int_to_bytes(n: int, length: int = None) -> bytes:
    """
    Convert integer to bytes (big-endian), zero-padded on the left.

    With no length the minimal encoding is used (b'' for zero).

    Raises:
        ValueError: n is negative or does not fit in `length` bytes
    """
    if n < 0:
        raise ValueError("cannot encode a negative integer")
    if length is None:
        length = byte_length(n)
    if byte_length(n) > length:
        raise ValueError(f"integer needs {byte_length(n)} bytes, only {length} available")
    return n.to_bytes(length, 'big')


def int_to_hex(n: int) -> str:
    """Lower-case hex without prefix; even number of digits."""
    return int_to_bytes(n).hex() or '00'


def hex_to_int(text: str) -> int:
    """Parse hex, with or without a 0x prefix."""
    text = text.strip()
    if text.lower().startswith('0x'):
        text = text[2:]
    if not text:
        raise ValueError("empty hex string")
    return int(text, 16)


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def base64_to_bytes(text: str) -> bytes:
    """Strict base64 decode; raises ValueError on malformed input."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, TypeError) as exc:
        raise ValueError(f"invalid base64: {exc}") from exc


def text_to_int(text: str) -> int:
    """UTF-8 encode text and read the bytes as a big-endian integer."""
    return bytes_to_int(text.encode('utf-8'))


def int_to_text(n: int, length: int = None) -> str:
    """Inverse of text_to_int; raises UnicodeDecodeError on invalid UTF-8."""
    return int_to_bytes(n, length).decode('utf-8')


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two byte strings of equal length."""
    if len(a) != len(b):
        raise ValueError(f"length mismatch: {len(a)} != {len(b)}")
    return bytes(x ^ y for x, y in zip(a, b))


def abbreviate(text: str, head: int = 10, tail: int = 10) -> str:
    """Shorten long values for display: first `head` ... last `tail` chars."""
    if len(text) <= head + tail:
        return text
    return f"{text[:head]}...{text[-tail:]}"
