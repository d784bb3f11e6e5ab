"""
RSA Encryption with OAEP Padding

Implements:
- Key generation from two random probable primes (e = 65537)
- OAEP-padded encryption: c = EM^e mod n
- Decryption with CRT speed-up: m = c^d mod n

NO external crypto libraries used. Primes, inverses and exponentiation
all come from this package.
"""

import logging
from dataclasses import dataclass

from .errors import (
    DecodingError,
    DecryptionError,
    EncryptionError,
    KeyGenerationError,
    NoInverseError,
)
from .models import Envelope, KeyPair
from .oaep import max_message_length, oaep_decode, oaep_encode
from .primality import DEFAULT_ROUNDS, generate_large_prime
from .registry import register
from .toyhash import get_hash
from .utils import (
    abbreviate,
    base64_to_bytes,
    byte_length,
    bytes_to_base64,
    bytes_to_int,
    int_to_bytes,
    int_to_hex,
    mod_inverse,
    mod_pow,
)

log = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537
MIN_KEY_SIZE = 1024

# gcd(e, phi) != 1 is vanishingly rare, but each retry draws fresh primes
KEYGEN_MAX_ATTEMPTS = 8


@dataclass(frozen=True)
class RSAPublicKey:
    n: int
    e: int = PUBLIC_EXPONENT

    @property
    def size_bytes(self) -> int:
        """k, the modulus length in bytes."""
        return byte_length(self.n)


@dataclass(frozen=True)
class RSAPrivateKey:
    """Private exponent plus the factors; dp, dq, qinv enable CRT."""
    n: int
    d: int
    p: int
    q: int
    dp: int = None
    dq: int = None
    qinv: int = None

    @property
    def size_bytes(self) -> int:
        return byte_length(self.n)

    def public_key(self, e: int = PUBLIC_EXPONENT) -> RSAPublicKey:
        return RSAPublicKey(self.n, e)


@register('RSA')
class RSA:
    """
    RSA-OAEP public-key encryption.

    Usage:
        rsa = RSA()                       # 2048-bit modulus, toy hash
        keys = rsa.generate_keys()
        envelope = rsa.encrypt('hello', keys.public_key)
        text = rsa.decrypt(envelope, keys.private_key)
    """

    name = 'RSA'
    description = (
        'RSA is an asymmetric algorithm based on the difficulty of factoring '
        'large integers, proposed by Rivest, Shamir and Adleman in 1977.'
    )

    def __init__(self, key_size: int = 2048, hash_name: str = 'toy',
                 label: bytes = b'', rounds: int = DEFAULT_ROUNDS, rng=None):
        """
        Args:
            key_size: Modulus size in bits (at least 1024)
            hash_name: Hash used by OAEP/MGF1 ('toy' or 'sha256')
            label: OAEP label, must match between encrypt and decrypt
            rounds: Miller-Rabin rounds per prime candidate
            rng: Random source (OS CSPRNG when None)
        """
        if key_size < MIN_KEY_SIZE:
            raise ValueError(f"RSA key size must be at least {MIN_KEY_SIZE} bits")
        self.key_size = key_size
        self.hash_name = hash_name
        self.hash = get_hash(hash_name)
        self.label = label
        self.rounds = rounds
        self.rng = rng

    @classmethod
    def from_settings(cls, settings, rng=None) -> 'RSA':
        return cls(
            key_size=settings.rsa_bits,
            hash_name=settings.hash_name,
            rounds=settings.mr_rounds,
            rng=rng,
        )

    # =========================================================================
    # KEY GENERATION
    # =========================================================================

    def generate_keys(self, cancel_event=None) -> KeyPair:
        """
        Generate an RSA key pair.

        p, q: independent random primes of key_size/2 bits
        n = p*q, phi = (p-1)(q-1), e = 65537, d = e^-1 mod phi

        The whole generation is retried when p == q or gcd(e, phi) != 1.

        Args:
            cancel_event: threading.Event; setting it aborts the prime search

        Raises:
            OperationCancelledError: cancel_event was set
            KeyGenerationError: no usable prime pair after several attempts
        """
        half = self.key_size // 2
        e = PUBLIC_EXPONENT

        for attempt in range(1, KEYGEN_MAX_ATTEMPTS + 1):
            p = generate_large_prime(half, self.rounds, self.rng, cancel_event)
            q = generate_large_prime(self.key_size - half, self.rounds, self.rng, cancel_event)
            if p == q:
                log.warning("RSA keygen attempt %d drew p == q, retrying", attempt)
                continue

            phi = (p - 1) * (q - 1)
            try:
                d = mod_inverse(e, phi)
            except NoInverseError:
                log.warning("RSA keygen attempt %d: gcd(e, phi) != 1, retrying", attempt)
                continue

            n = p * q
            private_key = RSAPrivateKey(
                n=n, d=d, p=p, q=q,
                dp=d % (p - 1),
                dq=d % (q - 1),
                qinv=mod_inverse(q, p),
            )
            public_key = RSAPublicKey(n, e)
            log.info("Generated %d-bit RSA key pair", n.bit_length())

            return KeyPair(
                algorithm=self.name,
                public_key=public_key,
                private_key=private_key,
                key_size=n.bit_length(),
                public_key_details={
                    'algorithm': self.name,
                    'key_size': f"{n.bit_length()} bits",
                    'public_exponent': f"e = {e} ({hex(e)})",
                    'modulus': 'n = ' + abbreviate(int_to_hex(n)),
                },
                private_key_details={
                    'algorithm': self.name,
                    'key_size': f"{n.bit_length()} bits",
                    'private_exponent': 'd = ' + abbreviate(int_to_hex(d)),
                    'p': 'p = ' + abbreviate(int_to_hex(p)),
                    'q': 'q = ' + abbreviate(int_to_hex(q)),
                },
            )

        raise KeyGenerationError(
            f"RSA key generation failed after {KEYGEN_MAX_ATTEMPTS} attempts"
        )

    # =========================================================================
    # ENCRYPTION
    # =========================================================================

    def max_message_length(self, public_key: RSAPublicKey) -> int:
        """Largest UTF-8 plaintext (in bytes) that fits one OAEP block."""
        return max_message_length(public_key.size_bytes, self.hash)

    def encrypt(self, message: str, public_key: RSAPublicKey) -> Envelope:
        """
        Encrypt a text message with RSA-OAEP.

        1. EM = OAEP(UTF-8(message)) padded to k bytes
        2. c = EM^e mod n
        3. ciphertext = base64(c as k bytes)

        Raises:
            MessageTooLongError: plaintext > k - 2*hLen - 2 bytes
            EncryptionError: malformed public key or non-UTF-8-encodable text
        """
        if not isinstance(public_key, RSAPublicKey):
            raise EncryptionError(
                f"RSA encrypt expects RSAPublicKey, got {type(public_key).__name__}"
            )
        if public_key.n <= 0 or public_key.e <= 0:
            raise EncryptionError("RSA public key has non-positive n or e")
        if not isinstance(message, str):
            raise EncryptionError(f"RSA encrypt expects text, got {type(message).__name__}")
        try:
            data = message.encode('utf-8')
        except UnicodeEncodeError as exc:
            raise EncryptionError(f"RSA message is not encodable as UTF-8: {exc}") from exc

        k = public_key.size_bytes
        encoded = oaep_encode(data, k, self.label, self.hash, self.rng)

        m = bytes_to_int(encoded)
        c = mod_pow(m, public_key.e, public_key.n)

        return Envelope(
            ciphertext=bytes_to_base64(int_to_bytes(c, k)),
            metadata={
                'padding': 'OAEP',
                'hash_algorithm': self.hash_name,
                'key_size': public_key.n.bit_length(),
            },
        )

    # =========================================================================
    # DECRYPTION
    # =========================================================================

    def _private_op(self, c: int, key: RSAPrivateKey) -> int:
        """m = c^d mod n, through the CRT when dp/dq/qinv are present."""
        if key.dp is None or key.dq is None or key.qinv is None:
            return mod_pow(c, key.d, key.n)
        m1 = mod_pow(c, key.dp, key.p)
        m2 = mod_pow(c, key.dq, key.q)
        h = (key.qinv * (m1 - m2)) % key.p
        return m2 + h * key.q

    def decrypt(self, envelope: Envelope, private_key: RSAPrivateKey) -> str:
        """
        Decrypt an RSA-OAEP envelope back to text.

        Raises:
            DecryptionError: malformed key or ciphertext
            DecodingError: OAEP padding, label or UTF-8 decoding failed
        """
        envelope = Envelope.coerce(envelope)
        if not isinstance(private_key, RSAPrivateKey):
            raise DecryptionError(
                f"RSA decrypt expects RSAPrivateKey, got {type(private_key).__name__}"
            )

        k = private_key.size_bytes
        try:
            raw = base64_to_bytes(envelope.ciphertext)
        except (ValueError, TypeError) as exc:
            raise DecryptionError(f"RSA ciphertext is not valid base64: {exc}") from exc
        if len(raw) != k:
            raise DecryptionError(
                f"RSA ciphertext is {len(raw)} bytes, expected {k} bytes"
            )

        c = bytes_to_int(raw)
        if c >= private_key.n:
            raise DecryptionError("RSA ciphertext representative is out of range")

        m = self._private_op(c, private_key)
        try:
            encoded = int_to_bytes(m, k)
        except ValueError as exc:
            raise DecryptionError(f"RSA private key is inconsistent: {exc}") from exc

        message = oaep_decode(encoded, k, self.label, self.hash)
        try:
            return message.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise DecodingError(f"RSA plaintext is not valid UTF-8: {exc}") from exc
