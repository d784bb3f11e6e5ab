"""
Elliptic Curve Cryptography Implementation

Implements:
- ECPoint class for curve point representation (compressed/uncompressed)
- Point addition, doubling, and scalar multiplication
- Modular square root (Tonelli-Shanks) for point decompression
- secp256k1 and NIST P-256 curve parameters
- ECIES-style encryption: ECDH shared point -> hashed key -> XOR stream

NO external crypto libraries used. Only standard library.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass

from .errors import (
    DecodingError,
    DecryptionError,
    EncryptionError,
    InternalConsistencyError,
    MissingFieldError,
    NoSquareRootError,
)
from .models import Envelope, KeyPair
from .registry import register
from .stream import HashStreamCipher
from .toyhash import get_hash
from .utils import (
    abbreviate,
    base64_to_bytes,
    bytes_to_base64,
    mod_inverse,
    mod_pow,
    random_below,
)

log = logging.getLogger(__name__)


# =============================================================================
# CURVE PARAMETERS
# =============================================================================

# secp256k1 (SEC 2): y² = x³ + 7 over F_p
SECP256K1 = {
    'p': 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F,
    'a': 0,
    'b': 7,
    'Gx': 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    'Gy': 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
    'n': 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141,
    'h': 1,
    'name': 'secp256k1'
}

# These are the official NIST P-256 parameters from FIPS 186-4
NIST_P256 = {
    'p': 0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFF,
    'a': 0xFFFFFFFF00000001000000000000000000000000FFFFFFFFFFFFFFFFFFFFFFFC,
    'b': 0x5AC635D8AA3A93E7B3EBBD55769886BC651D06B0CC53B0F63BCE3C3E27D2604B,
    'Gx': 0x6B17D1F2E12C4247F8BCE6E563A440F277037D812DEB33A0F4A13945D898C296,
    'Gy': 0x4FE342E2FE1A7F9B8EE7EB4A7C0F9E162BCE33576B315ECECBB6406837BF51F5,
    'n': 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551,
    'h': 1,
    'name': 'P-256'
}

CURVES = {
    'secp256k1': SECP256K1,
    'P-256': NIST_P256,
}

# Keystream and tag always use SHA-256; only the KDF follows hash_name
INTEGRITY_HASH = hashlib.sha256


def coordinate_size(curve: dict) -> int:
    """Bytes per field element (32 for 256-bit curves)."""
    return (curve['p'].bit_length() + 7) // 8


# =============================================================================
# MODULAR SQUARE ROOT
# =============================================================================

def mod_sqrt(a: int, p: int) -> int:
    """
    Square root of a modulo an odd prime p (Tonelli-Shanks).

    1. Euler's criterion: a^((p-1)/2) must be 1, else no root exists
    2. Factor p - 1 = q * 2^s with q odd
    3. s == 1 (p = 3 mod 4): r = a^((p+1)/4)
    4. Otherwise find a non-residue z and shrink the order of
       t = a^q step by step, at most s iterations

    Returns:
        r with r² ≡ a (mod p); the other root is p - r

    Raises:
        NoSquareRootError: a is not a quadratic residue
        InternalConsistencyError: the loop did not converge (p not prime)
    """
    a %= p
    if a == 0:
        return 0
    if p == 2:
        return a
    if mod_pow(a, (p - 1) // 2, p) != 1:
        raise NoSquareRootError(f"{a} is not a quadratic residue modulo p")

    q, s = p - 1, 0
    while q % 2 == 0:
        q //= 2
        s += 1

    if s == 1:
        return mod_pow(a, (p + 1) // 4, p)

    z = 2
    while mod_pow(z, (p - 1) // 2, p) != p - 1:
        z += 1
        if z >= p:
            raise InternalConsistencyError("no quadratic non-residue found; is p prime?")

    m = s
    c = mod_pow(z, q, p)
    t = mod_pow(a, q, p)
    r = mod_pow(a, (q + 1) // 2, p)

    for _ in range(s):
        if t == 1:
            return r
        # least i with t^(2^i) = 1
        i = 0
        t2 = t
        while t2 != 1:
            t2 = (t2 * t2) % p
            i += 1
            if i >= m:
                raise InternalConsistencyError("Tonelli-Shanks did not converge")
        b = mod_pow(c, 1 << (m - i - 1), p)
        m = i
        c = (b * b) % p
        t = (t * c) % p
        r = (r * b) % p

    if t == 1:
        return r
    raise InternalConsistencyError(f"Tonelli-Shanks did not converge in {s} iterations")


class ECPoint:
    """
    Affine point on one of the CURVES dicts, or the point at infinity.

    Infinity is x = y = None. Points keep a reference to their curve dict
    so that is_on_curve() and the wire encodings need no extra arguments;
    the encodings size each coordinate with coordinate_size(curve).
    """

    def __init__(self, x: int, y: int, curve: dict):
        self.x = x
        self.y = y
        self.curve = curve
        self.infinity = (x is None and y is None)

    @staticmethod
    def point_at_infinity(curve: dict) -> 'ECPoint':
        """The group identity O on `curve`."""
        return ECPoint(None, None, curve)

    def is_on_curve(self) -> bool:
        """
        True for O, or when y² ≡ x³ + ax + b (mod p).

        Coordinates outside [0, p) are rejected rather than reduced, so a
        decoded point with an out-of-range x or y never validates.
        """
        if self.infinity:
            return True

        p = self.curve['p']
        a = self.curve['a']
        b = self.curve['b']

        if not (0 <= self.x < p and 0 <= self.y < p):
            return False

        lhs = (self.y * self.y) % p
        rhs = (pow(self.x, 3, p) + a * self.x + b) % p

        return lhs == rhs

    def __eq__(self, other: 'ECPoint') -> bool:
        if not isinstance(other, ECPoint):
            return False
        if self.infinity and other.infinity:
            return True
        if self.infinity or other.infinity:
            return False
        return self.x == other.x and self.y == other.y

    def __hash__(self) -> int:
        return hash((self.x, self.y, self.curve['name']))

    def __repr__(self) -> str:
        if self.infinity:
            return "ECPoint(infinity)"
        return f"ECPoint(x={hex(self.x)}, y={hex(self.y)})"

    def negate(self) -> 'ECPoint':
        """Return the negation of this point: -P = (x, -y mod p)."""
        if self.infinity:
            return ECPoint.point_at_infinity(self.curve)
        return ECPoint(self.x, (-self.y) % self.curve['p'], self.curve)

    def to_bytes(self, compressed: bool = True) -> bytes:
        """
        Serialize point to bytes.

        Compressed:   0x02/0x03 (even/odd y) || x
        Uncompressed: 0x04 || x || y
        Infinity:     0x00
        """
        if self.infinity:
            return b'\x00'
        size = coordinate_size(self.curve)
        if compressed:
            prefix = b'\x03' if self.y & 1 else b'\x02'
            return prefix + self.x.to_bytes(size, 'big')
        return b'\x04' + self.x.to_bytes(size, 'big') + self.y.to_bytes(size, 'big')

    @staticmethod
    def from_bytes(data: bytes, curve: dict) -> 'ECPoint':
        """
        Deserialize point from compressed, uncompressed or infinity form.

        Raises:
            ValueError: wrong length or unknown prefix
            NoSquareRootError: compressed x has no point on the curve
        """
        if data == b'\x00':
            return ECPoint.point_at_infinity(curve)
        if not data:
            raise ValueError("Empty point encoding")
        size = coordinate_size(curve)
        prefix = data[0]
        if prefix == 0x04:
            if len(data) != 1 + 2 * size:
                raise ValueError(f"Uncompressed point must be {1 + 2 * size} bytes")
            x = int.from_bytes(data[1:1 + size], 'big')
            y = int.from_bytes(data[1 + size:], 'big')
            return ECPoint(x, y, curve)
        if prefix in (0x02, 0x03):
            if len(data) != 1 + size:
                raise ValueError(f"Compressed point must be {1 + size} bytes")
            x = int.from_bytes(data[1:], 'big')
            return decompress_point(x, prefix & 1, curve)
        raise ValueError(f"Unknown point encoding prefix 0x{prefix:02x}")


def decompress_point(x: int, y_parity: int, curve: dict) -> ECPoint:
    """
    Recover (x, y) from x and the parity of y.

    Solves y² = x³ + ax + b (mod p) and keeps the root with matching parity.
    """
    p = curve['p']
    if not 0 <= x < p:
        raise ValueError("x coordinate out of field range")
    rhs = (pow(x, 3, p) + curve['a'] * x + curve['b']) % p
    y = mod_sqrt(rhs, p)
    if y & 1 != y_parity:
        if y == 0:
            raise NoSquareRootError("y = 0 has no root of odd parity")
        y = p - y
    return ECPoint(x, y, curve)


@dataclass(frozen=True)
class ECCPublicKey:
    curve: str
    point: ECPoint


@dataclass(frozen=True)
class ECCPrivateKey:
    curve: str
    scalar: int


@register('ECC')
class ECC:
    """
    Elliptic Curve Cryptography operations.

    Provides:
    - Point arithmetic (add, double, multiply)
    - Key generation
    - ECIES encryption/decryption

    Usage:
        ecc = ECC()  # Uses secp256k1 by default
        keys = ecc.generate_keys()
        envelope = ecc.encrypt('hello', keys.public_key)
        text = ecc.decrypt(envelope, keys.private_key)
    """

    name = 'ECC'
    description = (
        'Elliptic curve cryptography relies on the elliptic curve discrete '
        'logarithm problem and reaches RSA-level security with much shorter keys.'
    )

    def __init__(self, curve: dict = None, hash_name: str = 'toy', rng=None):
        """
        Initialize ECC with curve parameters.

        Args:
            curve: Curve parameters dict (defaults to secp256k1)
            hash_name: Hash for key derivation, keystream and tag
            rng: Random source (OS CSPRNG when None)
        """
        self.curve = curve if curve is not None else SECP256K1
        self.hash_name = hash_name
        self.hash = get_hash(hash_name)
        self.rng = rng

        # Create generator point
        self.G = ECPoint(
            self.curve['Gx'],
            self.curve['Gy'],
            self.curve
        )

        # Verify generator is on curve
        if not self.G.is_on_curve():
            raise InternalConsistencyError("Generator point not on curve")

    @classmethod
    def from_settings(cls, settings, rng=None) -> 'ECC':
        return cls(curve=CURVES[settings.ecc_curve], hash_name=settings.hash_name, rng=rng)

    # =========================================================================
    # POINT ARITHMETIC
    # =========================================================================

    def _from_slope(self, lam: int, P: ECPoint, x_other: int) -> ECPoint:
        """Third intersection of the line with slope lam through P, reflected."""
        p = self.curve['p']
        x3 = (lam * lam - P.x - x_other) % p
        y3 = (lam * (P.x - x3) - P.y) % p
        return ECPoint(x3, y3, self.curve)

    def point_add(self, P: ECPoint, Q: ECPoint) -> ECPoint:
        """
        P + Q in affine coordinates.

        O is the identity on either side and P + (-P) = O. Equal inputs go
        through point_double, since the chord slope (y₂ - y₁)/(x₂ - x₁) is
        undefined there.
        """
        if P.infinity:
            return Q
        if Q.infinity:
            return P

        p = self.curve['p']
        if P.x == Q.x:
            if (P.y + Q.y) % p == 0:
                return ECPoint.point_at_infinity(self.curve)
            return self.point_double(P)

        lam = ((Q.y - P.y) * mod_inverse(Q.x - P.x, p)) % p
        return self._from_slope(lam, P, Q.x)

    def point_double(self, P: ECPoint) -> ECPoint:
        """
        2P from the tangent slope (3x² + a) / 2y.

        A point with y = 0 is its own negation, so doubling it gives O.
        """
        if P.infinity or P.y == 0:
            return ECPoint.point_at_infinity(self.curve)

        p = self.curve['p']
        lam = ((3 * P.x * P.x + self.curve['a']) * mod_inverse(2 * P.y, p)) % p
        return self._from_slope(lam, P, P.x)

    def scalar_multiply(self, k: int, P: ECPoint) -> ECPoint:
        """
        Scalar multiplication using the Double-and-Add algorithm.

        Computes Q = kP, processing the bits of k from MSB to LSB starting
        from the point at infinity. k is not reduced modulo n, so n*G
        really walks the whole group and lands on infinity.
        """
        if k == 0 or P.infinity:
            return ECPoint.point_at_infinity(self.curve)

        if k < 0:
            k = -k
            P = P.negate()

        R = ECPoint.point_at_infinity(self.curve)
        for i in range(k.bit_length() - 1, -1, -1):
            R = self.point_double(R)
            if (k >> i) & 1:
                R = self.point_add(R, P)

        return R

    def compress_point(self, P: ECPoint) -> bytes:
        return P.to_bytes(compressed=True)

    def decompress_point(self, data: bytes) -> ECPoint:
        return ECPoint.from_bytes(data, self.curve)

    # =========================================================================
    # KEY GENERATION
    # =========================================================================

    def generate_keys(self, cancel_event=None) -> KeyPair:
        """
        Generate an ECC key pair.

        Private key: Random integer d in [1, n-1]
        Public key: Point Q = dG
        """
        n = self.curve['n']

        scalar = random_below(n - 1, self.rng) + 1
        point = self.scalar_multiply(scalar, self.G)

        if not point.is_on_curve():
            raise InternalConsistencyError("Generated public key not on curve")
        log.info("Generated ECC key pair on %s", self.curve['name'])

        size_bits = n.bit_length()
        return KeyPair(
            algorithm=self.name,
            public_key=ECCPublicKey(self.curve['name'], point),
            private_key=ECCPrivateKey(self.curve['name'], scalar),
            key_size=size_bits,
            public_key_details={
                'algorithm': self.name,
                'curve': self.curve['name'],
                'key_size': f"{size_bits} bits",
                'public_key': abbreviate(point.to_bytes().hex()),
            },
            private_key_details={
                'algorithm': self.name,
                'curve': self.curve['name'],
                'key_size': f"{size_bits} bits",
                'private_key': abbreviate(f"{scalar:064x}"),
            },
        )

    # =========================================================================
    # ECIES
    # =========================================================================

    def _derive_keys(self, shared_point: ECPoint) -> tuple:
        """
        (encryption key, MAC key) from the ECDH shared point.

        enc_key = H(S uncompressed), mac_key = H(enc_key || "mac")
        """
        enc_key = self.hash(shared_point.to_bytes(compressed=False)).digest()
        mac_key = self.hash(enc_key + b'mac').digest()
        return enc_key, mac_key

    def _tag(self, mac_key: bytes, iv: bytes, ephemeral: bytes, ciphertext: bytes) -> str:
        return hmac.new(mac_key, iv + ephemeral + ciphertext, INTEGRITY_HASH).hexdigest()

    def encrypt(self, message: str, public_key: ECCPublicKey) -> Envelope:
        """
        Encrypt a text message for the holder of `public_key`.

        1. r random in [1, n-1], R = rG (ephemeral public point)
        2. S = rQ (ECDH shared point)
        3. keys derived by hashing S with the configured hash
        4. ciphertext = plaintext XOR SHA-256(IV || key || counter) keystream
        5. tag = HMAC-SHA-256(mac_key, IV || R || ciphertext)

        Raises:
            EncryptionError: public key malformed, off-curve or wrong curve,
                or message not encodable as UTF-8
        """
        if not isinstance(public_key, ECCPublicKey):
            raise EncryptionError(
                f"ECC encrypt expects ECCPublicKey, got {type(public_key).__name__}"
            )
        if public_key.curve != self.curve['name']:
            raise EncryptionError(
                f"Public key is on {public_key.curve}, engine uses {self.curve['name']}"
            )
        Q = public_key.point
        if not isinstance(Q, ECPoint) or Q.infinity or not Q.is_on_curve():
            raise EncryptionError("Public key point is not on the curve")
        if not isinstance(message, str):
            raise EncryptionError(f"ECC encrypt expects text, got {type(message).__name__}")
        try:
            data = message.encode('utf-8')
        except UnicodeEncodeError as exc:
            raise EncryptionError(f"ECC message is not encodable as UTF-8: {exc}") from exc

        n = self.curve['n']
        r = random_below(n - 1, self.rng) + 1
        R = self.scalar_multiply(r, self.G)
        S = self.scalar_multiply(r, Q)
        if S.infinity:
            raise EncryptionError("Shared point is the point at infinity")

        enc_key, mac_key = self._derive_keys(S)
        cipher = HashStreamCipher(enc_key, INTEGRITY_HASH)
        iv = HashStreamCipher.generate_iv(self.rng)
        ciphertext, _ = cipher.encrypt(data, iv)

        ephemeral = R.to_bytes(compressed=True)
        return Envelope(
            ciphertext=bytes_to_base64(ciphertext),
            ephemeral_key=ephemeral.hex(),
            iv=iv.hex(),
            metadata={
                'curve': self.curve['name'],
                'algorithm': 'ECIES',
                'kdf': self.hash_name,
                'cipher': 'sha256-counter-xor',
                'mac': 'hmac-sha256',
                'tag': self._tag(mac_key, iv, ephemeral, ciphertext),
            },
        )

    def decrypt(self, envelope: Envelope, private_key: ECCPrivateKey) -> str:
        """
        Decrypt an ECIES envelope.

        Any tampering with the IV, ephemeral key, ciphertext or tag makes the
        tag check fail, so a corrupted envelope never yields silent garbage.

        Raises:
            MissingFieldError: ephemeral_key, iv or metadata.tag absent
            DecryptionError: malformed envelope/key or tag mismatch
            DecodingError: plaintext is not valid UTF-8
        """
        envelope = Envelope.coerce(envelope)
        if not isinstance(private_key, ECCPrivateKey):
            raise DecryptionError(
                f"ECC decrypt expects ECCPrivateKey, got {type(private_key).__name__}"
            )
        if private_key.curve != self.curve['name']:
            raise DecryptionError(
                f"Private key is on {private_key.curve}, engine uses {self.curve['name']}"
            )
        if not 1 <= private_key.scalar < self.curve['n']:
            raise DecryptionError("ECC private scalar is out of range")

        if not envelope.ephemeral_key:
            raise MissingFieldError('ephemeral_key', self.name)
        if not envelope.iv:
            raise MissingFieldError('iv', self.name)
        tag = envelope.metadata.get('tag')
        if not tag:
            raise MissingFieldError('metadata.tag', self.name)

        try:
            iv = bytes.fromhex(envelope.iv)
            ephemeral = bytes.fromhex(envelope.ephemeral_key)
            ciphertext = base64_to_bytes(envelope.ciphertext)
        except (TypeError, ValueError) as exc:
            raise DecryptionError(f"ECC envelope field is malformed: {exc}") from exc
        if len(iv) != HashStreamCipher.IV_SIZE:
            raise DecryptionError(
                f"IV is {len(iv)} bytes, expected {HashStreamCipher.IV_SIZE} bytes"
            )

        try:
            R = ECPoint.from_bytes(ephemeral, self.curve)
        except (ValueError, NoSquareRootError) as exc:
            raise DecryptionError(f"Ephemeral key is not a curve point: {exc}") from exc
        if R.infinity or not R.is_on_curve():
            raise DecryptionError("Ephemeral key is not a valid curve point")

        S = self.scalar_multiply(private_key.scalar, R)
        enc_key, mac_key = self._derive_keys(S)

        expected = self._tag(mac_key, iv, ephemeral, ciphertext)
        if not hmac.compare_digest(expected.encode('ascii'), str(tag).encode('utf-8')):
            raise DecryptionError("ECC integrity check failed; envelope was modified")

        plaintext = HashStreamCipher(enc_key, INTEGRITY_HASH).decrypt(ciphertext, iv)
        try:
            return plaintext.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise DecodingError(f"ECC plaintext is not valid UTF-8: {exc}") from exc
