"""
ElGamal Encryption over a Fixed Prime Field

Implements:
- Key generation: x random in (0, p-1), y = g^x mod p
- Encryption: c1 = g^k mod p, c2 = M * y^k mod p
- Decryption: M = c2 * (c1^x)^-1 mod p
- Block mode for messages whose integer value is >= p

The domain is the 2048-bit MODP group from RFC 3526 (group 14), g = 2.
"""

import json
import logging
from dataclasses import dataclass

from .errors import DecodingError, DecryptionError, EncryptionError, MissingFieldError
from .models import Envelope, KeyPair
from .registry import register
from .utils import (
    abbreviate,
    bytes_to_int,
    int_to_bytes,
    mod_inverse,
    mod_pow,
    random_bigint,
)

log = logging.getLogger(__name__)


# =============================================================================
# RFC 3526 2048-BIT MODP GROUP
# =============================================================================

MODP_2048 = int(
    'FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1'
    '29024E088A67CC74020BBEA63B139B22514A08798E3404DD'
    'EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245'
    'E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED'
    'EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE45B3D'
    'C2007CB8A163BF0598DA48361C55D39A69163FA8FD24CF5F'
    '83655D23DCA3AD961C62F356208552BB9ED529077096966D'
    '670C354E4ABC9804F1746C08CA18217C32905E462E36CE3B'
    'E39E772C180E86039B2783A2EC07A28FB5C55DF06F4C52C9'
    'DE2BCBF6955817183995497CEA956AE515D2261898FA0510'
    '15728E5A8AACAA68FFFFFFFFFFFFFFFF',
    16,
)
GENERATOR = 2


def block_size_for(p: int) -> int:
    """
    Bytes per block in block mode.

    A quarter of the decimal digit count of p (minus one), which keeps every
    block far below p: 154 bytes for the 2048-bit group.
    """
    return (len(str(p)) - 1) // 4


@dataclass(frozen=True)
class ElGamalPublicKey:
    p: int
    g: int
    y: int


@dataclass(frozen=True)
class ElGamalPrivateKey:
    p: int
    x: int


@register('ElGamal')
class ElGamal:
    """
    ElGamal public-key encryption.

    Usage:
        elgamal = ElGamal()
        keys = elgamal.generate_keys()
        envelope = elgamal.encrypt('hello', keys.public_key)
        text = elgamal.decrypt(envelope, keys.private_key)
    """

    name = 'ElGamal'
    description = (
        'ElGamal is an asymmetric algorithm based on the discrete logarithm '
        'problem, proposed by Taher Elgamal in 1985.'
    )

    def __init__(self, p: int = MODP_2048, g: int = GENERATOR, rng=None):
        self.p = p
        self.g = g
        self.rng = rng

    @classmethod
    def from_settings(cls, settings, rng=None) -> 'ElGamal':
        return cls(rng=rng)

    # =========================================================================
    # KEY GENERATION
    # =========================================================================

    def generate_keys(self, cancel_event=None) -> KeyPair:
        """
        Generate an ElGamal key pair.

        Private key: x uniform in (0, p-1)
        Public key: y = g^x mod p
        """
        x = random_bigint(self.p - 1, self.rng)
        y = mod_pow(self.g, x, self.p)
        log.info("Generated ElGamal key pair over %d-bit group", self.p.bit_length())

        return KeyPair(
            algorithm=self.name,
            public_key=ElGamalPublicKey(p=self.p, g=self.g, y=y),
            private_key=ElGamalPrivateKey(p=self.p, x=x),
            key_size=self.p.bit_length(),
            public_key_details={
                'algorithm': self.name,
                'key_size': f"{self.p.bit_length()} bits",
                'p': abbreviate(str(self.p), 4, 4),
                'g': str(self.g),
                'y': abbreviate(str(y), 4, 4),
            },
            private_key_details={
                'algorithm': self.name,
                'key_size': f"{self.p.bit_length()} bits",
                'x': abbreviate(str(x), 4, 4),
            },
        )

    # =========================================================================
    # SINGLE-BLOCK PRIMITIVES
    # =========================================================================

    def _encrypt_block(self, data: bytes, key: ElGamalPublicKey) -> tuple:
        """
        Encrypt one block.

        Returns:
            (block dict for the wire, ephemeral k)
        """
        M = bytes_to_int(data)
        k = random_bigint(key.p - 1, self.rng)
        c1 = mod_pow(key.g, k, key.p)
        s = mod_pow(key.y, k, key.p)
        c2 = (M * s) % key.p
        return {'c1': str(c1), 'c2': str(c2), 'length': len(data)}, k

    def _decrypt_block(self, block, key: ElGamalPrivateKey) -> bytes:
        if not isinstance(block, dict):
            raise DecryptionError("ElGamal ciphertext block must be an object")
        for field in ('c1', 'c2'):
            if block.get(field) is None:
                raise MissingFieldError(f"ciphertext.{field}", self.name)
        try:
            c1 = int(block['c1'])
            c2 = int(block['c2'])
        except (TypeError, ValueError) as exc:
            raise DecryptionError(f"ElGamal c1/c2 are not integers: {exc}") from exc
        if not 1 <= c1 < key.p or not 0 <= c2 < key.p:
            raise DecryptionError("ElGamal c1/c2 out of range for the group")

        s = mod_pow(c1, key.x, key.p)
        M = (c2 * mod_inverse(s, key.p)) % key.p

        length = block.get('length')
        try:
            return int_to_bytes(M, None if length is None else int(length))
        except (TypeError, ValueError) as exc:
            raise DecodingError(f"ElGamal recovered block does not fit: {exc}") from exc

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def encrypt(self, message: str, public_key: ElGamalPublicKey) -> Envelope:
        """
        Encrypt a text message.

        If the message integer M is below p a single block is produced and
        the ephemeral k is exposed for the visualization. Otherwise the UTF-8
        bytes are split into block_size_for(p)-byte blocks, each encrypted
        with its own k.

        Raises:
            EncryptionError: malformed public key or non-UTF-8-encodable text
        """
        if not isinstance(public_key, ElGamalPublicKey):
            raise EncryptionError(
                f"ElGamal encrypt expects ElGamalPublicKey, got {type(public_key).__name__}"
            )
        if public_key.p <= 3 or not 1 < public_key.y < public_key.p:
            raise EncryptionError("ElGamal public key is outside the group")
        if not isinstance(message, str):
            raise EncryptionError(f"ElGamal encrypt expects text, got {type(message).__name__}")

        try:
            data = message.encode('utf-8')
        except UnicodeEncodeError as exc:
            raise EncryptionError(f"ElGamal message is not encodable as UTF-8: {exc}") from exc

        if bytes_to_int(data) < public_key.p:
            block, k = self._encrypt_block(data, public_key)
            return Envelope(
                ciphertext=json.dumps(block),
                ephemeral_key=str(k),
                metadata={'is_blocked': False},
            )

        size = block_size_for(public_key.p)
        blocks = [
            self._encrypt_block(data[i:i + size], public_key)[0]
            for i in range(0, len(data), size)
        ]
        log.debug("ElGamal message of %d bytes split into %d blocks", len(data), len(blocks))

        return Envelope(
            ciphertext=json.dumps(blocks),
            metadata={
                'is_blocked': True,
                'block_count': len(blocks),
                'block_size': size,
            },
        )

    def decrypt(self, envelope: Envelope, private_key: ElGamalPrivateKey) -> str:
        """
        Decrypt an ElGamal envelope back to text.

        Blocked envelopes are decrypted block by block and the bytes joined
        before UTF-8 decoding.

        Raises:
            DecryptionError: malformed key or ciphertext
            MissingFieldError: a block lacks c1 or c2
            DecodingError: recovered bytes are not valid UTF-8
        """
        envelope = Envelope.coerce(envelope)
        if not isinstance(private_key, ElGamalPrivateKey):
            raise DecryptionError(
                f"ElGamal decrypt expects ElGamalPrivateKey, got {type(private_key).__name__}"
            )
        if not 1 <= private_key.x < private_key.p - 1:
            raise DecryptionError("ElGamal private exponent is out of range")

        try:
            payload = json.loads(envelope.ciphertext)
        except (TypeError, ValueError) as exc:
            raise DecryptionError(f"ElGamal ciphertext is not valid JSON: {exc}") from exc

        if envelope.metadata.get('is_blocked'):
            if not isinstance(payload, list):
                raise DecryptionError("blocked ElGamal ciphertext must be a list")
            data = b''.join(self._decrypt_block(block, private_key) for block in payload)
        else:
            data = self._decrypt_block(payload, private_key)

        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise DecodingError(f"ElGamal plaintext is not valid UTF-8: {exc}") from exc
