"""
Runtime settings read from the environment.

    PKCRYPTO_RSA_BITS      RSA modulus size (default 2048, minimum 1024)
    PKCRYPTO_HASH          'toy' (default) or 'sha256'
    PKCRYPTO_MR_ROUNDS     Miller-Rabin rounds (default 20)
    PKCRYPTO_ECC_CURVE     'secp256k1' (default) or 'P-256'
    PKCRYPTO_RANDOM_SEED   integer seed; switches to a predictable source
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .toyhash import HASHES
from .utils import SeededRandomSource, SystemRandomSource

MIN_RSA_BITS = 1024
CURVE_NAMES = ('secp256k1', 'P-256')


@dataclass(frozen=True)
class Settings:
    rsa_bits: int = 2048
    hash_name: str = 'toy'
    mr_rounds: int = 20
    ecc_curve: str = 'secp256k1'
    random_seed: Optional[int] = None

    def random_source(self):
        """Build the random source these settings ask for."""
        if self.random_seed is None:
            return SystemRandomSource()
        return SeededRandomSource(self.random_seed)


def _int_env(environ: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


def load_settings(environ: Mapping[str, str] = None) -> Settings:
    """Read Settings from `environ` (os.environ by default)."""
    if environ is None:
        environ = os.environ

    rsa_bits = _int_env(environ, 'PKCRYPTO_RSA_BITS', 2048)
    if rsa_bits < MIN_RSA_BITS:
        raise ValueError(f"PKCRYPTO_RSA_BITS must be at least {MIN_RSA_BITS}")

    mr_rounds = _int_env(environ, 'PKCRYPTO_MR_ROUNDS', 20)
    if mr_rounds < 1:
        raise ValueError("PKCRYPTO_MR_ROUNDS must be at least 1")

    hash_name = environ.get('PKCRYPTO_HASH', 'toy').strip().lower() or 'toy'
    if hash_name not in HASHES:
        raise ValueError(f"PKCRYPTO_HASH must be one of {sorted(HASHES)}")

    ecc_curve = environ.get('PKCRYPTO_ECC_CURVE', 'secp256k1').strip() or 'secp256k1'
    if ecc_curve not in CURVE_NAMES:
        raise ValueError(f"PKCRYPTO_ECC_CURVE must be one of {list(CURVE_NAMES)}")

    return Settings(
        rsa_bits=rsa_bits,
        hash_name=hash_name,
        mr_rounds=mr_rounds,
        ecc_curve=ecc_curve,
        random_seed=_int_env(environ, 'PKCRYPTO_RANDOM_SEED', None),
    )
