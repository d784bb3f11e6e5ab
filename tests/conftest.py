from __future__ import annotations

import pytest

from pkcrypto.rsa import RSA
from pkcrypto.utils import SeededRandomSource


@pytest.fixture
def rng() -> SeededRandomSource:
    return SeededRandomSource(20240611)


@pytest.fixture(scope="session")
def rsa_2048():
    """One 2048-bit engine and key pair shared by the slow RSA tests."""
    engine = RSA(key_size=2048, rng=SeededRandomSource(2048))
    return engine, engine.generate_keys()


@pytest.fixture(scope="session")
def rsa_1024():
    engine = RSA(key_size=1024, rng=SeededRandomSource(1024))
    return engine, engine.generate_keys()
