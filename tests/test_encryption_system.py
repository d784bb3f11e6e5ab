from __future__ import annotations

import threading

import pytest

from encryption_system import EncryptionSystem, main
from pkcrypto import OperationCancelledError, Settings, UnsupportedAlgorithmError
from pkcrypto.utils import SeededRandomSource


@pytest.fixture
def system():
    with EncryptionSystem(Settings(rsa_bits=1024), SeededRandomSource(11)) as system:
        yield system


def test_lists_algorithms(system):
    assert system.list_algorithms() == ['RSA', 'ElGamal', 'ECC']


@pytest.mark.parametrize("algorithm", ['RSA', 'ElGamal', 'ECC'])
def test_round_trip_by_name(system, algorithm):
    keys = system.generate_keys(algorithm)
    envelope = system.encrypt(algorithm, 'Hello from the facade', keys.public_key)
    assert system.decrypt(algorithm, envelope, keys.private_key) == 'Hello from the facade'


def test_key_summary(system):
    keys = system.generate_keys('ECC')
    summary = system.key_summary(keys)
    assert summary['algorithm'] == 'ECC'
    assert summary['key_size'] == 256
    assert summary['public']['curve'] == 'secp256k1'
    assert 'private_key' in summary['private']


def test_background_key_generation(system):
    task = system.generate_keys_async('ecc')
    keys = task.result(timeout=60)
    assert task.algorithm == 'ECC'
    assert task.done()
    assert not task.cancel_requested
    assert keys.algorithm == 'ECC'


def test_unknown_algorithm(system):
    with pytest.raises(UnsupportedAlgorithmError):
        system.generate_keys_async('DSA')


def test_synchronous_generation_can_be_cancelled(system):
    event = threading.Event()
    event.set()
    with pytest.raises(OperationCancelledError):
        system.generate_keys('RSA', cancel_event=event)


def test_background_generation_times_out():
    with EncryptionSystem(Settings(rsa_bits=8192), SeededRandomSource(12)) as slow:
        task = slow.generate_keys_async('RSA')
        with pytest.raises(OperationCancelledError):
            task.result(timeout=0.05)
        assert task.cancel_requested
        # the worker notices the event at its next prime candidate
        with pytest.raises(OperationCancelledError):
            task.result(timeout=60)
        assert task.done()


def test_background_generation_cancel():
    with EncryptionSystem(Settings(rsa_bits=8192), SeededRandomSource(13)) as slow:
        task = slow.generate_keys_async('RSA')
        task.cancel()
        assert task.cancel_requested
        with pytest.raises(OperationCancelledError):
            task.result(timeout=60)


def test_demo_cli(capsys, monkeypatch):
    monkeypatch.setenv('PKCRYPTO_RANDOM_SEED', '3')
    assert main(['-a', 'ECC', '-a', 'ElGamal', '-m', 'demo text']) == 0
    out = capsys.readouterr().out
    assert 'Decrypted: demo text' in out
    assert 'Round trip ok: True' in out
    assert 'Demo completed successfully!' in out


def test_demo_cli_unknown_algorithm(capsys):
    assert main(['-a', 'DSA']) == 1
    assert 'Unsupported algorithm' in capsys.readouterr().out


def test_demo_cli_reports_key_generation_timeout(capsys, monkeypatch):
    monkeypatch.setenv('PKCRYPTO_RSA_BITS', '8192')
    monkeypatch.setenv('PKCRYPTO_RANDOM_SEED', '4')
    assert main(['-a', 'RSA', '--timeout', '0.01']) == 1
    out = capsys.readouterr().out
    assert 'Error: RSA key generation did not finish' in out
    assert 'Demo completed successfully!' not in out


def test_demo_cli_reports_message_too_long(capsys, monkeypatch):
    monkeypatch.setenv('PKCRYPTO_RSA_BITS', '1024')
    monkeypatch.setenv('PKCRYPTO_RANDOM_SEED', '5')
    assert main(['-a', 'RSA', '-m', 'x' * 200]) == 1
    assert 'maximum is 62 bytes' in capsys.readouterr().out
