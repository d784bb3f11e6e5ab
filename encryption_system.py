"""
Public-Key Encryption System

Ties the three engines together for the visualization layer:
- Algorithm lookup through the registry
- Non-blocking, cancellable key generation (RSA prime search is slow)
- Encrypt/decrypt by algorithm name
- Human-readable key summaries

This is the main high-level API.
"""

import argparse
import logging
import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from pkcrypto import (
    AlgorithmRegistry,
    EncryptionAlgorithm,
    KeyPair,
    OperationCancelledError,
    PKCryptoError,
)

log = logging.getLogger(__name__)


class KeyGenerationTask:
    """
    Handle for a key generation running on a worker thread.

    Cancelling (or timing out in result()) sets the task's event; the RSA
    prime search checks it on every candidate and stops with
    OperationCancelledError.
    """

    def __init__(self, algorithm: str, future, cancel_event: threading.Event):
        self.algorithm = algorithm
        self._future = future
        self._cancel_event = cancel_event

    def result(self, timeout: float = None) -> KeyPair:
        """
        Wait for the key pair.

        Raises:
            OperationCancelledError: cancelled, or not done within timeout
        """
        try:
            return self._future.result(timeout)
        except FutureTimeoutError:
            self._cancel_event.set()
            raise OperationCancelledError(
                f"{self.algorithm} key generation did not finish within {timeout}s"
            ) from None
        except CancelledError:
            raise OperationCancelledError(
                f"{self.algorithm} key generation was cancelled"
            ) from None

    def cancel(self) -> None:
        """Ask the worker to stop; safe to call more than once."""
        self._cancel_event.set()
        self._future.cancel()

    def done(self) -> bool:
        return self._future.done()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()


class EncryptionSystem:
    """
    Public-key encryption facade.

    Usage:
        system = EncryptionSystem()

        task = system.generate_keys_async('RSA')
        keys = task.result(timeout=30)

        envelope = system.encrypt('RSA', 'hello', keys.public_key)
        text = system.decrypt('RSA', envelope, keys.private_key)
    """

    def __init__(self, settings=None, rng=None, max_workers: int = 2):
        """
        Args:
            settings: pkcrypto Settings (read from the environment when None)
            rng: Random source shared by all engines
            max_workers: Threads available for background key generation
        """
        self.registry = AlgorithmRegistry(settings, rng)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='keygen'
        )

    def __enter__(self) -> 'EncryptionSystem':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # =========================================================================
    # ALGORITHMS
    # =========================================================================

    def list_algorithms(self) -> list:
        return self.registry.list_algorithms()

    def get_algorithm(self, algorithm: str) -> EncryptionAlgorithm:
        return self.registry.get_algorithm(algorithm)

    # =========================================================================
    # KEY GENERATION
    # =========================================================================

    def generate_keys(self, algorithm: str, cancel_event: threading.Event = None) -> KeyPair:
        """Generate a key pair synchronously."""
        return self.get_algorithm(algorithm).generate_keys(cancel_event=cancel_event)

    def generate_keys_async(self, algorithm: str) -> KeyGenerationTask:
        """Start key generation on a worker thread and return its task handle."""
        engine = self.get_algorithm(algorithm)
        cancel_event = threading.Event()
        future = self._executor.submit(engine.generate_keys, cancel_event=cancel_event)
        log.debug("Started background key generation for %s", engine.name)
        return KeyGenerationTask(engine.name, future, cancel_event)

    # =========================================================================
    # ENCRYPTION WORKFLOW
    # =========================================================================

    def encrypt(self, algorithm: str, message: str, public_key):
        return self.get_algorithm(algorithm).encrypt(message, public_key)

    def decrypt(self, algorithm: str, envelope, private_key) -> str:
        return self.get_algorithm(algorithm).decrypt(envelope, private_key)

    # =========================================================================
    # DISPLAY
    # =========================================================================

    def key_summary(self, keypair: KeyPair) -> dict:
        """Truncated key components for display; not for cryptographic use."""
        return {
            'algorithm': keypair.algorithm,
            'key_size': keypair.key_size,
            'public': dict(keypair.public_key_details),
            'private': dict(keypair.private_key_details),
        }


def _run_algorithm(system: EncryptionSystem, algorithm: str, message: str,
                   timeout: float = None) -> bool:
    """Generate keys, print them, round-trip `message`; True if it matches."""
    keys = system.generate_keys_async(algorithm).result(timeout)
    summary = system.key_summary(keys)
    print(f"  Key size: {summary['key_size']} bits")
    for label, value in summary['public'].items():
        print(f"  public.{label}: {value}")

    envelope = system.encrypt(algorithm, message, keys.public_key)
    print(f"  Ciphertext ({len(envelope.ciphertext)} chars): "
          f"{envelope.ciphertext[:48]}...")

    decrypted = system.decrypt(algorithm, envelope, keys.private_key)
    print(f"  Decrypted: {decrypted}")
    return decrypted == message


def main(argv=None) -> int:
    """Demo: generate keys, encrypt and decrypt with each algorithm."""
    ap = argparse.ArgumentParser(description="Public-key encryption demo")
    ap.add_argument("--algorithm", "-a", action="append",
                    help="Algorithm to run (RSA, ElGamal, ECC); repeatable, default all")
    ap.add_argument("--message", "-m", default="Hello, public-key cryptography!",
                    help="Plaintext to encrypt")
    ap.add_argument("--timeout", type=float, default=None,
                    help="Seconds to wait for each key generation")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("=" * 60)
    print("Public-Key Encryption Demo")
    print("=" * 60)

    with EncryptionSystem() as system:
        algorithms = args.algorithm or system.list_algorithms()

        for algorithm in algorithms:
            try:
                engine = system.get_algorithm(algorithm)
            except PKCryptoError as exc:
                print(f"\nError: {exc}")
                return 1
            print(f"\n[{engine.name}] {engine.description}")

            try:
                ok = _run_algorithm(system, engine.name, args.message, args.timeout)
            except PKCryptoError as exc:
                print(f"\nError: {exc}")
                return 1
            print(f"  Round trip ok: {ok}")

    print("\n" + "=" * 60)
    print("Demo completed successfully!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
