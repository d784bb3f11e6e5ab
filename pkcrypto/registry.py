"""Algorithm registry.

Engine classes register themselves by name with the ``register`` decorator.
An ``AlgorithmRegistry`` turns those classes into shared instances, built
once per name from its Settings and random source.
"""

from __future__ import annotations
import threading
from typing import Any, Callable, Dict, List

from .config import Settings, load_settings
from .errors import UnsupportedAlgorithmError
from .interfaces import EncryptionAlgorithm

_ENGINES: Dict[str, Any] = {}


def register(name: str) -> Callable[[Any], Any]:
    def _inner(cls: Any) -> Any:
        _ENGINES[name] = cls
        return cls
    return _inner


class AlgorithmRegistry:
    def __init__(self, settings: Settings = None, rng: Any = None) -> None:
        self._settings = settings
        self._rng = rng
        self._instances: Dict[str, EncryptionAlgorithm] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    def list_algorithms(self) -> List[str]:
        return list(_ENGINES)

    def _canonical(self, name: str) -> str:
        wanted = str(name).upper()
        for registered in _ENGINES:
            if registered.upper() == wanted:
                return registered
        raise UnsupportedAlgorithmError(
            f"Unsupported algorithm: {name!r} (available: {', '.join(_ENGINES)})"
        )

    def get_algorithm(self, name: str) -> EncryptionAlgorithm:
        key = self._canonical(name)
        with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                if self._rng is None:
                    self._rng = self.settings.random_source()
                instance = _ENGINES[key].from_settings(self.settings, self._rng)
                self._instances[key] = instance
            return instance


registry = AlgorithmRegistry()
