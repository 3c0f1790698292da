"""
Adapter cache (pooling).

Avoids creating redundant GCP SDK clients when the same service + config
combination is requested multiple times via the universal factory.
"""

from __future__ import annotations

import hashlib
import json
import threading
from typing import Any, Callable


class ClientCache:
    """Thread-safe, in-process cache for adapters keyed by service + config hash."""

    _instance: ClientCache | None = None
    _cache: dict[str, Any]
    _lock: threading.Lock

    def __new__(cls) -> ClientCache:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._cache = {}
            cls._instance._lock = threading.Lock()
        return cls._instance

    @staticmethod
    def _make_key(service_name: str, config: dict, options: dict) -> str:
        """Produce a deterministic cache key from service, config and options."""
        # Sort keys so dict ordering doesn't affect the hash.
        serialised = json.dumps(
            {"service": service_name, "config": config, "options": options},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(serialised.encode()).hexdigest()

    def get_or_create(
        self,
        service_name: str,
        config: dict,
        factory: Callable[[], Any],
        options: dict | None = None,
    ) -> Any:
        """Return a cached adapter or create one via *factory*.

        Args:
            service_name: Service name (e.g. 'state_fetcher').
            config: Configuration dict.
            factory: Zero-argument callable that creates a new adapter.
            options: Extra constructor options that distinguish adapters
                sharing one config (e.g. the service account email).

        Returns:
            The cached (or newly-created) adapter.
        """
        key = self._make_key(service_name, config, options or {})
        with self._lock:
            if key not in self._cache:
                self._cache[key] = factory()
            return self._cache[key]

    def clear(self) -> None:
        """Flush all cached adapters."""
        with self._lock:
            self._cache.clear()
