"""
Process-wide objects built on first use

Importing a provider module must not open the database or read YAML; the
module-level proxies below defer that until a request (or the app lifespan)
touches them.
"""

import threading
from typing import Any, Callable


class LazySingleton:
    """
    Proxy around ``factory()``, called once under a lock

        activity_store_provider = LazySingleton(ActivityStoreProvider)
        activity_store_provider.count_by_source(...)  # built here
    """

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._instance = None
        self._lock = threading.Lock()

    def ensure_initialized(self) -> Any:
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self._factory()
        return self._instance

    def __getattr__(self, name: str) -> Any:
        # only reached for names missing on the proxy itself
        return getattr(self.ensure_initialized(), name)
