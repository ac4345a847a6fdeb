"""Per-run cache of storage backends, keyed by origin."""

import logging
import threading
from typing import Callable, Dict

from .domain import ArchiveLocator, Origin, StorageBackend

BackendFactory = Callable[[Origin], StorageBackend]


class BackendCache:
    """
    Shares one StorageBackend between all locators of the same origin.

    Lookup and construction happen under a lock, so a backend is built at
    most once per origin even when tasks race on first use.
    """

    def __init__(self, factory: BackendFactory):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.factory = factory
        self._backends: Dict[Origin, StorageBackend] = {}
        self._lock = threading.Lock()

    def resolve(self, locator: ArchiveLocator) -> StorageBackend:
        """Returns the backend for the locator's origin, creating it once."""
        origin = locator.origin
        with self._lock:
            backend = self._backends.get(origin)
            if backend is None:
                self.logger.debug(f"Creating backend for {origin.endpoint}")
                backend = self.factory(origin)
                self._backends[origin] = backend
        return backend

    def __len__(self) -> int:
        return len(self._backends)

    async def aclose(self):
        """Closes every backend created by this cache."""
        with self._lock:
            backends = list(self._backends.values())
            self._backends.clear()
        for backend in backends:
            await backend.aclose()
