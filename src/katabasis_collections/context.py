"""Application context - explicit handle on paths and collaborators.

Constructed once at startup and passed into every install operation; there
is no process-wide global state.
"""

import asyncio
import logging
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from .cache import PackageCache
from .collection import sanitise_name
from .config import Settings
from .protocols import CollectionStoreProtocol
from .protocols import RegistryClientProtocol
from .registry import ThunderstoreClient
from .store import JsonCollectionStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Paths and collaborators used by the installer."""

    collections_dir: Path
    cache: PackageCache
    registry: RegistryClientProtocol
    store: CollectionStoreProtocol
    exports_dir: Path | None = None
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        registry: RegistryClientProtocol | None = None,
        store: CollectionStoreProtocol | None = None,
    ) -> "AppContext":
        """Build a context with default collaborators for anything not injected.

        Example:
            >>> ctx = AppContext.from_settings(Settings(app_dir=Path("/tmp/katabasis")))
        """
        settings = settings or Settings()
        settings.app_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Using app directory {settings.app_dir}")

        return cls(
            collections_dir=settings.collections_dir,
            cache=PackageCache(settings.cache_dir),
            registry=registry
            or ThunderstoreClient(
                base_url=settings.registry_url,
                retry_attempts=settings.retry_attempts,
                timeout=settings.request_timeout,
            ),
            store=store or JsonCollectionStore(settings.store_path),
            exports_dir=settings.exports_dir,
        )

    def collection_dir(self, name: str) -> Path:
        """Directory of a collection (name sanitised for the filesystem)."""
        return self.collections_dir / sanitise_name(name)

    def collection_lock(self, name: str) -> asyncio.Lock:
        """Lock serialising mutations of one collection."""
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock
