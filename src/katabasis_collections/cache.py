"""Content-addressed package cache.

Each extracted package lives at ``cache_root/<namespace-name-version>/``
(``cache_root/<namespace-name>/`` for an identifier without a version).
Published versions never change, so entries are never invalidated; they are
only removed explicitly. Extraction happens in a staging directory that is
renamed into place, so readers never observe a partially extracted package.
"""

import asyncio
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from .exceptions import PluginIOError
from .ident import VersionIdent

logger = logging.getLogger(__name__)

_STAGING_PREFIX = ".staging-"


class PackageCache:
    """On-disk cache of extracted packages (with injected root path)."""

    def __init__(self, root: Path):
        """Initialize cache with app-provided root directory.

        Args:
            root: Cache directory (app determines location, created on demand)
        """
        self.root = root

    def cache_path(self, ident: VersionIdent) -> Path:
        """Directory holding the extracted package for ``ident``."""
        return self.root / ident.as_str()

    def is_cached(self, ident: VersionIdent) -> bool:
        return self.cache_path(ident).exists()

    def _make_staging(self, ident: VersionIdent) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{_STAGING_PREFIX}{ident.as_str()}-", dir=self.root))

    def _publish(self, ident: VersionIdent, staging: Path) -> None:
        final = self.cache_path(ident)
        if final.exists():
            logger.debug(f"{ident} was cached by another writer, discarding staged copy")
            return

        try:
            staging.rename(final)
        except OSError:
            # Lost the race between the existence check and the rename
            if not final.exists():
                raise
            logger.debug(f"{ident} was cached by another writer, discarding staged copy")
            return
        logger.debug(f"Cached {ident} at {final}")

    @asynccontextmanager
    async def stage(self, ident: VersionIdent) -> AsyncIterator[Path]:
        """Yield a staging directory that is published as the cache entry on success.

        If another writer published the same identifier first, the staged copy
        is discarded (both hold the same bytes). On error nothing is published.

        Raises:
            PluginIOError: If the staging directory cannot be created or published

        Example:
            >>> async with cache.stage(ident) as staging:
            ...     await handler.extract(data, staging, plugin_name)
            >>> cache.is_cached(ident)
            True
        """
        try:
            staging = await asyncio.to_thread(self._make_staging, ident)
        except OSError as e:
            raise PluginIOError(
                f"Failed to create staging directory for {ident}: {e}",
                context={"ident": str(ident), "cache_root": str(self.root)},
            ) from e

        try:
            yield staging

            try:
                await asyncio.to_thread(self._publish, ident, staging)
            except OSError as e:
                raise PluginIOError(
                    f"Failed to publish {ident} to the cache: {e}",
                    context={"ident": str(ident), "cache_path": str(self.cache_path(ident))},
                ) from e
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, ignore_errors=True)

    def remove(self, ident: VersionIdent) -> bool:
        """Remove one cache entry.

        Returns:
            True if an entry was removed
        """
        path = self.cache_path(ident)
        if not path.exists():
            return False
        shutil.rmtree(path)
        logger.info(f"Removed {ident} from cache")
        return True

    def clear(self) -> None:
        """Remove every cache entry."""
        if self.root.exists():
            shutil.rmtree(self.root)
            logger.info(f"Cleared package cache at {self.root}")

    def list_entries(self) -> list[VersionIdent]:
        """List cached identifiers (staging directories and foreign entries are ignored)."""
        if not self.root.exists():
            return []

        entries = []
        for path in sorted(self.root.iterdir()):
            if not path.is_dir() or path.name.startswith("."):
                continue
            try:
                entries.append(VersionIdent.parse(path.name))
            except ValueError:
                logger.debug(f"Ignoring non-package cache directory: {path.name}")
        return entries
