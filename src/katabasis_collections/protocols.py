"""Protocols for the collaborators the installer depends on.

Apps can provide any implementation (ThunderstoreClient, an offline mirror,
an in-memory fake, a database-backed store). The library only requires these
interfaces.
"""

from typing import TYPE_CHECKING
from typing import Protocol
from typing import runtime_checkable

from .ident import PackageIdent
from .ident import VersionIdent
from .schema import Package
from .schema import PackageVersion

if TYPE_CHECKING:
    from .collection import Collection


@runtime_checkable
class RegistryClientProtocol(Protocol):
    """Protocol for package registry clients.

    Implementations must surface every failure (network, HTTP status,
    malformed payload) as RegistryError.
    """

    async def fetch_latest(self, ident: PackageIdent) -> Package:
        """Fetch package metadata including its latest version."""
        ...

    async def fetch_version(self, ident: VersionIdent) -> PackageVersion:
        """Fetch metadata for one version (the latest when the identifier has no version)."""
        ...

    async def download_bytes(self, url: str) -> bytes:
        """Download a package archive."""
        ...


@runtime_checkable
class CollectionStoreProtocol(Protocol):
    """Protocol for collection persistence (keyed by collection name)."""

    def save(self, collection: "Collection") -> None: ...

    def load(self, name: str) -> "Collection":
        """Load a collection.

        Raises:
            CollectionNotFoundError: If no collection has that name
        """
        ...

    def load_all(self) -> list["Collection"]: ...

    def remove(self, collection: "Collection") -> None: ...
