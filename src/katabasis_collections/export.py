"""Collection export and import.

An export is a small JSON document listing a collection's game and the exact
plugin versions it holds, in install order:

    {"name": "test", "slug": "valheim", "plugins": ["denikson-BepInExPack_Valheim-5.4.2202", ...]}
"""

import asyncio
import logging
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .collection import Collection
from .collection import Plugin
from .context import AppContext
from .exceptions import KatabasisError
from .ident import VersionIdent
from .installer import create_collection
from .installer import install_plugins

logger = logging.getLogger(__name__)


class ExportCollection(BaseModel):
    """Portable description of a collection."""

    name: str
    slug: str
    plugins: list[VersionIdent] = Field(default_factory=list)

    @classmethod
    def from_collection(cls, collection: Collection) -> "ExportCollection":
        return cls(
            name=collection.name,
            slug=collection.game.slug,
            plugins=[plugin.ident for plugin in collection.plugins],
        )

    @classmethod
    def from_file(cls, path: Path) -> "ExportCollection":
        """
        Load an export file.

        Raises:
            KatabasisError: If the file does not exist or is not a valid export
        """
        if not path.exists():
            raise KatabasisError(
                f"Failed to import collection as file does not exist '{path}'",
                context={"path": str(path)},
            )

        try:
            return cls.model_validate_json(path.read_bytes())
        except ValidationError as e:
            raise KatabasisError(f"Invalid collection export '{path}': {e}", context={"path": str(path)}) from e

    def write(self, path: Path) -> Path:
        """Write the export as JSON, replacing any existing file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Exported collection {self.name} to {path}")
        return path


def default_export_path(ctx: AppContext, name: str) -> Path:
    """Export location for a collection under the app's exports directory."""
    if ctx.exports_dir is None:
        raise KatabasisError("No exports directory configured")
    return ctx.exports_dir / f"{ctx.collection_dir(name).name}.json"


async def import_collection(ctx: AppContext, export: ExportCollection, name: str | None = None) -> Collection:
    """
    Recreate a collection from an export.

    The exported identifiers already form a dependency-first closure (the
    loader included), so they are installed as-is without resolution.

    Args:
        ctx: Application context
        export: Export to import
        name: Name for the new collection (defaults to the exported name)

    Returns:
        The created and persisted collection
    """
    collection = await create_collection(ctx, name or export.name, export.slug, install_loader=False)

    plugins = [Plugin(ident=ident) for ident in export.plugins]
    async with ctx.collection_lock(collection.name):
        await install_plugins(ctx, collection, plugins)
        collection.plugins.extend(plugins)
        await asyncio.to_thread(ctx.store.save, collection)

    logger.info(f"Imported collection {collection.name} with {len(plugins)} plugins")
    return collection
