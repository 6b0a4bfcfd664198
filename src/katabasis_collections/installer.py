"""Plugin installation orchestration.

Ties the pieces together:

    install_with_deps
      -> registry.fetch_latest + target check
      -> DependencyResolver.resolve (dependency-first closure)
      -> install_plugins
           -> cache hit:  handler.install(cache dir -> collection dir)
           -> cache miss: registry download -> handler.extract(staged cache dir)
                          -> retry handler.install once

Collections are only mutated and persisted after all file operations
succeeded. A failing batch is not rolled back: plugins installed earlier in
the batch stay on disk, so disk state can run ahead of the stored record
until the batch is re-run.
"""

import asyncio
import logging
import shutil

from .collection import Collection
from .collection import Plugin
from .context import AppContext
from .exceptions import CacheInvariantError
from .exceptions import CollectionNotFoundError
from .exceptions import KatabasisError
from .exceptions import PluginIOError
from .exceptions import UnsupportedTargetError
from .handlers import PluginHandler
from .handlers import handler_for
from .ident import VersionIdent
from .registry import parse_share_url
from .resolver import DependencyResolver
from .targets import from_slug

logger = logging.getLogger(__name__)


async def _try_install_plugin(
    ctx: AppContext,
    handler: PluginHandler,
    plugin: Plugin,
    collection: Collection,
) -> bool:
    """Install from cache.

    Returns:
        False if the package is not cached, True once installed
    """
    cache_dir = ctx.cache.cache_path(plugin.ident)
    if not cache_dir.exists():
        return False

    await handler.install(cache_dir, plugin.full_name, ctx.collection_dir(collection.name))
    logger.debug(f"Installed {plugin.ident} into {collection.name} from cache")
    return True


async def _download_to_cache(ctx: AppContext, handler: PluginHandler, plugin: Plugin) -> None:
    """Download a package and extract it into the cache (atomically published)."""
    version = await ctx.registry.fetch_version(plugin.ident)
    archive = await ctx.registry.download_bytes(version.download_url)

    async with ctx.cache.stage(plugin.ident) as staging:
        await handler.extract(archive, staging, plugin.full_name)

    logger.debug(f"Cached {plugin.ident} ({len(archive)} bytes downloaded)")


async def install_plugins(ctx: AppContext, collection: Collection, plugins: list[Plugin]) -> None:
    """
    Install plugins into a collection's directory, in order.

    Does not check for duplicates and does not modify ``collection``.

    Args:
        ctx: Application context
        collection: Collection to install into
        plugins: Plugins in install order (dependencies first)

    Raises:
        CacheInvariantError: If a freshly extracted package is still not cached
        KatabasisError: On any registry, archive or filesystem failure (batch aborted, no rollback)
    """
    for plugin in plugins:
        handler = handler_for(collection.game, plugin.ident)

        if await _try_install_plugin(ctx, handler, plugin, collection):
            continue

        logger.info(f"{plugin.ident} not cached, downloading")
        await _download_to_cache(ctx, handler, plugin)

        if not await _try_install_plugin(ctx, handler, plugin, collection):
            raise CacheInvariantError(
                f"{plugin.ident} was extracted but its cache directory is missing",
                context={"ident": str(plugin.ident), "cache_path": str(ctx.cache.cache_path(plugin.ident))},
            )

    logger.info(f"Installed {len(plugins)} plugins into {collection.name}")


async def install_with_deps(ctx: AppContext, collection: Collection, plugin_url: str) -> list[Plugin]:
    """
    Install the latest version of a package and its dependency closure.

    Process:
    1. Parse the share URL into a package identifier
    2. Fetch the package and ensure it supports the collection's game
    3. Resolve dependencies, skipping identifiers already in the collection
    4. Install the new plugins (dependencies first)
    5. Append them to the collection and persist it

    Args:
        ctx: Application context
        collection: Collection to install into (mutated on success)
        plugin_url: Thunderstore package page URL

    Returns:
        The newly installed plugins, in install order

    Raises:
        IdentParseError: If the URL is not a package URL
        UnsupportedTargetError: If the package is not listed for the collection's game
        KatabasisError: On resolution or installation failure (collection not persisted)

    Example:
        >>> await install_with_deps(ctx, collection, "https://thunderstore.io/c/valheim/p/ValheimModding/Jotunn/")
    """
    ident = parse_share_url(plugin_url)

    async with ctx.collection_lock(collection.name):
        package = await ctx.registry.fetch_latest(ident)

        slug = collection.game.slug
        if not package.supports_target(slug):
            raise UnsupportedTargetError(
                f"{ident} does not support {collection.game.name} ('{slug}'), "
                f"supported targets: {sorted(package.supported_targets)}",
                context={"package": str(ident), "target": slug},
            )

        resolver = DependencyResolver(ctx.registry)
        closure = await resolver.resolve(package.latest.ident, installed=collection.installed_idents())
        plugins = [Plugin(ident=version) for version in closure]

        await install_plugins(ctx, collection, plugins)

        collection.plugins.extend(plugins)
        await asyncio.to_thread(ctx.store.save, collection)

    logger.info(f"Installed {package.latest.ident} into {collection.name} ({len(plugins)} new packages)")
    return plugins


def _require_plugin(collection: Collection, ident: VersionIdent) -> Plugin:
    plugin = collection.find_plugin(ident)
    if plugin is None:
        raise KatabasisError(
            f"{ident} is not installed in collection '{collection.name}'",
            context={"collection": collection.name, "ident": str(ident)},
        )
    return plugin


async def uninstall_plugin(ctx: AppContext, collection: Collection, ident: VersionIdent) -> None:
    """
    Remove a plugin's files from a collection and drop it from the record.

    Files in shared (pass-through) folders such as configs are left behind.

    Raises:
        KatabasisError: If the plugin is not in the collection or removal failed
    """
    async with ctx.collection_lock(collection.name):
        plugin = _require_plugin(collection, ident)
        handler = handler_for(collection.game, ident)

        logger.info(f"Uninstalling {ident} from {collection.name}")
        await handler.uninstall(plugin, ctx.collection_dir(collection.name))

        collection.plugins.remove(plugin)
        await asyncio.to_thread(ctx.store.save, collection)


async def switch_plugin(ctx: AppContext, collection: Collection, ident: VersionIdent, enabled: bool) -> None:
    """
    Enable or disable a plugin without deleting its files.

    Raises:
        KatabasisError: If the plugin is not in the collection or renaming failed
    """
    async with ctx.collection_lock(collection.name):
        plugin = _require_plugin(collection, ident)
        if plugin.enabled == enabled:
            logger.debug(f"{ident} already {'enabled' if enabled else 'disabled'}")
            return

        handler = handler_for(collection.game, ident)
        await handler.switch(enabled, plugin, ctx.collection_dir(collection.name))

        plugin.enabled = enabled
        await asyncio.to_thread(ctx.store.save, collection)
        logger.info(f"{'Enabled' if enabled else 'Disabled'} {ident} in {collection.name}")


async def create_collection(
    ctx: AppContext,
    name: str,
    slug: str,
    install_loader: bool = True,
) -> Collection:
    """
    Create a collection for a game, optionally installing its mod loader.

    Args:
        ctx: Application context
        name: Unique collection name
        slug: Target slug (e.g. "valheim")
        install_loader: Install the target's loader package into the new collection

    Returns:
        The persisted collection

    Raises:
        UnsupportedTargetError: If the slug is unknown
        KatabasisError: If a collection with that name exists or the loader install failed
    """
    target = from_slug(slug)
    if target is None:
        raise UnsupportedTargetError(f"Unknown target '{slug}'", context={"slug": slug})

    try:
        ctx.store.load(name)
    except CollectionNotFoundError:
        pass
    else:
        raise KatabasisError(f"Collection '{name}' already exists", context={"collection": name})

    collection = Collection(name=name, game=target)
    collection_dir = ctx.collection_dir(name)

    async with ctx.collection_lock(name):
        logger.info(f"Creating collection {name} for {target.name} at {collection_dir}")
        try:
            await asyncio.to_thread(collection_dir.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise PluginIOError(
                f"Failed to create collection directory {collection_dir}: {e}",
                context={"collection_dir": str(collection_dir)},
            ) from e

        if install_loader:
            loader = Plugin(ident=target.mod_loader.loader_package())
            await install_plugins(ctx, collection, [loader])
            collection.plugins.append(loader)

        await asyncio.to_thread(ctx.store.save, collection)

    return collection


async def remove_collection(ctx: AppContext, collection: Collection) -> None:
    """
    Delete a collection's directory and its stored record.

    The shared package cache is left untouched.
    """
    collection_dir = ctx.collection_dir(collection.name)

    async with ctx.collection_lock(collection.name):
        logger.info(f"Removing collection {collection.name}")
        if collection_dir.exists():
            try:
                await asyncio.to_thread(shutil.rmtree, collection_dir)
            except OSError as e:
                raise KatabasisError(
                    f"Failed to remove collection '{collection.name}': {e}",
                    context={"collection_dir": str(collection_dir)},
                ) from e

        await asyncio.to_thread(ctx.store.remove, collection)
