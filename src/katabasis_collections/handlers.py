"""Plugin handlers - how package files are laid out inside a collection.

Two handler variants share the same four operations:

- LoaderInstaller: the mod loader package itself. Its archive wraps
  everything in one top-level folder which is stripped, so the loader lands at
  the collection root (``BepInEx/core/...``, ``doorstop_config.ini``, ...).
- MappedInstaller: regular plugins. A declarative list of DirectoryMap
  entries routes archive folders (``plugins``, ``config``, ...) to
  destinations inside the collection, optionally namespaced per package.

Operations:
- extract: archive bytes -> cache directory (remapped layout)
- install: cache directory -> collection directory (copy or hard-link)
- uninstall: remove the plugin's files from the collection
- switch: enable/disable the plugin's files via the ``.DISABLED`` suffix
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from dataclasses import replace
from enum import Enum
from pathlib import Path
from pathlib import PurePosixPath

from .collection import Plugin
from .exceptions import KatabasisError
from .exceptions import PluginIOError
from .ident import VersionIdent
from .targets import ModLoaderKind
from .targets import Target
from .utils import CopyFileOpts
from .utils import copy_dir_contents_to
from .utils import extract_archive
from .utils import iter_files
from .utils import switch_file

logger = logging.getLogger(__name__)


class MapMode(Enum):
    """How files routed through a DirectoryMap are placed."""

    # Namespaced into <destination>/<package full name>/
    FLATTENED = "flattened"
    # Placed directly at <destination>/, shared between packages
    PASS_THROUGH = "pass_through"


@dataclass(frozen=True)
class DirectoryMap:
    """Routes an archive folder name to a destination inside the collection."""

    matched_dir_name: str
    destination_subpath: str
    mode: MapMode
    files_mutable: bool = False

    @classmethod
    def flattened(cls, matched_dir_name: str, destination_subpath: str) -> "DirectoryMap":
        return cls(matched_dir_name, destination_subpath, MapMode.FLATTENED)

    @classmethod
    def passthrough(cls, matched_dir_name: str, destination_subpath: str) -> "DirectoryMap":
        return cls(matched_dir_name, destination_subpath, MapMode.PASS_THROUGH)

    def with_mutable_files(self) -> "DirectoryMap":
        """Mark files as user-editable: copied, never overwritten on reinstall."""
        return replace(self, files_mutable=True)

    def matches(self, name: str) -> bool:
        return self.matched_dir_name.lower() == name.lower()


BEPINEX_CORE_DIR = PurePosixPath("BepInEx", "core")

# Index 0 is the default map for paths that match no folder.
BEPINEX_DIRECTORY_MAPS: tuple[DirectoryMap, ...] = (
    DirectoryMap.flattened("plugins", "BepInEx/plugins"),
    DirectoryMap.flattened("patchers", "BepInEx/patchers"),
    DirectoryMap.flattened("monomod", "BepInEx/monomod"),
    DirectoryMap.flattened("core", "BepInEx/core"),
    DirectoryMap.passthrough("config", "BepInEx/config").with_mutable_files(),
)


def _wrap_os_error(action: str, plugin_name: str, error: OSError) -> PluginIOError:
    return PluginIOError(
        f"Failed to {action} {plugin_name}: {error}",
        context={"plugin": plugin_name, "path": getattr(error, "filename", None)},
    )


class LoaderInstaller:
    """Handler for the mod loader package (strips the archive's top-level folder)."""

    def __init__(self, core_dir: PurePosixPath = BEPINEX_CORE_DIR):
        self.core_dir = core_dir

    @staticmethod
    def map_relative_path(rel_path: PurePosixPath) -> PurePosixPath | None:
        """Drop the single top-level folder; top-level files have no target."""
        parts = [part for part in rel_path.parts if part not in ("/", ".")]
        if len(parts) <= 1:
            return None
        return PurePosixPath(*parts[1:])

    async def extract(self, archive_bytes: bytes, target_dir: Path, plugin_name: str) -> None:
        try:
            count = await asyncio.to_thread(extract_archive, archive_bytes, target_dir, self.map_relative_path)
        except OSError as e:
            raise _wrap_os_error("extract", plugin_name, e) from e
        logger.debug(f"Extracted {count} loader files for {plugin_name}")

    async def install(self, src_dir: Path, plugin_name: str, collection_dir: Path) -> None:
        def decide(rel_path: PurePosixPath, pre_existing: bool) -> CopyFileOpts:
            # Loader configs are user-editable
            if rel_path.suffix == ".cfg":
                return CopyFileOpts(should_copy_file=True, should_overwrite_file=False)
            return CopyFileOpts(should_copy_file=False, should_overwrite_file=True)

        try:
            await asyncio.to_thread(collection_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(copy_dir_contents_to, src_dir, collection_dir, decide)
        except OSError as e:
            raise _wrap_os_error("install", plugin_name, e) from e

    def _core_files(self, collection_dir: Path) -> list[Path]:
        core = collection_dir / self.core_dir
        if not core.is_dir():
            return []
        return sorted(path for path in core.iterdir() if path.is_file())

    async def uninstall(self, plugin: Plugin, collection_dir: Path) -> None:
        try:
            for path in await asyncio.to_thread(self._core_files, collection_dir):
                await asyncio.to_thread(path.unlink)
        except OSError as e:
            raise _wrap_os_error("uninstall", plugin.full_name, e) from e

    async def switch(self, enabled: bool, plugin: Plugin, collection_dir: Path) -> None:
        try:
            for path in await asyncio.to_thread(self._core_files, collection_dir):
                await asyncio.to_thread(switch_file, path, enabled)
        except OSError as e:
            raise _wrap_os_error("switch", plugin.full_name, e) from e


class MappedInstaller:
    """Handler routing archive folders through declarative directory maps."""

    def __init__(self, dir_maps: tuple[DirectoryMap, ...], default_map: int = 0):
        if not 0 <= default_map < len(dir_maps):
            raise ValueError(f"default_map {default_map} out of range for {len(dir_maps)} maps")
        self.dir_maps = dir_maps
        self.default_map = default_map

    def match_map(self, name: str) -> DirectoryMap | None:
        for dir_map in self.dir_maps:
            if dir_map.matches(name):
                return dir_map
        return None

    def map_relative_path(self, rel_path: PurePosixPath, plugin_name: str) -> PurePosixPath:
        """Compute where an archive file lands, relative to the collection root.

        Components are walked until one names a directory map. Whatever follows
        the match is placed under the map's destination (inside a per-package
        folder for flattened maps). Paths matching no map keep their full
        relative path under the default map.
        """
        consumed: list[str] = []
        remaining: list[str] = []
        parts = rel_path.parts
        matching = self.dir_maps[self.default_map]

        for index, part in enumerate(parts):
            if part in ("/", "", "."):
                continue
            if part == "..":
                if consumed:
                    consumed.pop()
                continue

            consumed.append(part)
            found = self.match_map(part)
            if found is not None:
                matching = found
                remaining = list(parts[index + 1 :])
                break

        target = PurePosixPath(matching.destination_subpath)
        if matching.mode is MapMode.FLATTENED:
            target /= plugin_name

        if remaining:
            return target.joinpath(*remaining)
        return target.joinpath(*consumed)

    def bucket_for(self, rel_path: PurePosixPath) -> DirectoryMap:
        """Find the map whose destination contains ``rel_path``."""
        for dir_map in self.dir_maps:
            if rel_path.is_relative_to(dir_map.destination_subpath):
                return dir_map
        raise KatabasisError(
            f"No directory map owns {rel_path}, cache entry does not match this installer",
            context={"path": str(rel_path)},
        )

    async def extract(self, archive_bytes: bytes, target_dir: Path, plugin_name: str) -> None:
        def remap(rel_path: PurePosixPath) -> PurePosixPath:
            return self.map_relative_path(rel_path, plugin_name)

        try:
            count = await asyncio.to_thread(extract_archive, archive_bytes, target_dir, remap)
        except OSError as e:
            raise _wrap_os_error("extract", plugin_name, e) from e
        logger.debug(f"Extracted {count} files for {plugin_name}")

    async def install(self, src_dir: Path, plugin_name: str, collection_dir: Path) -> None:
        def decide(rel_path: PurePosixPath, pre_existing: bool) -> CopyFileOpts:
            bucket = self.bucket_for(rel_path)
            if bucket.files_mutable:
                return CopyFileOpts(should_copy_file=True, should_overwrite_file=False)
            return CopyFileOpts(should_copy_file=False, should_overwrite_file=True)

        try:
            await asyncio.to_thread(collection_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(copy_dir_contents_to, src_dir, collection_dir, decide)
        except OSError as e:
            raise _wrap_os_error("install", plugin_name, e) from e

    def _plugin_paths(self, plugin: Plugin, collection_dir: Path) -> list[Path]:
        """Per-package paths of every flattened map that exist on disk.

        Pass-through maps are skipped: their files cannot be attributed to a package.
        """
        paths = []
        for dir_map in self.dir_maps:
            if dir_map.mode is not MapMode.FLATTENED:
                continue
            path = collection_dir / dir_map.destination_subpath / plugin.full_name
            if path.exists():
                paths.append(path)
        return paths

    async def uninstall(self, plugin: Plugin, collection_dir: Path) -> None:
        def remove_all() -> None:
            for path in self._plugin_paths(plugin, collection_dir):
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                logger.debug(f"Removed {path}")

        try:
            await asyncio.to_thread(remove_all)
        except OSError as e:
            raise _wrap_os_error("uninstall", plugin.full_name, e) from e

    async def switch(self, enabled: bool, plugin: Plugin, collection_dir: Path) -> None:
        def switch_all() -> None:
            for path in self._plugin_paths(plugin, collection_dir):
                files = [path] if path.is_file() else list(iter_files(path))
                for file in files:
                    switch_file(file, enabled)

        try:
            await asyncio.to_thread(switch_all)
        except OSError as e:
            raise _wrap_os_error("switch", plugin.full_name, e) from e


PluginHandler = LoaderInstaller | MappedInstaller

_DIRECTORY_MAPS: dict[ModLoaderKind, tuple[tuple[DirectoryMap, ...], int]] = {
    ModLoaderKind.BEPINEX: (BEPINEX_DIRECTORY_MAPS, 0),
}


def is_loader_package(target: Target, ident: VersionIdent) -> bool:
    """Check whether ``ident`` is (any version of) the target's loader package."""
    return ident.package == target.mod_loader.loader_package().package


def handler_for(target: Target, ident: VersionIdent) -> PluginHandler:
    """Pick the handler for installing ``ident`` into a collection for ``target``."""
    if is_loader_package(target, ident):
        return LoaderInstaller()

    dir_maps, default_map = _DIRECTORY_MAPS[target.mod_loader.kind]
    return MappedInstaller(dir_maps, default_map)
