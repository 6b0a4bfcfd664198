"""Collection resource discovery - inspect an installed BepInEx collection.

Convention over configuration: resources are found by the loader's directory
layout, not by consulting the stored record.

Convention:
- top-level files (``winhttp.dll``, ``doorstop_config.ini``) -> root files
- ``BepInEx/core/`` -> loader core files
- ``BepInEx/plugins/<package>/`` -> per-package plugin folders
- ``BepInEx/config/`` -> config files (recursive)
- any file ending in ``.DISABLED`` -> disabled files
"""

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import KatabasisError
from .utils import DISABLED_SUFFIX
from .utils import iter_files

logger = logging.getLogger(__name__)

# Preloader entry points, checked in order
LOADER_ENTRYPOINTS = (
    "BepInEx.Unity.Mono.Preloader.dll",
    "BepInEx.Unity.IL2CPP.dll",
    "BepInEx.Preloader.dll",
    "BepInEx.IL2CPP.dll",
)


class CollectionResources(BaseModel):
    """Discovered resources in a collection (immutable data structure)."""

    model_config = ConfigDict(frozen=True)

    root_files: list[Path] = Field(default_factory=list)
    core_files: list[Path] = Field(default_factory=list)
    plugin_dirs: list[Path] = Field(default_factory=list)
    config_files: list[Path] = Field(default_factory=list)
    disabled_files: list[Path] = Field(default_factory=list)

    def has_loader(self) -> bool:
        return bool(self.core_files)


def discover_collection_resources(collection_dir: Path) -> CollectionResources:
    """
    Discover resources in an installed collection.

    Args:
        collection_dir: Path to the collection directory

    Returns:
        CollectionResources with discovered items (empty if the directory is missing)
    """
    if not collection_dir.is_dir():
        return CollectionResources()

    root_files = sorted(f for f in collection_dir.iterdir() if f.is_file())

    core_dir = collection_dir / "BepInEx" / "core"
    core_files = sorted(f for f in core_dir.iterdir() if f.is_file()) if core_dir.is_dir() else []

    plugins_dir = collection_dir / "BepInEx" / "plugins"
    plugin_dirs = sorted(d for d in plugins_dir.iterdir() if d.is_dir()) if plugins_dir.is_dir() else []

    config_dir = collection_dir / "BepInEx" / "config"
    config_files = list(iter_files(config_dir)) if config_dir.is_dir() else []

    disabled_files = [f for f in iter_files(collection_dir) if f.name.endswith(DISABLED_SUFFIX)]

    return CollectionResources(
        root_files=root_files,
        core_files=core_files,
        plugin_dirs=plugin_dirs,
        config_files=config_files,
        disabled_files=disabled_files,
    )


def list_plugin_folders(collection_dir: Path) -> list[str]:
    """
    List per-package plugin folder names (helper).

    Example:
        >>> list_plugin_folders(Path("~/.katabasis/collections/test"))
        ['ValheimModding-Jotunn']
    """
    resources = discover_collection_resources(collection_dir)
    return [d.name for d in resources.plugin_dirs]


def find_loader_entrypoint(collection_dir: Path) -> Path:
    """
    Locate the loader's preloader DLL inside a collection.

    Raises:
        KatabasisError: If no known entry point exists in ``BepInEx/core``
    """
    core_dir = collection_dir / "BepInEx" / "core"
    for name in LOADER_ENTRYPOINTS:
        candidate = core_dir / name
        if candidate.is_file():
            return candidate

    raise KatabasisError(
        f"Failed to find loader entry point in {core_dir}",
        context={"core_dir": str(core_dir), "expected": list(LOADER_ENTRYPOINTS)},
    )


def link_root_files(collection_dir: Path, game_dir: Path) -> list[Path]:
    """
    Copy the collection's top-level files into the game directory.

    These are the files the loader needs next to the game executable
    (e.g. ``winhttp.dll`` for BepInEx). Existing files are replaced.

    Returns:
        Paths written inside ``game_dir``
    """
    if not game_dir.is_dir():
        raise KatabasisError(f"Game directory does not exist: {game_dir}", context={"game_dir": str(game_dir)})

    written = []
    for file in discover_collection_resources(collection_dir).root_files:
        target = game_dir / file.name
        logger.info(f"Linking file {file.name} to game dir")
        shutil.copy2(file, target)
        written.append(target)

    return written
