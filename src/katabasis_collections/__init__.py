"""katabasis-collections - Thunderstore plugin collection management.

Public API for building collections of BepInEx plugins: identifier parsing,
dependency resolution, a shared package cache, and directory-mapped installs.

Library mechanism only: applications inject policy (paths, registry, store)
through AppContext.
"""

from .cache import PackageCache
from .collection import Collection
from .collection import Plugin
from .config import Settings
from .config import setup_logging
from .context import AppContext
from .discovery import CollectionResources
from .discovery import discover_collection_resources
from .discovery import find_loader_entrypoint
from .discovery import link_root_files
from .discovery import list_plugin_folders
from .exceptions import ArchiveError
from .exceptions import CacheInvariantError
from .exceptions import CollectionNotFoundError
from .exceptions import DependencyCycleError
from .exceptions import IdentParseError
from .exceptions import KatabasisError
from .exceptions import PluginIOError
from .exceptions import RegistryError
from .exceptions import UnsupportedTargetError
from .export import ExportCollection
from .export import default_export_path
from .export import import_collection
from .handlers import DirectoryMap
from .handlers import LoaderInstaller
from .handlers import MappedInstaller
from .handlers import handler_for
from .ident import PackageIdent
from .ident import VersionIdent
from .installer import create_collection
from .installer import install_plugins
from .installer import install_with_deps
from .installer import remove_collection
from .installer import switch_plugin
from .installer import uninstall_plugin
from .protocols import CollectionStoreProtocol
from .protocols import RegistryClientProtocol
from .registry import ThunderstoreClient
from .registry import parse_share_url
from .resolver import DependencyResolver
from .schema import Package
from .schema import PackageVersion
from .store import JsonCollectionStore
from .targets import Target
from .targets import all_targets
from .targets import from_slug

__all__ = [
    # Identifiers
    "PackageIdent",
    "VersionIdent",
    # Registry
    "Package",
    "PackageVersion",
    "ThunderstoreClient",
    "RegistryClientProtocol",
    "parse_share_url",
    # Targets
    "Target",
    "all_targets",
    "from_slug",
    # Resolution
    "DependencyResolver",
    # Cache
    "PackageCache",
    # Installation
    "DirectoryMap",
    "LoaderInstaller",
    "MappedInstaller",
    "handler_for",
    "install_plugins",
    "install_with_deps",
    "uninstall_plugin",
    "switch_plugin",
    # Collections
    "AppContext",
    "Collection",
    "Plugin",
    "create_collection",
    "remove_collection",
    "CollectionStoreProtocol",
    "JsonCollectionStore",
    # Discovery
    "CollectionResources",
    "discover_collection_resources",
    "find_loader_entrypoint",
    "link_root_files",
    "list_plugin_folders",
    # Export
    "ExportCollection",
    "default_export_path",
    "import_collection",
    # Configuration
    "Settings",
    "setup_logging",
    # Exceptions
    "KatabasisError",
    "IdentParseError",
    "UnsupportedTargetError",
    "RegistryError",
    "ArchiveError",
    "PluginIOError",
    "CacheInvariantError",
    "DependencyCycleError",
    "CollectionNotFoundError",
]

__version__ = "0.1.0"
