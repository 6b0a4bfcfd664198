"""Collection and plugin installation exceptions.

Every error carries a human-readable message plus an optional context dict
(paths, identifiers) so callers can report what failed and where.
"""


class KatabasisError(Exception):
    """Base exception for collection operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (file paths, identifiers, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class IdentParseError(KatabasisError, ValueError):
    """Malformed package or version identifier."""


class UnsupportedTargetError(KatabasisError):
    """Package does not list the collection's game as a supported target."""


class RegistryError(KatabasisError):
    """Registry request failed (network, HTTP status or malformed response)."""


class ArchiveError(KatabasisError):
    """Package archive is corrupt, unreadable or contains unsafe paths."""


class PluginIOError(KatabasisError):
    """Filesystem failure while extracting, installing, uninstalling or switching a plugin."""


class CacheInvariantError(KatabasisError):
    """Extraction finished but the expected cache directory is still missing."""


class DependencyCycleError(KatabasisError):
    """Registry returned a dependency graph containing a cycle."""


class CollectionNotFoundError(KatabasisError):
    """Collection not found in the store."""
