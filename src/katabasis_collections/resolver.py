"""Dependency resolver - expand a package version into its install closure.

The registry pins every dependency to an exact version, so resolution is a
graph walk rather than constraint solving. The result is dependency-first:
installing it in order guarantees a plugin's prerequisites are present
before the plugin itself.

Ordering contract:
- the walk is a post-order DFS (a dependency's dependencies, then the
  dependency, ..., then the root);
- duplicates of the same identifier collapse onto their first post-order
  position (the list is reversed, the last occurrence kept, then reversed
  back);
- when one package is pinned at different versions, the pin closest to the
  root wins, ties going to the earliest pin in the traversal. This is a
  property of traversal order, not "newest version wins".
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .exceptions import DependencyCycleError
from .ident import PackageIdent
from .ident import VersionIdent
from .protocols import RegistryClientProtocol
from .schema import PackageVersion

logger = logging.getLogger(__name__)


@dataclass
class _Visit:
    ident: VersionIdent
    depth: int
    order: int


class DependencyResolver:
    """Resolve dependency closures against an injected registry client."""

    def __init__(self, registry: RegistryClientProtocol):
        """Initialize resolver with app-provided registry client.

        Args:
            registry: Client used to fetch version metadata for every graph node
        """
        self.registry = registry
        self._metadata: dict[VersionIdent, PackageVersion] = {}

    async def _fetch(self, ident: VersionIdent) -> PackageVersion:
        version = self._metadata.get(ident)
        if version is None:
            version = await self.registry.fetch_version(ident)
            self._metadata[ident] = version
        return version

    async def _walk(
        self,
        ident: VersionIdent,
        depth: int,
        stack: list[VersionIdent],
        visits: list[_Visit],
    ) -> None:
        if ident in stack:
            cycle = " -> ".join(str(node) for node in [*stack[stack.index(ident) :], ident])
            raise DependencyCycleError(
                f"Dependency cycle detected: {cycle}",
                context={"cycle": [str(node) for node in stack[stack.index(ident) :]]},
            )

        stack.append(ident)
        version = await self._fetch(ident)
        for dependency in version.dependencies:
            await self._walk(dependency, depth + 1, stack, visits)
        stack.pop()

        # Versionless identifiers are pinned to the version the registry returned
        resolved = version.ident if ident.version is None else ident
        visits.append(_Visit(ident=resolved, depth=depth, order=len(visits)))

    async def resolve(
        self,
        root: VersionIdent,
        installed: Iterable[VersionIdent] = (),
    ) -> list[VersionIdent]:
        """
        Resolve the dependency-first install closure of ``root``.

        Args:
            root: Version to install
            installed: Identifiers already present in the target collection (excluded from result)

        Returns:
            Identifiers in install order, root last (unless already installed)

        Raises:
            RegistryError: If metadata for any node cannot be fetched (nothing is returned)
            DependencyCycleError: If the graph contains a cycle

        Example:
            >>> resolver = DependencyResolver(registry)
            >>> await resolver.resolve(VersionIdent.parse("ValheimModding-Jotunn-2.25.0"))
            [VersionIdent('denikson-BepInExPack_Valheim-5.4.2202'), VersionIdent('ValheimModding-Jotunn-2.25.0')]
        """
        visits: list[_Visit] = []
        await self._walk(root, 0, [], visits)

        # Collapse duplicates: reversed walk, keep last occurrence, reverse back
        seen: dict[VersionIdent, _Visit] = {}
        for visit in reversed(visits):
            seen.pop(visit.ident, None)
            seen[visit.ident] = visit
        unique = [visit.ident for visit in reversed(seen.values())]

        # Closest pin to the root wins between differing versions of one package
        closest: dict[VersionIdent, tuple[int, int]] = {}
        for visit in visits:
            rank = (visit.depth, visit.order)
            closest[visit.ident] = min(closest.get(visit.ident, rank), rank)

        winners: dict[PackageIdent, VersionIdent] = {}
        for ident in sorted(unique, key=lambda i: closest[i]):
            winner = winners.setdefault(ident.package, ident)
            if winner != ident:
                logger.warning(f"Conflicting pins for {ident.package}: using {winner}, ignoring {ident}")

        installed_set = set(installed)
        closure = [
            ident for ident in unique if winners[ident.package] == ident and ident not in installed_set
        ]

        logger.debug(f"Resolved {root} to {len(closure)} packages: {[str(i) for i in closure]}")
        return closure
