"""Supported games (targets) and their mod loaders.

Targets are static data bundled with the package in ``targets.json``.
"""

import json
import logging
from enum import Enum
from functools import lru_cache
from importlib import resources

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic.alias_generators import to_camel

from .ident import VersionIdent

logger = logging.getLogger(__name__)

DEFAULT_BEPINEX_PACKAGE = "BepInEx-BepInExPack-5.4.2100"


class ModLoaderKind(str, Enum):
    """Mod loader runtimes the installer knows how to lay out."""

    BEPINEX = "BepInEx"


class ModLoader(BaseModel):
    """Mod loader used by a target, with an optional per-game loader package."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    kind: ModLoaderKind = Field(alias="name")
    package_override: str | None = None

    def loader_package(self) -> VersionIdent:
        """Registry identifier of the loader package.

        The target's override always wins over the loader's default package.
        """
        if self.kind is ModLoaderKind.BEPINEX:
            return VersionIdent.parse(self.package_override or DEFAULT_BEPINEX_PACKAGE)
        raise ValueError(f"Unknown mod loader: {self.kind}")


class SteamPlatform(BaseModel):
    """Steam listing of a target."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    dir_name: str | None = None


class Platforms(BaseModel):
    """Storefronts a target is available on."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    steam: SteamPlatform | None = None


class Target(BaseModel):
    """A supported game."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str
    slug: str
    mod_loader: ModLoader
    platforms: Platforms = Field(default_factory=Platforms)


@lru_cache(maxsize=1)
def all_targets() -> tuple[Target, ...]:
    """Load every bundled target."""
    raw = resources.files(__package__).joinpath("targets.json").read_text(encoding="utf-8")
    targets = tuple(Target.model_validate(item) for item in json.loads(raw))
    logger.debug(f"Loaded {len(targets)} targets")
    return targets


def from_slug(slug: str) -> Target | None:
    """Find the target matching ``slug``.

    Returns:
        Target or None if the slug is unknown
    """
    for target in all_targets():
        if target.slug == slug:
            return target
    return None
