"""Collection and plugin records."""

from datetime import UTC
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_serializer
from pydantic import field_validator

from .exceptions import UnsupportedTargetError
from .ident import VersionIdent
from .targets import Target
from .targets import from_slug

_INVALID_NAME_CHARS = "/\\?*:'\"|<>!"


def sanitise_name(name: str) -> str:
    """Replace characters that are invalid in file names with underscores."""
    return "".join("_" if char in _INVALID_NAME_CHARS else char for char in name)


class Plugin(BaseModel):
    """One installed plugin."""

    ident: VersionIdent
    enabled: bool = True
    install_time: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def full_name(self) -> str:
        """Package name without version, used to namespace plugin folders."""
        return self.ident.package.as_str()


class Collection(BaseModel):
    """A named, isolated set of plugins for one game.

    ``name`` is the primary key. ``game`` is persisted as the target slug.
    """

    name: str
    game: Target
    plugins: list[Plugin] = Field(default_factory=list)

    @field_validator("game", mode="before")
    @classmethod
    def _target_from_slug(cls, value: Any) -> Any:
        if isinstance(value, str):
            target = from_slug(value)
            if target is None:
                raise UnsupportedTargetError(f"Unknown target '{value}'", context={"slug": value})
            return target
        return value

    @field_serializer("game")
    def _target_to_slug(self, game: Target) -> str:
        return game.slug

    def installed_idents(self) -> set[VersionIdent]:
        """Identifiers of every plugin in the collection."""
        return {plugin.ident for plugin in self.plugins}

    def find_plugin(self, ident: VersionIdent) -> Plugin | None:
        """Find the plugin installed under ``ident``."""
        for plugin in self.plugins:
            if plugin.ident == ident:
                return plugin
        return None
