"""Registry metadata schema - Thunderstore package models.

Read-only transport objects produced by the registry client. Only the fields
the installer needs are required; everything else defaults so partial
payloads (and test fixtures) validate.
"""

from datetime import datetime

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .ident import VersionIdent


class PackageVersion(BaseModel):
    """One published version of a package."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    ident: VersionIdent = Field(alias="full_name")
    download_url: str
    dependencies: list[VersionIdent] = Field(default_factory=list)

    description: str = ""
    icon: str = ""
    version_number: str = ""
    downloads: int = 0
    website_url: str = ""
    is_active: bool = True
    date_created: datetime | None = None


class CommunityListing(BaseModel):
    """A community (game) the package is listed under."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    community: str
    has_nsfw_content: bool = False


class Package(BaseModel):
    """Package metadata as returned by the registry's latest-version endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    latest: PackageVersion
    community_listings: list[CommunityListing] = Field(default_factory=list)

    @property
    def supported_targets(self) -> set[str]:
        """Slugs of every game the package is listed for."""
        return {listing.community for listing in self.community_listings}

    def supports_target(self, slug: str) -> bool:
        """Check whether the package is listed for the game with ``slug``."""
        return slug in self.supported_targets
