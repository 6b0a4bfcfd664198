"""Configuration management.

Precedence: env vars (``KATABASIS_*``) > .env file > defaults.
"""

import logging
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from .registry import DEFAULT_REGISTRY_URL


class Settings(BaseSettings):
    """Library configuration. Precedence: env vars > .env > defaults."""

    app_dir: Path = Field(
        default_factory=lambda: Path.home() / ".katabasis",
        description="Root directory for collections, cache and the collection store",
    )

    # Registry
    registry_url: str = Field(default=DEFAULT_REGISTRY_URL, description="Thunderstore base URL")
    retry_attempts: int = Field(default=5, ge=1, description="Attempts per registry request")
    request_timeout: float = Field(default=30.0, gt=0, description="Registry request timeout in seconds")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    model_config = SettingsConfigDict(
        env_prefix="KATABASIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def collections_dir(self) -> Path:
        return self.app_dir / "collections"

    @property
    def cache_dir(self) -> Path:
        """Package cache, shared across all collections."""
        return self.app_dir / "cache" / "plugins"

    @property
    def store_path(self) -> Path:
        return self.app_dir / "collections.json"

    @property
    def exports_dir(self) -> Path:
        return self.app_dir / "exports"


def setup_logging(settings: Settings) -> None:
    """Configure root logging from settings (for applications, not library code)."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )
