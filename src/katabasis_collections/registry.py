"""Thunderstore registry client.

Implements RegistryClientProtocol over the Thunderstore experimental API with
httpx. Transient failures (transport errors, 408/429/5xx) are retried with
exponential backoff; everything that still fails surfaces as RegistryError.
"""

import asyncio
import logging
import re

import httpx
from pydantic import ValidationError

from .exceptions import IdentParseError
from .exceptions import RegistryError
from .ident import PackageIdent
from .ident import VersionIdent
from .schema import Package
from .schema import PackageVersion

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://thunderstore.io"
USER_AGENT = "katabasis-collections"

_SHARE_URL_RE = re.compile(
    r"^https?://([A-Za-z0-9.]+\.)?thunderstore\.io/c/(?P<game>[A-Za-z0-9-]+)/p/"
    r"(?P<namespace>[A-Za-z0-9_]+)/(?P<name>[A-Za-z0-9_]+)/?"
)

_RETRY_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def parse_share_url(url: str) -> PackageIdent:
    """Extract the package identifier from a Thunderstore share URL.

    Example:
        >>> parse_share_url("https://thunderstore.io/c/valheim/p/ValheimModding/Jotunn/")
        PackageIdent('ValheimModding-Jotunn')

    Raises:
        IdentParseError: If the URL is not a Thunderstore package page
    """
    match = _SHARE_URL_RE.match(url.strip())
    if match is None:
        raise IdentParseError(f"Not a Thunderstore package URL: {url}", context={"url": url})
    return PackageIdent(match["namespace"], match["name"])


class ThunderstoreClient:
    """Async Thunderstore API client.

    Example:
        >>> async with ThunderstoreClient() as client:
        ...     package = await client.fetch_latest(PackageIdent.parse("ValheimModding-Jotunn"))
    """

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        retry_attempts: int = 5,
        timeout: float = 30.0,
        backoff_base: float = 0.25,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_base = backoff_base
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def __aenter__(self) -> "ThunderstoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def package_url(self, ident: PackageIdent) -> str:
        return f"{self.base_url}/api/experimental/package/{ident.namespace}/{ident.name}/"

    def version_url(self, ident: VersionIdent) -> str:
        return f"{self.base_url}/api/experimental/package/{ident.namespace}/{ident.name}/{ident.version}/"

    async def _get(self, url: str) -> httpx.Response:
        """GET with retries on transport errors and transient statuses."""
        last_error: str = ""

        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = await self._client.get(url)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            else:
                if response.status_code not in _RETRY_STATUSES:
                    if response.is_error:
                        raise RegistryError(
                            f"Registry returned HTTP {response.status_code} for {url}",
                            context={"url": url, "status": response.status_code},
                        )
                    return response
                last_error = f"HTTP {response.status_code}"

            if attempt < self.retry_attempts:
                logger.warning(f"Request to {url} failed on attempt {attempt}/{self.retry_attempts}: {last_error}")
                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

        raise RegistryError(
            f"Request to {url} failed after {self.retry_attempts} attempts: {last_error}",
            context={"url": url, "attempts": self.retry_attempts},
        )

    async def _get_json(self, url: str) -> object:
        response = await self._get(url)
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(f"Malformed JSON from {url}: {e}", context={"url": url}) from e

    async def fetch_latest(self, ident: PackageIdent) -> Package:
        url = self.package_url(ident)
        logger.debug(f"Fetching package {ident}")
        try:
            return Package.model_validate(await self._get_json(url))
        except ValidationError as e:
            raise RegistryError(f"Unexpected package metadata for {ident}: {e}", context={"url": url}) from e

    async def fetch_version(self, ident: VersionIdent) -> PackageVersion:
        """Fetch one version; a versionless identifier resolves to the latest version."""
        if ident.version is None:
            package = await self.fetch_latest(ident.package)
            return package.latest

        url = self.version_url(ident)
        logger.debug(f"Fetching version {ident}")
        try:
            return PackageVersion.model_validate(await self._get_json(url))
        except ValidationError as e:
            raise RegistryError(f"Unexpected version metadata for {ident}: {e}", context={"url": url}) from e

    async def download_bytes(self, url: str) -> bytes:
        logger.info(f"Downloading {url}")
        response = await self._get(url)
        return response.content
