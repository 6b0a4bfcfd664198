"""Shared fixtures: in-memory registry, zip builder and application context."""

import io
import zipfile
from pathlib import Path

import pytest
from katabasis_collections import AppContext
from katabasis_collections import JsonCollectionStore
from katabasis_collections import Package
from katabasis_collections import PackageCache
from katabasis_collections import PackageIdent
from katabasis_collections import PackageVersion
from katabasis_collections import RegistryError
from katabasis_collections import VersionIdent
from katabasis_collections.schema import CommunityListing

LOADER = "denikson-BepInExPack_Valheim-5.4.2202"

LOADER_FILES = {
    "manifest.json": "{}",
    "icon.png": b"\x89PNG",
    "BepInExPack_Valheim/winhttp.dll": b"winhttp",
    "BepInExPack_Valheim/doorstop_config.ini": "[UnityDoorstop]\nenabled=true\n",
    "BepInExPack_Valheim/BepInEx/core/BepInEx.Preloader.dll": b"preloader",
    "BepInExPack_Valheim/BepInEx/core/BepInEx.dll": b"bepinex",
    "BepInExPack_Valheim/BepInEx/config/BepInEx.cfg": "[Logging]\nEnabled=true\n",
}


def build_zip(files: dict[str, bytes | str]) -> bytes:
    """Build an in-memory zip archive from ``{archive path: contents}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class FakeRegistry:
    """In-memory registry implementing RegistryClientProtocol."""

    def __init__(self):
        self.packages: dict[PackageIdent, Package] = {}
        self.versions: dict[VersionIdent, PackageVersion] = {}
        self.archives: dict[str, bytes] = {}
        self.failing: set[VersionIdent] = set()
        self.failing_downloads: set[str] = set()
        self.version_calls: list[VersionIdent] = []
        self.downloads: list[str] = []

    def add(
        self,
        full_name: str,
        files: dict[str, bytes | str] | None = None,
        dependencies: tuple[str, ...] = (),
        communities: tuple[str, ...] = ("valheim",),
    ) -> VersionIdent:
        ident = VersionIdent.parse(full_name)
        url = f"https://registry.test/download/{full_name}.zip"

        version = PackageVersion(
            ident=ident,
            download_url=url,
            dependencies=[VersionIdent.parse(dep) for dep in dependencies],
        )
        self.versions[ident] = version
        self.archives[url] = build_zip(files or {"manifest.json": "{}"})
        self.packages[ident.package] = Package(
            latest=version,
            community_listings=[CommunityListing(community=slug) for slug in communities],
        )
        return ident

    async def fetch_latest(self, ident: PackageIdent) -> Package:
        if ident not in self.packages:
            raise RegistryError(f"Registry returned HTTP 404 for {ident}")
        return self.packages[ident]

    async def fetch_version(self, ident: VersionIdent) -> PackageVersion:
        self.version_calls.append(ident)
        if ident.version is None and ident.package in self.packages:
            return self.packages[ident.package].latest
        if ident in self.failing or ident not in self.versions:
            raise RegistryError(f"Registry returned HTTP 404 for {ident}")
        return self.versions[ident]

    async def download_bytes(self, url: str) -> bytes:
        self.downloads.append(url)
        if url in self.failing_downloads:
            raise RegistryError(f"Request to {url} failed after 5 attempts: ConnectError")
        return self.archives[url]


@pytest.fixture
def make_zip():
    return build_zip


@pytest.fixture
def loader_archive() -> bytes:
    return build_zip(LOADER_FILES)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def ctx(tmp_path: Path, registry: FakeRegistry) -> AppContext:
    return AppContext(
        collections_dir=tmp_path / "collections",
        cache=PackageCache(tmp_path / "cache"),
        registry=registry,
        store=JsonCollectionStore(tmp_path / "collections.json"),
        exports_dir=tmp_path / "exports",
    )


@pytest.fixture
def loader_registry(registry: FakeRegistry) -> FakeRegistry:
    """Registry serving the Valheim loader and Jotunn (which depends on it)."""
    registry.add(LOADER, LOADER_FILES)
    registry.add(
        "ValheimModding-Jotunn-2.25.0",
        {
            "manifest.json": '{"name": "Jotunn"}',
            "README.md": "# Jotunn",
            "plugins/Jotunn.dll": b"jotunn",
            "config/Jotunn.cfg": "debug=false\n",
        },
        dependencies=(LOADER,),
    )
    return registry
