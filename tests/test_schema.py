"""Tests for registry models, targets and collection records."""

import pytest
from katabasis_collections import Collection
from katabasis_collections import Package
from katabasis_collections import PackageVersion
from katabasis_collections import UnsupportedTargetError
from katabasis_collections import VersionIdent
from katabasis_collections import all_targets
from katabasis_collections import from_slug
from katabasis_collections.collection import sanitise_name
from katabasis_collections.targets import DEFAULT_BEPINEX_PACKAGE

JOTUNN_VERSION = {
    "name": "Jotunn",
    "full_name": "ValheimModding-Jotunn-2.25.0",
    "description": "Jötunn, the Valheim Library.",
    "icon": "https://gcdn.thunderstore.io/live/repository/icons/ValheimModding-Jotunn-2.25.0.png",
    "version_number": "2.25.0",
    "dependencies": ["denikson-BepInExPack_Valheim-5.4.2202"],
    "download_url": "https://thunderstore.io/package/download/ValheimModding/Jotunn/2.25.0/",
    "downloads": 123456,
    "date_created": "2025-05-01T12:00:00.000000Z",
    "website_url": "https://github.com/Valheim-Modding/Jotunn",
    "is_active": True,
}


def test_package_version_from_payload():
    """Test parsing a registry version payload (unknown keys ignored)."""
    version = PackageVersion.model_validate(JOTUNN_VERSION)

    assert version.ident == VersionIdent.parse("ValheimModding-Jotunn-2.25.0")
    assert version.download_url.endswith("/Jotunn/2.25.0/")
    assert version.dependencies == [VersionIdent.parse("denikson-BepInExPack_Valheim-5.4.2202")]
    assert version.version_number == "2.25.0"
    assert version.date_created is not None


def test_package_version_minimal():
    """Test only the identifier and download URL are required."""
    version = PackageVersion.model_validate({"full_name": "A-Mod-1.0.0", "download_url": "https://x/"})

    assert version.dependencies == []
    assert version.is_active


def test_package_supported_targets():
    package = Package.model_validate(
        {
            "namespace": "ValheimModding",
            "name": "Jotunn",
            "latest": JOTUNN_VERSION,
            "community_listings": [
                {"community": "valheim", "has_nsfw_content": False, "categories": ["Libraries"]},
            ],
        }
    )

    assert package.supported_targets == {"valheim"}
    assert package.supports_target("valheim")
    assert not package.supports_target("lethal-company")


def test_bundled_targets():
    """Test the bundled target list loads with unique slugs."""
    targets = all_targets()
    slugs = [target.slug for target in targets]

    assert "valheim" in slugs
    assert len(slugs) == len(set(slugs))


def test_target_loader_override():
    """Test a target's loader override wins over the default package."""
    valheim = from_slug("valheim")

    assert valheim is not None
    assert valheim.name == "Valheim"
    assert valheim.platforms.steam is not None
    assert valheim.platforms.steam.id == 892970
    assert valheim.mod_loader.loader_package() == VersionIdent.parse("denikson-BepInExPack_Valheim-5.4.2202")


def test_target_default_loader():
    target = from_slug("lethal-company")

    assert target is not None
    assert target.mod_loader.loader_package() == VersionIdent.parse(DEFAULT_BEPINEX_PACKAGE)


def test_target_steam_dir_name():
    target = from_slug("content-warning")

    assert target is not None
    assert target.platforms.steam.dir_name == "Content Warning"


def test_unknown_slug():
    assert from_slug("not-a-game") is None


def test_collection_game_from_slug():
    """Test collections validate the game from its slug and persist the slug."""
    collection = Collection(name="test", game="valheim")

    assert collection.game.name == "Valheim"
    assert collection.plugins == []

    data = collection.model_dump(mode="json")
    assert data["game"] == "valheim"
    assert Collection.model_validate(data).game == collection.game


def test_collection_unknown_game():
    with pytest.raises(UnsupportedTargetError):
        Collection(name="test", game="not-a-game")


def test_collection_find_plugin():
    collection = Collection.model_validate(
        {
            "name": "test",
            "game": "valheim",
            "plugins": [{"ident": "ValheimModding-Jotunn-2.25.0"}],
        }
    )
    ident = VersionIdent.parse("ValheimModding-Jotunn-2.25.0")

    assert collection.installed_idents() == {ident}
    assert collection.find_plugin(ident) is collection.plugins[0]
    assert collection.find_plugin(VersionIdent.parse("ValheimModding-Jotunn-2.24.0")) is None


def test_sanitise_name():
    assert sanitise_name('my/mods: "best"!') == "my_mods_ _best__"
    assert sanitise_name("plain name") == "plain name"
