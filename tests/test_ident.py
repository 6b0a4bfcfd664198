"""Tests for package and version identifiers."""

import pytest
from katabasis_collections import IdentParseError
from katabasis_collections import PackageIdent
from katabasis_collections import Plugin
from katabasis_collections import VersionIdent
from pydantic import ValidationError


def test_version_ident_parse():
    """Test parsing namespace-name-version."""
    ident = VersionIdent.parse("ValheimModding-Jotunn-2.25.0")

    assert ident.namespace == "ValheimModding"
    assert ident.name == "Jotunn"
    assert ident.version == "2.25.0"
    assert ident.as_str() == "ValheimModding-Jotunn-2.25.0"
    assert str(ident) == "ValheimModding-Jotunn-2.25.0"


def test_version_ident_splits_from_right():
    """Test namespaces may contain dashes."""
    ident = VersionIdent.parse("Some-Team-Mod-1.0.0")

    assert ident.namespace == "Some-Team"
    assert ident.name == "Mod"
    assert ident.version == "1.0.0"


def test_version_ident_package():
    """Test a version knows its package."""
    ident = VersionIdent.parse("denikson-BepInExPack_Valheim-5.4.2202")

    assert ident.package == PackageIdent.parse("denikson-BepInExPack_Valheim")
    assert ident.package.as_str() == "denikson-BepInExPack_Valheim"


def test_version_ident_without_version():
    """Test two-segment identifiers parse with no version."""
    ident = VersionIdent.parse("ValheimModding-Jotunn")

    assert ident.namespace == "ValheimModding"
    assert ident.name == "Jotunn"
    assert ident.version is None
    assert ident.package == PackageIdent.parse("ValheimModding-Jotunn")
    assert ident != VersionIdent.parse("ValheimModding-Jotunn-2.25.0")


@pytest.mark.parametrize(
    "value",
    [
        "ValheimModding-Jotunn",
        "denikson-BepInExPack_Valheim",
        "ValheimModding-Jotunn-2.25.0",
        "denikson-BepInExPack_Valheim-5.4.2202",
    ],
)
def test_version_ident_round_trip(value):
    assert str(VersionIdent.parse(value)) == value
    assert VersionIdent.parse(value).as_str() == value


def test_package_ident_parse():
    ident = PackageIdent.parse("ValheimModding-Jotunn")

    assert ident.namespace == "ValheimModding"
    assert ident.name == "Jotunn"
    assert str(ident) == "ValheimModding-Jotunn"


@pytest.mark.parametrize("value", ["onlyonepart", "-b", "a-", "a--1", "-b-1", "a-b-", ""])
def test_version_ident_rejects_malformed(value):
    """Test malformed version identifiers raise IdentParseError."""
    with pytest.raises(IdentParseError):
        VersionIdent.parse(value)


@pytest.mark.parametrize("value", ["nodash", "-name", "namespace-", ""])
def test_package_ident_rejects_malformed(value):
    with pytest.raises(IdentParseError):
        PackageIdent.parse(value)


def test_parse_error_is_value_error():
    """Test IdentParseError can be caught as ValueError."""
    with pytest.raises(ValueError):
        VersionIdent.parse("nodash")


def test_equality_and_hashing():
    """Test identifiers compare by canonical string and type."""
    a = VersionIdent.parse("A-Mod-1.0.0")
    b = VersionIdent("A", "Mod", "1.0.0")

    assert a == b
    assert len({a, b}) == 1
    assert a != VersionIdent.parse("A-Mod-1.0.1")
    assert PackageIdent.parse("A-Mod") != VersionIdent.parse("A-Mod-1.0.0")


def test_sorting():
    idents = [VersionIdent.parse("B-Mod-1.0.0"), VersionIdent.parse("A-Mod-1.0.0")]

    assert [str(i) for i in sorted(idents)] == ["A-Mod-1.0.0", "B-Mod-1.0.0"]


def test_repr():
    assert repr(VersionIdent.parse("A-Mod-1.0.0")) == "VersionIdent('A-Mod-1.0.0')"


def test_pydantic_field_validates_and_serializes():
    """Test identifiers validate from and serialize to plain strings."""
    plugin = Plugin(ident="ValheimModding-Jotunn-2.25.0")

    assert isinstance(plugin.ident, VersionIdent)
    assert plugin.model_dump(mode="json")["ident"] == "ValheimModding-Jotunn-2.25.0"
    assert plugin.full_name == "ValheimModding-Jotunn"


def test_pydantic_field_rejects_malformed():
    with pytest.raises(ValidationError):
        Plugin(ident="onlyonepart")

    with pytest.raises(ValidationError):
        Plugin(ident=42)
