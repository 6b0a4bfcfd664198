"""Package and version identifiers.

Registry packages are addressed by dash-delimited strings:

- ``namespace-name`` (PackageIdent), e.g. ``ValheimModding-Jotunn``
- ``namespace-name[-version]`` (VersionIdent), e.g. ``ValheimModding-Jotunn-2.25.0``;
  the version is optional, ``ValheimModding-Jotunn`` names the latest version

With three or more segments the last one is the version and strings are split
from the right, so a namespace may itself contain dashes.
Identifiers compare and hash by their canonical string and validate/serialise
as plain strings when used as pydantic fields.
"""

from typing import Any

from pydantic_core import core_schema

from .exceptions import IdentParseError


class _Ident:
    """Shared string-backed behaviour for identifiers."""

    __slots__ = ("_full",)

    _full: str

    def as_str(self) -> str:
        """Return the canonical identifier string."""
        return self._full

    def __str__(self) -> str:
        return self._full

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._full!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._full == other._full  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._full))

    def __lt__(self, other: "_Ident") -> bool:
        return self._full < other._full

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, value: Any):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        raise ValueError(f"Expected identifier string, got {type(value).__name__}")


class PackageIdent(_Ident):
    """Identifier of a package regardless of version (``namespace-name``)."""

    __slots__ = ("_namespace", "_name")

    def __init__(self, namespace: str, name: str):
        if not namespace or not name:
            raise IdentParseError(
                "Package identifier requires a non-empty namespace and name",
                context={"namespace": namespace, "name": name},
            )
        self._namespace = namespace
        self._name = name
        self._full = f"{namespace}-{name}"

    @classmethod
    def parse(cls, value: str) -> "PackageIdent":
        """Parse ``namespace-name`` splitting at the last dash.

        Raises:
            IdentParseError: If there is no dash or either side is empty
        """
        namespace, sep, name = value.rpartition("-")
        if not sep or not namespace or not name:
            raise IdentParseError(
                f"Invalid package identifier '{value}', expected 'namespace-name'",
                context={"value": value},
            )
        return cls(namespace, name)

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def name(self) -> str:
        return self._name


class VersionIdent(_Ident):
    """Identifier of a package version (``namespace-name-version``).

    ``version`` is None for a two-segment identifier, which refers to the
    package's latest version.
    """

    __slots__ = ("_namespace", "_name", "_version")

    def __init__(self, namespace: str, name: str, version: str | None = None):
        if not namespace or not name or version == "":
            raise IdentParseError(
                "Version identifier requires a non-empty namespace and name (and version, if given)",
                context={"namespace": namespace, "name": name, "version": version},
            )
        self._namespace = namespace
        self._name = name
        self._version = version
        self._full = f"{namespace}-{name}" if version is None else f"{namespace}-{name}-{version}"

    @classmethod
    def parse(cls, value: str) -> "VersionIdent":
        """Parse ``namespace-name`` or ``namespace-name-version``.

        Two segments carry no version. With three or more, the last two
        dashes separate namespace, name and version.

        Raises:
            IdentParseError: If there is no dash or a part is empty
        """
        if value.count("-") == 1:
            namespace, _, name = value.partition("-")
            version = None
        else:
            rest, _, version = value.rpartition("-")
            namespace, _, name = rest.rpartition("-")

        if not namespace or not name or version == "":
            raise IdentParseError(
                f"Invalid version identifier '{value}', expected 'namespace-name[-version]'",
                context={"value": value},
            )
        return cls(namespace, name, version)

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str | None:
        return self._version

    @property
    def package(self) -> PackageIdent:
        """The package this version belongs to."""
        return PackageIdent(self._namespace, self._name)
