"""Import map resolution.

Turns declared frontend packages into a browser import map whose URLs
point at an ESM CDN. Every package root gets exactly one version across
the whole map, and dependents pin their dependencies to that version
through the CDN's ``deps`` query parameter::

    descriptors = [
        ImportDescriptor("react", "18.2.0"),
        ImportDescriptor("react-dom/client", "18.2.0", deps=("react",)),
    ]
    resolve_imports(descriptors, dev=False).imports
    # {"react": "https://esm.sh/react@18.2.0",
    #  "react-dom/client": "https://esm.sh/react-dom@18.2.0/client?deps=react@18.2.0"}

When the same package root is declared twice, the later declaration's
version wins. Dependencies that name a root nobody declared resolve to
``latest`` with a warning, or raise ``ResolutionError`` in strict mode.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from roost.errors import ConfigurationError, ResolutionError

logger = logging.getLogger("roost.imports")

DEFAULT_VERSION = "latest"
SCOPE_MARKER = "@"


def package_root(name: str) -> str:
    """The package portion of an import specifier.

    ``"react-dom/client"`` → ``"react-dom"``;
    ``"@tanstack/react-query/devtools"`` → ``"@tanstack/react-query"``.
    """
    parts = name.split("/")
    if name.startswith(SCOPE_MARKER) and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def _subpath(name: str, root: str) -> str:
    return name[len(root) :].lstrip("/")


@dataclass(frozen=True, slots=True)
class ImportDescriptor:
    """One declared frontend dependency."""

    name: str
    version: str | None = None
    deps: tuple[str, ...] = ()

    @property
    def root(self) -> str:
        return package_root(self.name)

    @classmethod
    def from_config(cls, value: str | Mapping[str, Any] | ImportDescriptor) -> ImportDescriptor:
        """Accept ``"react"``, ``{"name": "react", "version": "18"}`` or a descriptor."""
        if isinstance(value, ImportDescriptor):
            return value
        if isinstance(value, str):
            return cls(value)
        try:
            name = value["name"]
        except KeyError:
            msg = f"Import declaration {dict(value)!r} has no 'name'"
            raise ConfigurationError(msg) from None
        return cls(
            name=name,
            version=value.get("version"),
            deps=tuple(value.get("deps") or ()),
        )


@dataclass(frozen=True, slots=True)
class ImportMap(Mapping[str, str]):
    """Resolved import map. Immutable; keyed by descriptor name."""

    imports: Mapping[str, str]

    def __getitem__(self, key: str) -> str:
        return self.imports[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.imports)

    def __len__(self) -> int:
        return len(self.imports)

    @property
    def names(self) -> tuple[str, ...]:
        """Specifiers the bundler must leave external."""
        return tuple(self.imports)

    def to_json(self) -> str:
        """The ``<script type="importmap">`` payload."""
        return json.dumps({"imports": dict(self.imports)}, separators=(",", ":"))


def build_version_map(descriptors: Iterable[ImportDescriptor]) -> dict[str, str]:
    """Map each package root to its version. Later declarations win."""
    versions: dict[str, str] = {}
    for descriptor in descriptors:
        versions[descriptor.root] = descriptor.version or DEFAULT_VERSION
    return versions


def _dependency_version(dep: str, owner: str, versions: Mapping[str, str], *, strict: bool) -> str:
    root = package_root(dep)
    version = versions.get(root)
    if version is not None:
        return version
    if strict:
        msg = f"{owner!r} depends on {dep!r}, but no import declares {root!r}"
        raise ResolutionError(msg)
    logger.warning("%s depends on undeclared package %s; using %s", owner, root, DEFAULT_VERSION)
    return DEFAULT_VERSION


def resolve_imports(
    descriptors: Sequence[ImportDescriptor],
    *,
    dev: bool,
    cdn: str = "https://esm.sh",
    strict: bool = False,
) -> ImportMap:
    """Resolve *descriptors* into an ``ImportMap``.

    Args:
        descriptors: Declared imports, in precedence order.
        dev: Append the CDN's ``dev`` flag to every URL.
        cdn: Base URL of the ESM CDN.
        strict: Raise ``ResolutionError`` for deps on undeclared packages
            instead of defaulting them to ``latest``.
    """
    versions = build_version_map(descriptors)
    base = cdn.rstrip("/")
    imports: dict[str, str] = {}

    for descriptor in descriptors:
        root = descriptor.root
        url = f"{base}/{root}@{versions[root]}"
        subpath = _subpath(descriptor.name, root)
        if subpath:
            url += f"/{subpath}"

        query: list[str] = []
        if descriptor.deps:
            pinned = ",".join(
                f"{package_root(dep)}@{_dependency_version(dep, descriptor.name, versions, strict=strict)}"
                for dep in descriptor.deps
            )
            query.append(f"deps={pinned}")
        if dev:
            query.append("dev")
        if query:
            url += "?" + "&".join(query)

        imports[descriptor.name] = url

    logger.debug("Import map keys: %s", list(imports))
    return ImportMap(MappingProxyType(imports))
