"""
Resource References.

A ResourceRef is an opaque handle to a byte stream plus a human-readable
identity. Streams are opened lazily, only when a parser needs them, and
the identity is used only for error messages and logging.

Implementations:
    - FileResource: a path on disk
    - BytesResource: in-memory content (tests, generated documents)
    - PackageResource: a data file shipped inside an importable package

Usage:
    descriptor = FileResource("config/session.json")
    mappers = resolve_mapper_locations("config/mappers", "*-mapper.json")

    with descriptor.open() as stream:
        data = stream.read()
"""

from __future__ import annotations

import io
import logging
from importlib import resources as importlib_resources
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ResourceRef(Protocol):
    """Protocol for a lazily opened byte stream with an identity."""

    @property
    def identity(self) -> str:
        """Human-readable identity for messages."""
        ...

    def open(self) -> BinaryIO:
        """Open the underlying byte stream. Raises OSError when unreadable."""
        ...


class FileResource:
    """Resource backed by a file on disk."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def identity(self) -> str:
        return f"file [{self._path}]"

    def open(self) -> BinaryIO:
        return self._path.open("rb")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FileResource) and other._path == self._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"FileResource({str(self._path)!r})"


class BytesResource:
    """Resource backed by in-memory bytes."""

    def __init__(self, data: bytes | str, identity: str = "byte array"):
        self._data = data.encode("utf-8") if isinstance(data, str) else data
        self._identity = identity

    @property
    def identity(self) -> str:
        return self._identity

    def open(self) -> BinaryIO:
        return io.BytesIO(self._data)

    def __repr__(self) -> str:
        return f"BytesResource(identity={self._identity!r}, size={len(self._data)})"


class PackageResource:
    """
    Resource shipped inside an importable package.

    Example:
        PackageResource("myapp.mappers", "user.json")
    """

    def __init__(self, package: str, name: str):
        self._package = package
        self._name = name

    @property
    def identity(self) -> str:
        return f"package resource [{self._package}:{self._name}]"

    def open(self) -> BinaryIO:
        try:
            return importlib_resources.files(self._package).joinpath(self._name).open("rb")
        except ModuleNotFoundError as e:
            raise FileNotFoundError(f"Package not found: {self._package}") from e

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, PackageResource)
            and other._package == self._package
            and other._name == self._name
        )

    def __hash__(self) -> int:
        return hash((self._package, self._name))

    def __repr__(self) -> str:
        return f"PackageResource({self._package!r}, {self._name!r})"


def resource_from_location(location: str) -> ResourceRef:
    """
    Build a ResourceRef from a location string.

    Locations of the form "package:name" (where package is a dotted module
    path with no path separators) become PackageResource; anything else is
    treated as a filesystem path.
    """
    package, sep, name = location.partition(":")
    if sep and package and name and "/" not in package and "\\" not in package:
        if all(part.isidentifier() for part in package.split(".")):
            return PackageResource(package, name)
    return FileResource(location)


def resolve_mapper_locations(directory: str | Path, pattern: str = "*.json") -> list[ResourceRef]:
    """
    Resolve a glob pattern into an ordered list of file resources.

    Args:
        directory: Base directory to search
        pattern: Glob pattern relative to the directory (supports **)

    Returns:
        Sorted list of FileResource. Empty when nothing matches.
    """
    base = Path(directory)
    if not base.exists():
        logger.warning(f"[resources] Mapper directory not found: {base}")
        return []

    matches = sorted(p for p in base.glob(pattern) if p.is_file())
    logger.debug(f"[resources] Resolved {len(matches)} mapper files from {base}/{pattern}")
    return [FileResource(p) for p in matches]
