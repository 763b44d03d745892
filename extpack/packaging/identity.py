"""Extension identity derivation.

An extension is identified by ``<publisher>.<name>``, independent of its
version. The identity is the key used to find earlier installs of the same
extension, and ``<id>-<version>`` names its install directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Protocol

from extpack.utils.exceptions import InvalidPublisher, MissingPublisher, NameTooLong

# Longest file name most filesystems accept for a single path component.
MAX_DIRNAME_LENGTH = 255

_SCOPED_NAME = re.compile(r"^@([^/]+)/(.+)")
_NON_WORD = re.compile(r"\W+")


class PackageDescriptor(Protocol):
    """The manifest fields identity derivation reads."""

    name: str
    version: str
    publisher: Optional[str]


@dataclass(frozen=True)
class PackageName:
    """A package name split into its optional namespace and unscoped name."""

    name: str
    namespace: Optional[str] = None


def parse_package_name(name: str) -> PackageName:
    """Split a scoped name such as ``@acme/widget`` into namespace and name.

    Args:
        name: The ``name`` field of a manifest

    Returns:
        The parsed name; unscoped names have no namespace
    """
    match = _SCOPED_NAME.match(name)
    if match is None:
        return PackageName(name=name)
    return PackageName(name=match.group(2), namespace=match.group(1))


def normalize_publisher(publisher: str) -> str:
    """Lower-case a publisher and strip every non-word character."""
    return _NON_WORD.sub("", publisher.lower())


def compute_id(manifest: PackageDescriptor) -> str:
    """Compute the version-independent identifier of a package.

    The publisher is the explicit ``publisher`` field, or the namespace of a
    scoped package name when no publisher is given.

    Args:
        manifest: Object carrying name, version and publisher

    Returns:
        An identifier such as ``acme.widget``

    Raises:
        MissingPublisher: If neither a publisher nor a namespace is present
        InvalidPublisher: If the publisher normalizes to an empty string
    """
    package_name = parse_package_name(manifest.name)
    publisher = manifest.publisher if manifest.publisher is not None else package_name.namespace
    if not publisher:
        raise MissingPublisher('Unknown publisher, add a "publisher" field to the manifest')

    normalized = normalize_publisher(publisher)
    if not normalized:
        raise InvalidPublisher(
            f'The manifest contains an invalid "publisher" field: {publisher!r}',
            publisher=publisher,
        )

    return f"{normalized}.{package_name.name}"


def compute_directory_name(manifest: PackageDescriptor) -> str:
    """Compute the install directory name ``<id>-<version>``.

    Raises:
        NameTooLong: If the name does not fit in a single path component
    """
    dirname = f"{compute_id(manifest)}-{manifest.version}"
    if len(dirname) >= MAX_DIRNAME_LENGTH:
        raise NameTooLong(
            f"Extension directory name is too long ({len(dirname)} characters): publisher.name-version "
            f"must be shorter than {MAX_DIRNAME_LENGTH}",
            dirname=dirname,
        )
    return dirname
