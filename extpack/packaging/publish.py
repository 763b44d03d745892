"""Registry entries for released extensions.

A registry entry describes one released archive: where to download it, its
SHA-256 digest and the metadata shown in an extension marketplace. The
digest is computed from a local copy of the released archive.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

import httpx
import pydantic

from extpack.packaging.archive import DEFAULT_ARCHIVE_SUFFIX, ExtensionArchive, default_archive_path
from extpack.packaging.identity import compute_directory_name
from extpack.packaging.manifest import MANIFEST_FILE, ExtensionManifest, require_known_publisher
from extpack.utils.exceptions import ManifestFieldError, ManifestValidationError, PublishError

_GITHUB_HOMEPAGE = re.compile(r"^https?://github\.com/([^/]+)/([^/#?]+?)(?:\.git)?/?$")


class RegistryEntry(pydantic.BaseModel):
    """An extension registry entry."""

    id: str
    name: str
    description: str
    publisher: str
    homepage: str
    readme: str
    changelog: str
    license: str
    version: str
    sha256sum: str
    foxe: str
    keywords: List[str]


def github_raw_url(homepage: str, filename: str, branch: str = "main") -> Optional[str]:
    """Derive the raw-content URL of a repository file from a GitHub homepage.

    Returns ``None`` when the homepage is not a GitHub repository URL.
    """
    match = _GITHUB_HOMEPAGE.match(homepage)
    if match is None:
        return None
    owner, repo = match.groups()
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{filename}"


def _require(manifest: ExtensionManifest, field: str, source: str) -> None:
    if not getattr(manifest, field):
        raise ManifestFieldError(f'Missing required field "{field}" in {source}', field=field)


async def check_urls(urls: List[str], timeout: float = 10.0) -> None:
    """Check that every URL answers a HEAD request without an error status.

    Raises:
        PublishError: If a URL cannot be reached or answers with status >= 400
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        for url in urls:
            try:
                response = await client.head(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise PublishError(
                    f"URL {url} returned HTTP {e.response.status_code}",
                    url=url,
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                raise PublishError(f"Failed to reach {url}: {e}", url=url) from e


async def build_registry_entry(
        package_root: Union[str, Path],
        manifest: ExtensionManifest,
        foxe: str,
        version: Optional[str] = None,
        readme: Optional[str] = None,
        changelog: Optional[str] = None,
        archive_path: Optional[Union[str, Path]] = None,
        archive_suffix: str = DEFAULT_ARCHIVE_SUFFIX,
        manifest_file: str = MANIFEST_FILE,
        verify_urls: bool = False,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None
) -> RegistryEntry:
    """Build the registry entry for a released extension.

    Args:
        package_root: The package root directory
        manifest: The validated manifest
        foxe: Download URL of the released archive
        version: Released version; defaults to the manifest version
        readme: README URL; derived from a GitHub homepage when omitted
        changelog: CHANGELOG URL; derived from a GitHub homepage when omitted
        archive_path: Local copy of the released archive; defaults to the
            archive ``package`` writes for this manifest
        archive_suffix: Suffix of the default archive file name
        manifest_file: Name of the manifest file, used in error messages
        verify_urls: Check the readme, changelog and archive URLs with HEAD requests
        timeout: Timeout in seconds for each URL check
        logger: Logger for progress messages

    Returns:
        The registry entry

    Raises:
        MissingPublisher: If the publisher is missing or the reserved placeholder
        ManifestFieldError: If homepage, description, license or keywords is missing
        PublishError: If a URL cannot be derived or checked, or the archive
            cannot be read or holds a different extension id or version
    """
    logger = logger or logging.getLogger("publish")
    source = str(Path(package_root) / manifest_file)
    publisher = require_known_publisher(manifest)
    for field in ("homepage", "description", "license", "keywords"):
        _require(manifest, field, source)

    readme = readme or github_raw_url(manifest.homepage, "README.md")
    changelog = changelog or github_raw_url(manifest.homepage, "CHANGELOG.md")
    if readme is None or changelog is None:
        raise PublishError(
            f"Cannot derive README and CHANGELOG URLs from homepage {manifest.homepage}, "
            f"pass them explicitly",
            homepage=manifest.homepage,
        )

    if archive_path is None:
        archive_path = default_archive_path(package_root, compute_directory_name(manifest), archive_suffix)
    archive = ExtensionArchive(archive_path)
    try:
        sha256sum = archive.sha256()
    except OSError as e:
        raise PublishError(f"Failed to read archive {archive.path}: {e}", path=str(archive.path)) from e
    logger.info(f"Computed sha256 {sha256sum} for {archive.path}")

    version = version or manifest.version
    try:
        archived = archive.read_manifest(manifest_file)
    except ManifestValidationError as e:
        raise PublishError(f"{archive.path} is not a valid extension archive: {e}", path=str(archive.path)) from e
    if archived.id != manifest.id or archived.version != version:
        raise PublishError(
            f"Archive {archive.path} contains {archived.id} {archived.version}, "
            f"expected {manifest.id} {version}",
            path=str(archive.path),
        )

    if verify_urls:
        logger.info("Checking readme, changelog and archive URLs")
        await check_urls([readme, changelog, foxe], timeout=timeout)

    return RegistryEntry(
        id=manifest.id,
        name=manifest.display_name or manifest.name,
        description=manifest.description,
        publisher=publisher,
        homepage=manifest.homepage,
        readme=readme,
        changelog=changelog,
        license=manifest.license,
        version=version,
        sha256sum=sha256sum,
        foxe=foxe,
        keywords=list(manifest.keywords),
    )
