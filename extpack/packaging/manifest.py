"""Extension manifest loading and validation.

The manifest is the ``package.json`` at the root of an extension. It is read
once per command, validated, and completed with the derived publisher and id;
every later stage works with the resulting :class:`ExtensionManifest`.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiofiles
import pydantic
from pydantic import ConfigDict, Field, StrictStr, field_validator

from extpack.packaging.identity import compute_id, parse_package_name
from extpack.utils.exceptions import ManifestFieldError, ManifestReadError, MissingPublisher

MANIFEST_FILE = "package.json"

# Publisher value reserved for manifests that never declared one.
UNKNOWN_PUBLISHER = "unknown"

SEMVER_REGEX = r'^(\d+)\.(\d+)\.(\d+)(-[0-9a-zA-Z.-]+)?(\+[0-9a-zA-Z.-]+)?$'

_DERIVED_KEYS = ("id", "namespaceOrPublisher", "namespace_or_publisher")

_logger = logging.getLogger("manifest")


class ExtensionManifest(pydantic.BaseModel):
    """A validated extension manifest.

    ``namespace_or_publisher`` and ``id`` are derived at load time and are
    never written back to the manifest file.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: StrictStr
    version: StrictStr
    main: StrictStr
    files: Optional[List[StrictStr]] = None
    publisher: Optional[StrictStr] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    description: Optional[str] = None
    homepage: Optional[str] = None
    license: Optional[str] = None
    keywords: Optional[List[str]] = None
    scripts: Dict[str, Any] = Field(default_factory=dict)

    namespace_or_publisher: str = Field(default="", exclude=True)
    id: str = Field(default="", exclude=True)

    @field_validator("display_name", "description", "homepage", "license", mode="before")
    @classmethod
    def drop_non_string(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, str):
            return v
        _logger.warning(f"Ignoring non-string manifest value {v!r}")
        return None

    @field_validator("keywords", mode="before")
    @classmethod
    def drop_invalid_keywords(cls, v: Any) -> Optional[List[str]]:
        if v is None:
            return None
        if not isinstance(v, list) or not all(isinstance(k, str) for k in v):
            _logger.warning(f'Ignoring invalid "keywords" value {v!r}')
            return None
        return v

    @field_validator("scripts", mode="before")
    @classmethod
    def drop_invalid_scripts(cls, v: Any) -> Dict[str, Any]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            _logger.warning(f'Ignoring invalid "scripts" value {v!r}')
            return {}
        return v

    def has_script(self, script: str) -> bool:
        """Check whether the manifest declares a package-manager script."""
        return self.scripts.get(script) is not None

    def to_dict(self) -> Dict[str, Any]:
        """The manifest fields as they appear in the manifest file."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _field_error(error: Dict[str, Any], source: str) -> ManifestFieldError:
    loc = error.get("loc") or ("manifest",)
    field = str(loc[0])
    if field in ("name", "version", "main"):
        return ManifestFieldError(f'Missing required field "{field}" in {source}', field=field)
    return ManifestFieldError(f'Invalid "{field}" entry in {source}', field=field)


def parse_manifest(data: Any, source: Union[str, Path] = MANIFEST_FILE) -> ExtensionManifest:
    """Validate parsed manifest data and derive the publisher and id.

    Args:
        data: The decoded manifest document
        source: Path of the manifest, used in error messages

    Returns:
        The completed manifest

    Raises:
        ManifestReadError: If the document is not an object
        ManifestFieldError: If a required field is missing or mistyped
        MissingPublisher: If no publisher can be determined
        InvalidPublisher: If the publisher normalizes to an empty string
    """
    source = str(source)
    if not isinstance(data, dict):
        raise ManifestReadError(f"Failed to load {source}: expected a JSON object", path=source)

    fields = {key: value for key, value in data.items() if key not in _DERIVED_KEYS}
    try:
        manifest = ExtensionManifest.model_validate(fields)
    except pydantic.ValidationError as e:
        raise _field_error(e.errors()[0], source) from e

    if not re.match(SEMVER_REGEX, manifest.version):
        _logger.warning(f"Version {manifest.version!r} in {source} is not a semantic version")

    namespace = parse_package_name(manifest.name).namespace
    publisher = manifest.publisher if manifest.publisher is not None else namespace
    package_id = compute_id(manifest)

    return manifest.model_copy(update={
        "namespace_or_publisher": publisher,
        "id": package_id,
    })


async def load_manifest(
        package_root: Union[str, Path],
        manifest_file: str = MANIFEST_FILE
) -> ExtensionManifest:
    """Read and validate the manifest of the package at ``package_root``.

    Args:
        package_root: The package root directory
        manifest_file: Name of the manifest file inside the root

    Returns:
        The completed manifest

    Raises:
        ManifestReadError: If the file is missing or is not valid JSON
        ManifestFieldError: If a required field is missing or mistyped
        MissingPublisher: If no publisher can be determined
        InvalidPublisher: If the publisher normalizes to an empty string
    """
    manifest_path = Path(package_root) / manifest_file
    try:
        async with aiofiles.open(manifest_path, "r", encoding="utf-8") as f:
            content = await f.read()
        data = json.loads(content)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestReadError(f"Failed to load {manifest_path}: {e}", path=str(manifest_path)) from e

    return parse_manifest(data, manifest_path)


def require_known_publisher(manifest: ExtensionManifest) -> str:
    """Return the manifest publisher, refusing the reserved placeholder.

    Raises:
        MissingPublisher: If the publisher is empty or the reserved placeholder
    """
    publisher = manifest.namespace_or_publisher
    if not publisher or publisher.lower() == UNKNOWN_PUBLISHER:
        raise MissingPublisher(
            f'Unknown publisher "{publisher}", add a "publisher" field to the manifest',
            package=manifest.name,
        )
    return publisher
