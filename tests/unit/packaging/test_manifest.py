"""Unit tests for manifest loading and validation."""

import json
from pathlib import Path

import pytest

from extpack.packaging.manifest import (
    ExtensionManifest,
    load_manifest,
    parse_manifest,
    require_known_publisher,
)
from extpack.utils.exceptions import (
    ManifestFieldError,
    ManifestReadError,
    ManifestValidationError,
    MissingPublisher,
)


@pytest.fixture
def manifest_data():
    return {
        "name": "@acme/widget",
        "displayName": "Widget",
        "description": "Shows widgets",
        "version": "1.0.0",
        "main": "./dist/extension.js",
        "license": "MIT",
        "keywords": ["widget"],
        "scripts": {"lichtblick:prepublish": "build"},
    }


def test_parse_manifest_derives_identity(manifest_data):
    """Test that the publisher and id are derived at load time."""
    manifest = parse_manifest(manifest_data, "package.json")

    assert isinstance(manifest, ExtensionManifest)
    assert manifest.namespace_or_publisher == "acme"
    assert manifest.id == "acme.widget"
    assert manifest.display_name == "Widget"
    assert manifest.files is None
    assert manifest.has_script("lichtblick:prepublish")
    assert not manifest.has_script("build")


@pytest.mark.parametrize("field", ["name", "version", "main"])
def test_missing_required_field(manifest_data, field):
    """Test that each required field is reported by name."""
    del manifest_data[field]

    with pytest.raises(ManifestFieldError) as exc_info:
        parse_manifest(manifest_data, "/pkg/package.json")

    assert exc_info.value.field == field
    assert str(exc_info.value) == f'Missing required field "{field}" in /pkg/package.json'


def test_required_field_must_be_string(manifest_data):
    manifest_data["main"] = 42
    with pytest.raises(ManifestFieldError, match='"main"'):
        parse_manifest(manifest_data)


def test_invalid_files_entry(manifest_data):
    """Test that a non-string files entry is rejected."""
    manifest_data["files"] = ["dist", 3]
    with pytest.raises(ManifestFieldError) as exc_info:
        parse_manifest(manifest_data, "package.json")
    assert exc_info.value.field == "files"
    assert str(exc_info.value) == 'Invalid "files" entry in package.json'


def test_files_must_be_a_list(manifest_data):
    manifest_data["files"] = "dist"
    with pytest.raises(ManifestFieldError, match='Invalid "files" entry'):
        parse_manifest(manifest_data)


def test_derived_keys_in_file_are_ignored(manifest_data):
    """Test that an id written into the manifest file does not override the derived id."""
    manifest_data["id"] = "evil.override"
    manifest_data["namespaceOrPublisher"] = "evil"

    manifest = parse_manifest(manifest_data)

    assert manifest.id == "acme.widget"
    assert manifest.namespace_or_publisher == "acme"


def test_optional_fields_with_wrong_type_are_dropped(manifest_data):
    manifest_data["description"] = 12
    manifest_data["keywords"] = "widget"
    manifest_data["scripts"] = ["build"]

    manifest = parse_manifest(manifest_data)

    assert manifest.description is None
    assert manifest.keywords is None
    assert manifest.scripts == {}


def test_non_semver_version_is_accepted(manifest_data):
    manifest_data["version"] = "latest"
    assert parse_manifest(manifest_data).version == "latest"


def test_non_object_document():
    with pytest.raises(ManifestReadError):
        parse_manifest(["not", "an", "object"])


def test_missing_publisher(manifest_data):
    manifest_data["name"] = "widget"
    with pytest.raises(MissingPublisher):
        parse_manifest(manifest_data)


def test_to_dict_uses_manifest_keys(manifest_data):
    """Test that the derived fields are not written back."""
    data = parse_manifest(manifest_data).to_dict()
    assert data["displayName"] == "Widget"
    assert "id" not in data
    assert "namespace_or_publisher" not in data


def test_require_known_publisher(manifest_data):
    manifest_data["publisher"] = "Unknown"
    manifest = parse_manifest(manifest_data)
    with pytest.raises(MissingPublisher):
        require_known_publisher(manifest)

    manifest_data["publisher"] = "Acme"
    assert require_known_publisher(parse_manifest(manifest_data)) == "Acme"


@pytest.mark.asyncio
async def test_load_manifest(tmp_path: Path, manifest_data):
    """Test reading a manifest from disk."""
    (tmp_path / "package.json").write_text(json.dumps(manifest_data), encoding="utf-8")

    manifest = await load_manifest(tmp_path)

    assert manifest.id == "acme.widget"
    assert manifest.version == "1.0.0"


@pytest.mark.asyncio
async def test_load_manifest_missing_file(tmp_path: Path):
    with pytest.raises(ManifestReadError, match="Failed to load"):
        await load_manifest(tmp_path)


@pytest.mark.asyncio
async def test_load_manifest_invalid_json(tmp_path: Path):
    """Test that malformed JSON is reported as a validation error."""
    (tmp_path / "package.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ManifestValidationError) as exc_info:
        await load_manifest(tmp_path)

    assert isinstance(exc_info.value, ManifestReadError)
    assert exc_info.value.details["path"] == str(tmp_path / "package.json")
