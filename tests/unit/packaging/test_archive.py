"""Unit tests for extension archive creation."""

import os
import zipfile
from pathlib import Path

import pytest

from extpack.packaging.archive import (
    MOD_DATE,
    ExtensionArchive,
    archive_name,
    default_archive_path,
)
from extpack.packaging.collector import collect
from extpack.packaging.manifest import parse_manifest
from extpack.utils.exceptions import ArchiveWriteError


def make_manifest(**fields):
    data = {"name": "@acme/widget", "version": "1.0.0", "main": "./dist/extension.js"}
    data.update(fields)
    return parse_manifest(data)


def test_archive_name_uses_forward_slashes():
    """Test that host separators never reach the archive."""
    assert archive_name("dist\\extension.js") == "dist/extension.js"
    assert archive_name(os.path.join("dist", "nested", "a.js")) == "dist/nested/a.js"


def test_default_archive_path(tmp_path: Path):
    path = default_archive_path(tmp_path / "pkg" / ".", "acme.widget-1.0.0")
    assert path == tmp_path / "pkg" / "acme.widget-1.0.0.foxe"


def test_create_archive(package_root: Path, tmp_path: Path):
    """Test the entries of a freshly written archive."""
    files = collect(package_root, make_manifest())

    archive = ExtensionArchive.create(package_root, files, tmp_path / "out" / "widget.foxe")

    assert archive.path.is_file()
    assert archive.names() == [
        "CHANGELOG.md",
        "README.md",
        "dist/",
        "dist/extension.js",
        "package.json",
    ]
    with zipfile.ZipFile(archive.path) as zf:
        assert zf.read("dist/extension.js") == b"module.exports = {};\n"


def test_entries_have_fixed_timestamp(package_root: Path, tmp_path: Path):
    files = collect(package_root, make_manifest())
    archive = ExtensionArchive.create(package_root, files, tmp_path / "widget.foxe")

    with zipfile.ZipFile(archive.path) as zf:
        infos = zf.infolist()

    assert infos
    assert all(info.date_time == MOD_DATE for info in infos)


def test_entries_have_unix_attributes(package_root: Path, tmp_path: Path):
    """Test that entries carry Unix mode bits whatever the host platform."""
    files = collect(package_root, make_manifest())
    archive = ExtensionArchive.create(package_root, files, tmp_path / "widget.foxe")

    with zipfile.ZipFile(archive.path) as zf:
        infos = {info.filename: info for info in zf.infolist()}

    assert all(info.create_system == 3 for info in infos.values())
    assert infos["dist/"].external_attr >> 16 == 0o040755
    assert infos["dist/extension.js"].external_attr >> 16 == 0o100644


def test_archive_is_deterministic(make_package, tmp_path: Path):
    """Test that packaging the same inputs twice gives byte-identical archives."""
    root = make_package(dist_files={"extension.js": "a" * 10000, "b/c.js": "c", "a.js": "a"})
    files = collect(root, make_manifest())

    first = ExtensionArchive.create(root, files, tmp_path / "first.foxe")
    os.utime(root / "dist" / "a.js", (0, 0))
    second = ExtensionArchive.create(root, files, tmp_path / "second.foxe")

    assert first.path.read_bytes() == second.path.read_bytes()
    assert first.sha256() == second.sha256()


def test_directory_entries_sorted(make_package, tmp_path: Path):
    root = make_package(dist_files={"z.js": "", "a/b.js": "", "extension.js": ""})
    files = collect(root, make_manifest())

    names = ExtensionArchive.create(root, files, tmp_path / "w.foxe").names()

    dist_names = [name for name in names if name.startswith("dist/")]
    assert dist_names == ["dist/", "dist/a/", "dist/a/b.js", "dist/extension.js", "dist/z.js"]


@pytest.mark.skipif(os.sep == "\\", reason="backslash is the separator on this host")
def test_backslash_file_name_becomes_forward_slash(make_package, tmp_path: Path):
    """Test that a path collected with a backslash is archived with a forward slash."""
    root = make_package(dist_files={})
    (root / "dist\\extension.js").write_text("x", encoding="utf-8")
    manifest = make_manifest(main="dist\\extension.js", files=["dist\\extension.js"])

    names = ExtensionArchive.create(root, collect(root, manifest), tmp_path / "w.foxe").names()

    assert "dist/extension.js" in names
    assert not any("\\" in name for name in names)


def test_archive_does_not_include_itself(package_root: Path):
    output = package_root / "acme.widget-1.0.0.foxe"
    output.write_bytes(b"stale archive")

    archive = ExtensionArchive.create(package_root, ["."], output)

    assert "acme.widget-1.0.0.foxe" not in archive.names()
    assert "package.json" in archive.names()


def test_failed_write_removes_partial_output(package_root: Path, tmp_path: Path):
    """Test that a failed write leaves no archive behind."""
    output = tmp_path / "broken.foxe"

    with pytest.raises(ArchiveWriteError):
        ExtensionArchive.create(package_root, ["package.json", "missing.js"], output)

    assert not output.exists()


def test_read_manifest_from_archive(package_root: Path, tmp_path: Path):
    files = collect(package_root, make_manifest())
    archive = ExtensionArchive.create(package_root, files, tmp_path / "w.foxe")

    manifest = archive.read_manifest()

    assert manifest.id == "acme.widget"
    assert manifest.version == "1.0.0"
