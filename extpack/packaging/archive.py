"""Extension archive creation and inspection.

Archives are ZIP files with forward-slash entry names. Every entry carries
the same fixed modification time so that packaging identical inputs twice
yields byte-identical archives.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import zipfile
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Union

from extpack.packaging.manifest import MANIFEST_FILE, ExtensionManifest, parse_manifest
from extpack.utils.exceptions import ArchiveWriteError, ManifestReadError

DEFAULT_ARCHIVE_SUFFIX = ".foxe"

# 2021-02-03 00:00:00, stamped on every entry.
MOD_DATE = (2021, 2, 3, 0, 0, 0)

CHUNK_SIZE = 64 * 1024

# Unix host so the mode bits are honoured on every platform
_CREATE_SYSTEM = 3
_FILE_MODE = 0o100644 << 16
_DIR_MODE = (0o040755 << 16) | 0x10


def archive_name(relative_path: str) -> str:
    """Convert a relative path into a ZIP entry name.

    Entry names always use ``/`` as separator, whatever the host uses.
    """
    return relative_path.replace(os.sep, "/").replace("\\", "/")


def default_archive_path(
        package_root: Union[str, Path],
        dirname: str,
        suffix: str = DEFAULT_ARCHIVE_SUFFIX
) -> Path:
    """The archive path used when the caller does not choose one."""
    return Path(os.path.normpath(os.path.join(package_root, dirname + suffix)))


class ExtensionArchive:
    """A packaged extension on disk.

    Attributes:
        path: Path to the archive file
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @classmethod
    def create(
            cls,
            package_root: Union[str, Path],
            files: Sequence[str],
            output_path: Union[str, Path],
            logger: Optional[logging.Logger] = None
    ) -> ExtensionArchive:
        """Write the collected files into a new archive.

        Directory entries are expanded recursively in name order. File
        contents are streamed into the archive in chunks.

        Args:
            package_root: Directory the paths in ``files`` are relative to
            files: Relative file and directory paths, as returned by ``collect``
            output_path: Where to write the archive; an existing file is replaced
            logger: Logger for progress messages

        Returns:
            The written archive

        Raises:
            ArchiveWriteError: If the archive cannot be written. The partial
                output file is removed.
        """
        logger = logger or logging.getLogger("archive")
        root = os.path.normpath(os.path.abspath(package_root))
        output_path = Path(os.path.normpath(os.path.abspath(output_path)))

        logger.info(f"Writing archive to {output_path}")
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
                folders: Set[str] = set()
                written: Set[str] = set()
                for relative in files:
                    for file in cls._expand(root, relative, str(output_path)):
                        # main is usually inside the collected output directory too
                        if file in written:
                            continue
                        written.add(file)
                        cls._add_file(zf, root, file, folders, logger)
        except (OSError, ValueError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            cls._remove_partial(output_path, logger)
            raise ArchiveWriteError(
                f"Failed to write archive {output_path}: {e}",
                output_path=str(output_path),
            ) from e

        return cls(output_path)

    @staticmethod
    def _expand(root: str, relative: str, skip: str) -> Iterator[str]:
        """Yield the regular files below a collected path, in name order."""
        full_path = os.path.join(root, relative)
        if not os.path.isdir(full_path):
            if os.path.abspath(full_path) != skip:
                yield relative
            return

        with os.scandir(full_path) as it:
            entries = sorted(it, key=lambda entry: entry.name)

        for entry in entries:
            entry_path = os.path.normpath(os.path.join(relative, entry.name))
            if entry.is_file(follow_symlinks=False):
                if os.path.abspath(entry.path) != skip:
                    yield entry_path
            elif entry.is_dir(follow_symlinks=False):
                yield from ExtensionArchive._expand(root, entry_path, skip)

    @staticmethod
    def _add_file(
            zf: zipfile.ZipFile,
            root: str,
            relative: str,
            folders: Set[str],
            logger: logging.Logger
    ) -> None:
        full_path = os.path.join(root, relative)
        name = archive_name(relative)
        logger.info(f"archiving {full_path}")

        parts = name.split("/")[:-1]
        for depth in range(1, len(parts) + 1):
            folder = "/".join(parts[:depth]) + "/"
            if folder not in folders:
                folders.add(folder)
                info = zipfile.ZipInfo(folder, date_time=MOD_DATE)
                info.create_system = _CREATE_SYSTEM
                info.external_attr = _DIR_MODE
                zf.writestr(info, b"")

        info = zipfile.ZipInfo(name, date_time=MOD_DATE)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.create_system = _CREATE_SYSTEM
        info.external_attr = _FILE_MODE
        force_zip64 = os.path.getsize(full_path) > zipfile.ZIP64_LIMIT
        with open(full_path, "rb") as source, zf.open(info, "w", force_zip64=force_zip64) as dest:
            shutil.copyfileobj(source, dest, CHUNK_SIZE)

    @staticmethod
    def _remove_partial(output_path: Path, logger: logging.Logger) -> None:
        try:
            output_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial archive {output_path}: {e}")

    def names(self) -> List[str]:
        """List the entry names in archive order."""
        with zipfile.ZipFile(self.path, "r") as zf:
            return zf.namelist()

    def read_manifest(self, manifest_file: str = MANIFEST_FILE) -> ExtensionManifest:
        """Read and validate the manifest stored in the archive.

        Raises:
            ManifestReadError: If the archive or its manifest cannot be read
        """
        source = f"{self.path}!{manifest_file}"
        try:
            with zipfile.ZipFile(self.path, "r") as zf:
                data = json.loads(zf.read(manifest_file).decode("utf-8"))
        except (OSError, KeyError, UnicodeDecodeError, json.JSONDecodeError, zipfile.BadZipFile) as e:
            raise ManifestReadError(f"Failed to load {source}: {e}", path=source) from e
        return parse_manifest(data, source)

    def sha256(self) -> str:
        """Hex SHA-256 digest of the archive file."""
        hasher = hashlib.sha256()
        with open(self.path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
        return hasher.hexdigest()
