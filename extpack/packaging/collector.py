"""Collection of the files that make up an extension package."""

from __future__ import annotations

import enum
import logging
import os
from pathlib import Path
from typing import List, Optional, Set, Union

from extpack.packaging.manifest import MANIFEST_FILE, ExtensionManifest
from extpack.utils.exceptions import (
    MissingRequiredDirectory,
    MissingRequiredFile,
    MissingRequiredPath,
    PathEscape,
)

README_FILE = "README.md"
CHANGELOG_FILE = "CHANGELOG.md"
DEFAULT_OUTPUT_DIR = "dist"


class FileType(enum.Enum):
    """Kind of filesystem entry a required path must be."""

    FILE = "file"
    DIRECTORY = "directory"
    FILE_OR_DIRECTORY = "file_or_directory"


def path_exists(path: Union[str, Path], file_type: FileType) -> bool:
    """Check that ``path`` exists and is of the given type."""
    try:
        path = Path(path)
        if file_type is FileType.FILE:
            return path.is_file()
        if file_type is FileType.DIRECTORY:
            return path.is_dir()
        return path.is_file() or path.is_dir()
    except OSError:
        return False


def in_directory(directory: Union[str, Path], path: Union[str, Path]) -> bool:
    """Check that ``path`` does not leave ``directory``.

    Both paths are compared lexically after normalization; the relative path
    from the directory must not start with a ``..`` segment.
    """
    try:
        relative = os.path.relpath(os.path.normpath(path), os.path.normpath(directory))
    except ValueError:
        # Different drives on Windows
        return False
    return relative.split(os.sep)[0] != os.pardir


def collect(
        package_root: Union[str, Path],
        manifest: ExtensionManifest,
        manifest_file: str = MANIFEST_FILE,
        readme_file: str = README_FILE,
        changelog_file: str = CHANGELOG_FILE,
        output_dir: str = DEFAULT_OUTPUT_DIR,
        logger: Optional[logging.Logger] = None
) -> List[str]:
    """Collect the paths to package, relative to ``package_root``.

    The manifest, readme, changelog and entry point are always included. The
    manifest's ``files`` entries are added when present, otherwise the default
    output directory is added as a whole. Paths are checked in this order and
    the first failing one is reported.

    Args:
        package_root: The package root directory
        manifest: The validated manifest
        manifest_file: Name of the manifest file
        readme_file: Name of the readme file
        changelog_file: Name of the changelog file
        output_dir: Build output directory used when ``files`` is absent
        logger: Logger for progress messages

    Returns:
        Sorted, de-duplicated relative paths of files and directories

    Raises:
        PathEscape: If a declared path resolves outside of the package root
        MissingRequiredFile: If a mandatory file is missing
        MissingRequiredPath: If a declared ``files`` entry is missing
        MissingRequiredDirectory: If the default output directory is missing
    """
    logger = logger or logging.getLogger("collector")
    root = os.path.normpath(os.path.abspath(package_root))
    files: Set[str] = set()

    base_files = [
        os.path.join(root, manifest_file),
        os.path.join(root, readme_file),
        os.path.join(root, changelog_file),
        os.path.normpath(os.path.join(root, manifest.main)),
    ]

    for file in base_files:
        if not in_directory(root, file):
            raise PathEscape(f"File {file} is outside of the extension directory", path=file)
        if not path_exists(file, FileType.FILE):
            raise MissingRequiredFile(f"Missing required file {file}", path=file)
        files.add(file)

    if manifest.files is not None:
        for rel_file in manifest.files:
            file = os.path.normpath(os.path.join(root, rel_file))
            if not in_directory(root, file):
                raise PathEscape(f"File {file} is outside of the extension directory", path=file)
            if not path_exists(file, FileType.FILE_OR_DIRECTORY):
                raise MissingRequiredPath(f"Missing required path {file}", path=file)
            files.add(file)
    else:
        dist_dir = os.path.join(root, output_dir)
        if not path_exists(dist_dir, FileType.DIRECTORY):
            raise MissingRequiredDirectory(f"Missing required directory {dist_dir}", path=dist_dir)
        files.add(dist_dir)

    collected = sorted(os.path.relpath(file, root) for file in files)
    logger.debug(f"Collected {len(collected)} paths from {root}")
    return collected
