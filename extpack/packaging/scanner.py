"""Discovery of extensions already installed in an extensions directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from extpack.packaging.manifest import MANIFEST_FILE, ExtensionManifest, load_manifest
from extpack.utils.exceptions import ManifestValidationError


@dataclass(frozen=True)
class InstalledExtension:
    """An extension found in an extensions directory.

    Attributes:
        id: Version-independent extension id
        manifest: The installed copy's manifest
        directory: The install directory
    """

    id: str
    manifest: ExtensionManifest
    directory: Path


async def scan_extensions(
        root_folder: Union[str, Path],
        manifest_file: str = MANIFEST_FILE,
        logger: Optional[logging.Logger] = None
) -> List[InstalledExtension]:
    """List the extensions installed below ``root_folder``.

    Each immediate subdirectory with a readable manifest is reported.
    Subdirectories whose manifest cannot be loaded are skipped with a
    warning so that one broken install does not hide the others.

    Args:
        root_folder: Extensions directory; a missing directory yields no entries
        manifest_file: Name of the manifest file inside each install
        logger: Logger for skipped entries

    Returns:
        Installed extensions in directory name order
    """
    logger = logger or logging.getLogger("scanner")
    root = Path(root_folder)
    if not root.is_dir():
        return []

    extensions: List[InstalledExtension] = []
    for directory in sorted(root.iterdir(), key=lambda p: p.name):
        if not directory.is_dir():
            continue
        try:
            manifest = await load_manifest(directory, manifest_file)
        except ManifestValidationError as e:
            logger.warning(f"Skipping {directory}: {e}")
            continue
        extensions.append(InstalledExtension(id=manifest.id, manifest=manifest, directory=directory))

    return extensions
