"""Extension installation into the host application's extensions directory.

The installer copies a collected file set into
``<extensions_dir>/<id>-<version>`` after removing every earlier install of
the same extension id, so that upgrading or downgrading never leaves two
copies of one extension side by side.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional, Sequence, Union

from extpack.packaging.identity import compute_directory_name
from extpack.packaging.manifest import MANIFEST_FILE, ExtensionManifest
from extpack.packaging.scanner import InstalledExtension, scan_extensions
from extpack.utils.exceptions import InstallError

DEFAULT_APP_NAME = "lichtblick-suite"


def resolve_extensions_root(
        app_name: str = DEFAULT_APP_NAME,
        home: Optional[Union[str, Path]] = None,
        extensions_dir: Optional[Union[str, Path]] = None,
        logger: Optional[logging.Logger] = None
) -> Path:
    """Select the extensions directory to install into.

    An explicit ``extensions_dir`` always wins. Otherwise a snap install of
    the application is preferred when one exists under ``home``, and the
    per-user default directory is used when it does not.

    Args:
        app_name: Application name used in the well-known directory names
        home: User home directory; defaults to the current user's home
        extensions_dir: Explicit extensions directory override
        logger: Logger for the detected location

    Returns:
        The extensions directory, which may not exist yet
    """
    logger = logger or logging.getLogger("installer")
    if extensions_dir is not None:
        return Path(extensions_dir)

    home = Path(home) if home is not None else Path.home()
    snap_dir = home / "snap" / app_name / "current"
    if snap_dir.is_dir():
        logger.info(f"Detected snap install at {snap_dir}")
        return snap_dir / f".{app_name}" / "extensions"

    return home / f".{app_name}" / "extensions"


class ExtensionInstaller:
    """Installs and removes extensions in one extensions directory.

    Attributes:
        extensions_dir: The extensions directory this installer manages
        manifest_file: Name of the manifest file inside each install
    """

    def __init__(
            self,
            extensions_dir: Union[str, Path],
            manifest_file: str = MANIFEST_FILE,
            logger: Optional[logging.Logger] = None
    ) -> None:
        self.extensions_dir = Path(extensions_dir)
        self.manifest_file = manifest_file
        self.logger = logger or logging.getLogger("installer")

    async def list_installed(self) -> List[InstalledExtension]:
        """List the extensions currently installed in the extensions directory."""
        return await scan_extensions(self.extensions_dir, self.manifest_file, self.logger)

    async def uninstall(self, package_id: str) -> List[Path]:
        """Remove every installed version of an extension.

        Args:
            package_id: Version-independent id of the extension

        Returns:
            The removed install directories

        Raises:
            InstallError: If an install directory cannot be removed
        """
        removed: List[Path] = []
        for extension in await self.list_installed():
            if extension.id != package_id:
                continue
            self.logger.info(f"Removing existing {extension.id} at {extension.directory}")
            await asyncio.to_thread(self._remove_tree, extension.directory)
            removed.append(extension.directory)
        return removed

    async def install(
            self,
            package_root: Union[str, Path],
            files: Sequence[str],
            manifest: ExtensionManifest
    ) -> Path:
        """Install the collected files of an extension.

        Args:
            package_root: Directory the paths in ``files`` are relative to
            files: Relative file and directory paths, as returned by ``collect``
            manifest: The validated manifest of the extension

        Returns:
            The install directory

        Raises:
            NameTooLong: If the install directory name is too long
            InstallError: If an earlier install cannot be removed or a copy
                fails. A partially copied install directory is removed.
        """
        dirname = compute_directory_name(manifest)
        await self.uninstall(manifest.id)

        destination = self.extensions_dir / dirname
        if destination.exists():
            # Leftover with an unreadable manifest, missed by the scan
            await asyncio.to_thread(self._remove_tree, destination)

        self.logger.info(f"Copying files to {destination}")
        await asyncio.to_thread(self._copy_files, Path(package_root), files, destination)
        return destination

    def _copy_files(self, package_root: Path, files: Sequence[str], destination: Path) -> None:
        try:
            destination.mkdir(parents=True)
            for file in files:
                source = package_root / file
                target = destination / file
                self.logger.info(f"  - {file} -> {target}")
                if source.is_dir():
                    shutil.copytree(source, target, dirs_exist_ok=True)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, target)
        except (OSError, shutil.Error) as e:
            shutil.rmtree(destination, ignore_errors=True)
            raise InstallError(
                f"Failed to install into {destination}: {e}",
                destination=str(destination),
            ) from e

    @staticmethod
    def _remove_tree(path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as e:
            raise InstallError(f"Failed to remove {path}: {e}", destination=str(path)) from e
