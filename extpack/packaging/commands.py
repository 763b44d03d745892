"""Packaging commands.

Each command runs one complete pipeline against an explicit package root:

* ``package``: load manifest, run prepublish hook, collect files, write archive
* ``install``: load manifest, run prepublish hook, collect files, install
* ``uninstall``: remove every installed version of the package
* ``list``: report the extensions in the extensions directory
* ``publish``: build a registry entry for a released archive

Settings come from a :class:`ConfigManager` when one is given and from the
schema defaults otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from extpack.core.config_manager import ConfigManager, ConfigSchema
from extpack.packaging.archive import ExtensionArchive, default_archive_path
from extpack.packaging.collector import collect
from extpack.packaging.hooks import CommandRunner, PackageManagerRunner, run_prepublish
from extpack.packaging.identity import compute_directory_name
from extpack.packaging.installer import ExtensionInstaller, resolve_extensions_root
from extpack.packaging.manifest import ExtensionManifest, load_manifest, require_known_publisher
from extpack.packaging.publish import RegistryEntry, build_registry_entry
from extpack.packaging.scanner import InstalledExtension

PathLike = Union[str, Path]


@dataclass(frozen=True)
class CommandSettings:
    """The configuration values the commands read."""

    manifest_file: str
    readme_file: str
    changelog_file: str
    output_dir: str
    archive_suffix: str
    prepublish_script: str
    package_manager: str
    app_name: str
    extensions_dir: Optional[str]
    publish_timeout: float

    @classmethod
    def from_config(cls, config: Optional[ConfigManager] = None) -> CommandSettings:
        if config is None:
            defaults = ConfigSchema()

            def get(key: str) -> Any:
                section, name = key.split(".", 1)
                return getattr(defaults, section)[name]
        else:
            def get(key: str) -> Any:
                return config.get(key)

        extensions_dir = get("install.extensions_dir")
        return cls(
            manifest_file=str(get("packaging.manifest_file")),
            readme_file=str(get("packaging.readme_file")),
            changelog_file=str(get("packaging.changelog_file")),
            output_dir=str(get("packaging.output_dir")),
            archive_suffix=str(get("packaging.archive_suffix")),
            prepublish_script=str(get("packaging.prepublish_script")),
            package_manager=str(get("packaging.package_manager")),
            app_name=str(get("install.app_name")),
            extensions_dir=str(extensions_dir) if extensions_dir is not None else None,
            publish_timeout=float(get("publish.timeout")),
        )


def _root(cwd: PathLike) -> Path:
    return Path(os.path.normpath(os.path.abspath(cwd)))


async def _prepare(
        root: Path,
        settings: CommandSettings,
        runner: Optional[CommandRunner],
        logger: logging.Logger
) -> Tuple[ExtensionManifest, List[str]]:
    manifest = await load_manifest(root, settings.manifest_file)
    await run_prepublish(
        root,
        manifest,
        runner=runner or PackageManagerRunner(settings.package_manager),
        script=settings.prepublish_script,
        logger=logger,
    )
    files = collect(
        root,
        manifest,
        manifest_file=settings.manifest_file,
        readme_file=settings.readme_file,
        changelog_file=settings.changelog_file,
        output_dir=settings.output_dir,
        logger=logger,
    )
    return manifest, files


def _installer(
        settings: CommandSettings,
        extensions_dir: Optional[PathLike],
        home: Optional[PathLike],
        logger: logging.Logger
) -> ExtensionInstaller:
    root = resolve_extensions_root(
        app_name=settings.app_name,
        home=home,
        extensions_dir=extensions_dir if extensions_dir is not None else settings.extensions_dir,
        logger=logger,
    )
    return ExtensionInstaller(root, manifest_file=settings.manifest_file, logger=logger)


async def package_command(
        cwd: PathLike,
        package_path: Optional[PathLike] = None,
        runner: Optional[CommandRunner] = None,
        config: Optional[ConfigManager] = None,
        logger: Optional[logging.Logger] = None
) -> Path:
    """Package the extension at ``cwd`` into an archive.

    Args:
        cwd: The package root
        package_path: Archive path, relative to the process working directory;
            defaults to ``<cwd>/<id>-<version><suffix>``
        runner: Command runner for the prepublish hook
        config: Configuration manager; schema defaults are used when omitted
        logger: Logger for progress messages

    Returns:
        Path of the written archive
    """
    logger = logger or logging.getLogger("package")
    settings = CommandSettings.from_config(config)
    root = _root(cwd)

    manifest, files = await _prepare(root, settings, runner, logger)
    dirname = compute_directory_name(manifest)
    if package_path is not None:
        output_path = Path(os.path.normpath(os.path.abspath(package_path)))
    else:
        output_path = default_archive_path(root, dirname, settings.archive_suffix)

    logger.info(f"Packaging {manifest.id} {manifest.version}")
    archive = await asyncio.to_thread(ExtensionArchive.create, root, files, output_path, logger)
    logger.info(f"Wrote {archive.path}")
    return archive.path


async def install_command(
        cwd: PathLike,
        extensions_dir: Optional[PathLike] = None,
        home: Optional[PathLike] = None,
        runner: Optional[CommandRunner] = None,
        config: Optional[ConfigManager] = None,
        logger: Optional[logging.Logger] = None
) -> Path:
    """Install the extension at ``cwd`` into the host application.

    Every installed version with the same id is removed first.

    Args:
        cwd: The package root
        extensions_dir: Extensions directory; detected when omitted
        home: Home directory used for detection; defaults to the user's home
        runner: Command runner for the prepublish hook
        config: Configuration manager; schema defaults are used when omitted
        logger: Logger for progress messages

    Returns:
        The install directory
    """
    logger = logger or logging.getLogger("install")
    settings = CommandSettings.from_config(config)
    root = _root(cwd)

    manifest, files = await _prepare(root, settings, runner, logger)
    require_known_publisher(manifest)

    installer = _installer(settings, extensions_dir, home, logger)
    logger.info(f"Installing {manifest.id} {manifest.version} into {installer.extensions_dir}")
    return await installer.install(root, files, manifest)


async def uninstall_command(
        cwd: PathLike,
        extensions_dir: Optional[PathLike] = None,
        home: Optional[PathLike] = None,
        config: Optional[ConfigManager] = None,
        logger: Optional[logging.Logger] = None
) -> List[Path]:
    """Remove every installed version of the extension at ``cwd``.

    Returns:
        The removed install directories
    """
    logger = logger or logging.getLogger("uninstall")
    settings = CommandSettings.from_config(config)
    manifest = await load_manifest(_root(cwd), settings.manifest_file)

    installer = _installer(settings, extensions_dir, home, logger)
    removed = await installer.uninstall(manifest.id)
    if not removed:
        logger.info(f"{manifest.id} is not installed in {installer.extensions_dir}")
    return removed


async def list_command(
        extensions_dir: Optional[PathLike] = None,
        home: Optional[PathLike] = None,
        config: Optional[ConfigManager] = None,
        logger: Optional[logging.Logger] = None
) -> List[InstalledExtension]:
    """List the installed extensions."""
    logger = logger or logging.getLogger("list")
    settings = CommandSettings.from_config(config)
    return await _installer(settings, extensions_dir, home, logger).list_installed()


async def publish_command(
        cwd: PathLike,
        foxe: str,
        version: Optional[str] = None,
        readme: Optional[str] = None,
        changelog: Optional[str] = None,
        archive_path: Optional[PathLike] = None,
        check_urls: bool = False,
        config: Optional[ConfigManager] = None,
        logger: Optional[logging.Logger] = None
) -> RegistryEntry:
    """Build the registry entry for the released extension at ``cwd``.

    Args:
        cwd: The package root
        foxe: Download URL of the released archive
        version: Released version; defaults to the manifest version
        readme: README URL; derived from a GitHub homepage when omitted
        changelog: CHANGELOG URL; derived from a GitHub homepage when omitted
        archive_path: Local copy of the released archive, relative to the process
            working directory
        check_urls: Check the readme, changelog and archive URLs over HTTP
        config: Configuration manager; schema defaults are used when omitted
        logger: Logger for progress messages

    Returns:
        The registry entry
    """
    logger = logger or logging.getLogger("publish")
    settings = CommandSettings.from_config(config)
    root = _root(cwd)
    manifest = await load_manifest(root, settings.manifest_file)

    if archive_path is not None:
        archive_path = Path(os.path.normpath(os.path.abspath(archive_path)))

    return await build_registry_entry(
        root,
        manifest,
        foxe=foxe,
        version=version,
        readme=readme,
        changelog=changelog,
        archive_path=archive_path,
        archive_suffix=settings.archive_suffix,
        manifest_file=settings.manifest_file,
        verify_urls=check_urls,
        timeout=settings.publish_timeout,
        logger=logger,
    )
