"""Extension packaging pipeline.

This package provides manifest validation, file collection, archive creation,
installation and registry entries for extensions.
"""

from extpack.packaging.archive import ExtensionArchive, archive_name, default_archive_path
from extpack.packaging.collector import collect, in_directory
from extpack.packaging.commands import (
    install_command,
    list_command,
    package_command,
    publish_command,
    uninstall_command,
)
from extpack.packaging.hooks import CommandRunner, PackageManagerRunner, run_prepublish
from extpack.packaging.identity import (
    compute_directory_name,
    compute_id,
    normalize_publisher,
    parse_package_name,
)
from extpack.packaging.installer import ExtensionInstaller, resolve_extensions_root
from extpack.packaging.manifest import ExtensionManifest, load_manifest, parse_manifest
from extpack.packaging.publish import RegistryEntry, build_registry_entry
from extpack.packaging.scanner import InstalledExtension, scan_extensions
