"""Command-line interface for extpack.

This module provides the ``extpack`` command for packaging, installing,
listing and publishing extensions.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from extpack.__version__ import __version__
from extpack.core.config_manager import ConfigManager
from extpack.core.logging_manager import LoggingManager
from extpack.packaging import commands
from extpack.utils.exceptions import ExtpackError


def package_command(args: argparse.Namespace, config: ConfigManager, logging_manager: LoggingManager) -> int:
    """Handle the package command.

    Args:
        args: Command-line arguments
        config: Initialized configuration manager
        logging_manager: Initialized logging manager

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        archive_path = asyncio.run(commands.package_command(
            args.cwd,
            package_path=args.out,
            config=config,
            logger=logging_manager.get_logger("package"),
        ))
        print(archive_path)
        return 0

    except ExtpackError as e:
        print(f"Error packaging extension: {e}", file=sys.stderr)
        return 1


def install_command(args: argparse.Namespace, config: ConfigManager, logging_manager: LoggingManager) -> int:
    """Handle the install command."""
    try:
        install_dir = asyncio.run(commands.install_command(
            args.cwd,
            extensions_dir=args.extensions_dir,
            config=config,
            logger=logging_manager.get_logger("install"),
        ))
        print(install_dir)
        return 0

    except ExtpackError as e:
        print(f"Error installing extension: {e}", file=sys.stderr)
        return 1


def uninstall_command(args: argparse.Namespace, config: ConfigManager, logging_manager: LoggingManager) -> int:
    """Handle the uninstall command."""
    try:
        removed = asyncio.run(commands.uninstall_command(
            args.cwd,
            extensions_dir=args.extensions_dir,
            config=config,
            logger=logging_manager.get_logger("uninstall"),
        ))
        for directory in removed:
            print(directory)
        return 0

    except ExtpackError as e:
        print(f"Error uninstalling extension: {e}", file=sys.stderr)
        return 1


def list_command(args: argparse.Namespace, config: ConfigManager, logging_manager: LoggingManager) -> int:
    """Handle the list command."""
    try:
        extensions = asyncio.run(commands.list_command(
            extensions_dir=args.extensions_dir,
            config=config,
            logger=logging_manager.get_logger("list"),
        ))

        if not extensions:
            print("No extensions installed")
            return 0

        print(f"{'ID':<40} {'VERSION':<15} DIRECTORY")
        print("-" * 80)
        for extension in extensions:
            print(f"{extension.id:<40} {extension.manifest.version:<15} {extension.directory}")
        return 0

    except ExtpackError as e:
        print(f"Error listing extensions: {e}", file=sys.stderr)
        return 1


def publish_command(args: argparse.Namespace, config: ConfigManager, logging_manager: LoggingManager) -> int:
    """Handle the publish command.

    Prints the registry entry as JSON on stdout.
    """
    try:
        entry = asyncio.run(commands.publish_command(
            args.cwd,
            foxe=args.foxe,
            version=args.release_version,
            readme=args.readme,
            changelog=args.changelog,
            archive_path=args.archive,
            check_urls=args.check_urls,
            config=config,
            logger=logging_manager.get_logger("publish"),
        ))
        print(json.dumps(entry.model_dump(), indent=2))
        return 0

    except ExtpackError as e:
        print(f"Error publishing extension: {e}", file=sys.stderr)
        return 1


COMMANDS = {
    "package": package_command,
    "install": install_command,
    "uninstall": uninstall_command,
    "list": list_command,
    "publish": publish_command,
}


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="extpack",
        description="Package and install extensions",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Configuration file (YAML or JSON)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Package command
    package_parser = subparsers.add_parser("package", help="Package an extension into an archive")
    package_parser.add_argument("--cwd", default=".", help="Extension package root")
    package_parser.add_argument("-o", "--out", default=None, help="Output archive path")

    # Install command
    install_parser = subparsers.add_parser("install", help="Install an extension locally")
    install_parser.add_argument("--cwd", default=".", help="Extension package root")
    install_parser.add_argument("--extensions-dir", default=None, help="Extensions directory")

    # Uninstall command
    uninstall_parser = subparsers.add_parser("uninstall", help="Remove every installed version of an extension")
    uninstall_parser.add_argument("--cwd", default=".", help="Extension package root")
    uninstall_parser.add_argument("--extensions-dir", default=None, help="Extensions directory")

    # List command
    list_parser = subparsers.add_parser("list", help="List installed extensions")
    list_parser.add_argument("--extensions-dir", default=None, help="Extensions directory")

    # Publish command
    publish_parser = subparsers.add_parser(
        "publish", help="Create a registry entry for a released extension"
    )
    publish_parser.add_argument("--cwd", default=".", help="Extension package root")
    publish_parser.add_argument("--foxe", required=True, help="URL of the released archive")
    publish_parser.add_argument("--version", dest="release_version", default=None, help="Released version")
    publish_parser.add_argument("--readme", default=None, help="URL of the extension README.md file")
    publish_parser.add_argument("--changelog", default=None, help="URL of the extension CHANGELOG.md file")
    publish_parser.add_argument("--archive", default=None, help="Local copy of the released archive")
    publish_parser.add_argument(
        "--check-urls", action="store_true", help="Check that the URLs are reachable"
    )

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line interface.

    Args:
        args: Command-line arguments; defaults to ``sys.argv[1:]``

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(args)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    config = ConfigManager(config_path=args.config)
    logging_manager = LoggingManager(config)
    try:
        asyncio.run(config.initialize())
        if args.verbose:
            config.set("logging.level", "DEBUG")
            config.set("logging.console.level", "DEBUG")
        logging_manager.initialize()
    except ExtpackError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    try:
        return handler(args, config, logging_manager)
    finally:
        logging_manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
