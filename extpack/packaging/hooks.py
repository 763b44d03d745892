"""Prepublish hook execution.

An extension may declare a package-manager script that builds it before it
is packaged or installed. The script runs through a :class:`CommandRunner`
so tests and embedders can substitute their own process handling.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from extpack.packaging.manifest import ExtensionManifest
from extpack.utils.exceptions import HookFailed, HookSpawnError

DEFAULT_PREPUBLISH_SCRIPT = "lichtblick:prepublish"
DEFAULT_PACKAGE_MANAGER = "npm"


@runtime_checkable
class CommandRunner(Protocol):
    """Runs a named package-manager script in a directory."""

    async def run_script(self, script: str, cwd: Path) -> int:
        """Run ``script`` with ``cwd`` as working directory and return its exit status.

        Raises:
            HookSpawnError: If the process cannot be started
        """
        ...


class PackageManagerRunner:
    """Runs scripts with ``<tool> run <script>``, sharing this process's stdio.

    Attributes:
        tool: Package manager executable name, e.g. ``npm``
    """

    def __init__(self, tool: str = DEFAULT_PACKAGE_MANAGER) -> None:
        self.tool = tool

    async def run_script(self, script: str, cwd: Path) -> int:
        executable = shutil.which(self.tool)
        if executable is None:
            raise HookSpawnError(
                f"Failed to start '{self.tool} run {script}': {self.tool} was not found on PATH",
                command=f"{self.tool} run {script}",
            )

        try:
            process = await asyncio.create_subprocess_exec(executable, "run", script, cwd=str(cwd))
        except OSError as e:
            raise HookSpawnError(
                f"Failed to start '{self.tool} run {script}': {e}",
                command=f"{self.tool} run {script}",
            ) from e

        return await process.wait()


async def run_prepublish(
        package_root: Union[str, Path],
        manifest: ExtensionManifest,
        runner: Optional[CommandRunner] = None,
        script: str = DEFAULT_PREPUBLISH_SCRIPT,
        logger: Optional[logging.Logger] = None
) -> None:
    """Run the manifest's prepublish script, if it declares one.

    Args:
        package_root: The package root, used as working directory
        manifest: The validated manifest
        runner: Command runner; defaults to :class:`PackageManagerRunner`
        script: Name of the prepublish script
        logger: Logger for progress messages

    Raises:
        HookFailed: If the script exits with a non-zero status
        HookSpawnError: If the script process cannot be started
    """
    if not manifest.has_script(script):
        return

    logger = logger or logging.getLogger("hooks")
    runner = runner or PackageManagerRunner()
    tool = getattr(runner, "tool", "script runner")

    logger.info(f"Executing prepublish script '{tool} run {script}'...")
    exit_code = await runner.run_script(script, Path(package_root))
    if exit_code != 0:
        raise HookFailed(
            f"{tool} failed with exit code {exit_code}",
            exit_code=exit_code,
            command=f"{tool} run {script}",
        )
