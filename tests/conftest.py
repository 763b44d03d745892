"""Pytest configuration and fixtures for extpack tests."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio

from extpack.core.config_manager import ConfigManager


class FakeRunner:
    """Command runner that records scripts instead of spawning a process."""

    tool = "npm"

    def __init__(self, exit_code: int = 0, on_run: Optional[Callable[[Path], None]] = None) -> None:
        self.exit_code = exit_code
        self.on_run = on_run
        self.calls: List[tuple] = []

    async def run_script(self, script: str, cwd: Path) -> int:
        self.calls.append((script, cwd))
        if self.on_run is not None:
            self.on_run(cwd)
        return self.exit_code


def write_package(
        root: Path,
        manifest: Optional[Dict[str, Any]] = None,
        readme: bool = True,
        changelog: bool = True,
        dist_files: Optional[Dict[str, str]] = None
) -> Path:
    """Write a complete extension package root below ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    if manifest is None:
        manifest = {
            "name": "@acme/widget",
            "version": "1.0.0",
            "main": "./dist/extension.js",
        }
    (root / "package.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    if readme:
        (root / "README.md").write_text("# Widget\n", encoding="utf-8")
    if changelog:
        (root / "CHANGELOG.md").write_text("## 1.0.0\n", encoding="utf-8")

    if dist_files is None:
        dist_files = {"extension.js": "module.exports = {};\n"}
    for name, content in dist_files.items():
        path = root / "dist" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def package_root(tmp_path: Path) -> Path:
    """A complete package root for ``@acme/widget`` 1.0.0."""
    return write_package(tmp_path / "widget")


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing package roots below ``tmp_path``."""

    def _make(name: str = "widget", **kwargs: Any) -> Path:
        return write_package(tmp_path / name, **kwargs)

    return _make


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A command runner that succeeds without spawning a process."""
    return FakeRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    """Factory for command runners with a chosen exit code or side effect."""
    return FakeRunner


@pytest_asyncio.fixture
async def config_manager(tmp_path: Path):
    """An initialized ConfigManager reading a file that does not exist."""
    manager = ConfigManager(config_path=tmp_path / "missing.yaml")
    await manager.initialize()
    yield manager
    await manager.shutdown()
