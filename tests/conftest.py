"""Shared pytest fixtures and test helpers for forgectl tests."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Generator, Sequence
from pathlib import Path

import pytest
from click.testing import CliRunner

from forgectl.config.logging import reset_logging
from forgectl.packages.manager import PackageManager


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Point every user-level location at tmp_path and undo import side effects.

    Tests never touch the real ``~/.forge`` or ``~/.config``. Entries added to
    ``sys.path`` and modules imported from temporary trees are removed again
    so tests stay independent.
    """
    for var in [k for k in os.environ if k.startswith("FORGE_")]:
        monkeypatch.delenv(var)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    home = tmp_path / "_home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("FORGE_HOME", str(tmp_path / "_forge_home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    named_levels = {name: logging.getLogger(name).level for name in ("forgectl", "forge")}
    original_path = sys.path[:]
    original_modules = set(sys.modules)
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    for name, level in named_levels.items():
        logging.getLogger(name).setLevel(level)
    reset_logging()
    sys.path[:] = original_path
    for name in set(sys.modules) - original_modules:
        module = sys.modules.get(name)
        module_file = getattr(module, "__file__", None) or ""
        if name.startswith(("_forge_projects", "forge_module_")) or module_file.startswith(
            str(tmp_path)
        ):
            del sys.modules[name]


@pytest.fixture
def forge_home(tmp_path: Path) -> Path:
    """The isolated ``$FORGE_HOME`` set up by ``_isolated_env``."""
    return tmp_path / "_forge_home"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project: a directory containing ``.forge/``."""
    root = tmp_path / "project"
    (root / ".forge").mkdir(parents=True)
    return root


def _write_module(directory: Path, relative: str, source: str) -> Path:
    """Write a Python file under *directory*, creating parents."""
    path = directory / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path


class FakePip:
    """Stands in for ``python -m pip`` in PackageManager.

    Records every call. ``fail`` makes pip exit non-zero; ``packages`` maps
    a requirement to ``{relative path: source}`` written into ``--target``.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.fail = False
        self.packages: dict[str, dict[str, str]] = {}

    def __call__(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        argv = list(args)
        self.calls.append(argv)
        if self.fail:
            return subprocess.CompletedProcess(argv, 1, stdout="", stderr="no matching distribution")
        target = Path(argv[argv.index("--target") + 1])
        for relative, source in self.packages.get(argv[-1], {}).items():
            _write_module(target, relative, source)
        return subprocess.CompletedProcess(argv, 0, stdout="", stderr="")

    @property
    def installed(self) -> list[str]:
        return [call[-1] for call in self.calls]


@pytest.fixture
def write_module():
    """Helper that writes a Python file: ``write_module(dir, "a/b.py", source)``."""
    return _write_module


@pytest.fixture
def fake_pip() -> FakePip:
    return FakePip()


@pytest.fixture
def manager(forge_home: Path, fake_pip: FakePip) -> PackageManager:
    """PackageManager on the isolated forge home with pip faked out."""
    return PackageManager(forge_home, runner=fake_pip)
