"""Filesystem locations for the shared install tree and user config.

The shared install tree (``$FORGE_HOME``, default ``~/.forge``) holds the
pip-managed ``site-packages/`` directory and ``manifest.json``. It is shared
by every project and every running instance of forgectl.
"""

from __future__ import annotations

import os
from pathlib import Path

FORGE_HOME_ENV_VAR = "FORGE_HOME"
FORGE_DIR_NAME = ".forge"
SITE_PACKAGES_DIR = "site-packages"
MANIFEST_FILENAME = "manifest.json"
ALIAS_ROOT_PACKAGE = "_forge_projects"


def forge_home() -> Path:
    """Return ``$FORGE_HOME`` or ``~/.forge``."""
    env = os.environ.get(FORGE_HOME_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".forge"


def site_packages_dir(home: Path | None = None) -> Path:
    """Directory pip installs shared dependencies into (``--target``)."""
    return (home or forge_home()) / SITE_PACKAGES_DIR


def manifest_path(home: Path | None = None) -> Path:
    """The shared install manifest recording declared dependencies."""
    return (home or forge_home()) / MANIFEST_FILENAME


def alias_root(home: Path | None = None) -> Path:
    """Namespace package directory that holds per-project alias buckets."""
    return site_packages_dir(home) / ALIAS_ROOT_PACKAGE


def user_config_dir() -> Path:
    """XDG config directory for user-level forge config."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else Path.home() / ".config"
    return root / "forge"
