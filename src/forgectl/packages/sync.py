"""Dependency synchronization and restart signalling.

Python caches imports per process, so packages installed after startup may
not be picked up cleanly. When an install changes the shared tree the host
exits with :data:`RESTART_EXIT_CODE` and the launcher re-runs the same
command line once, with ``FORGE_RESTARTED=1`` so a second restart request
becomes an error rather than a loop.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from forgectl.config.models import InstallMode
from forgectl.config.settings import ForgeSettings
from forgectl.errors import DependencyInstallError
from forgectl.packages.manager import PackageManager

logger = logging.getLogger(__name__)

RESTART_EXIT_CODE = 42
RESTARTED_ENV_VAR = "FORGE_RESTARTED"

INSTALL_HINT = "Run: forge module install"


def _missing_message(missing: Sequence[str]) -> str:
    listed = "\n".join(f"  - {dep}" for dep in missing)
    return f"Missing dependencies:\n{listed}\n\n{INSTALL_HINT}"


def sync_dependencies(deps: Sequence[str], mode: InstallMode, manager: PackageManager) -> bool:
    """Install any declared dependency missing from the shared tree.

    Returns True when something was installed and the manifest changed,
    meaning the caller should restart.

    Raises:
        DependencyInstallError: dependencies are missing in manual mode, or
            an install failed.
    """
    manager.ensure_home()
    missing = manager.missing(deps)
    if not missing:
        logger.debug("All %d dependencies installed", len(deps))
        return False

    if mode == "manual":
        raise DependencyInstallError(_missing_message(missing))
    if mode == "ask":
        logger.warning("Install mode 'ask' is not supported, installing automatically")

    logger.info("Installing missing dependencies: %s", ", ".join(missing))
    changed = False
    for dep in missing:
        if manager.install(dep):
            changed = True
    return changed


def auto_install(settings: ForgeSettings, manager: PackageManager) -> bool:
    """Run dependency sync for an invocation.

    Returns True when the process must restart.

    Raises:
        DependencyInstallError: dependencies are missing and cannot be
            installed (offline, manual, failed) or a restarted process
            still needs another restart.
    """
    deps = settings.dependencies
    if not deps:
        return False

    if settings.offline and settings.install_mode == "auto":
        manager.ensure_home()
        missing = manager.missing(deps)
        if missing:
            msg = "Offline mode: cannot install dependencies.\n" + _missing_message(missing)
            raise DependencyInstallError(msg)
        return False

    try:
        changed = sync_dependencies(deps, settings.install_mode, manager)
    except DependencyInstallError as exc:
        if settings.install_mode == "manual":
            raise
        msg = f"Dependency installation failed: {exc.message}\n\n{INSTALL_HINT}"
        raise DependencyInstallError(msg) from exc

    if changed and settings.is_restarted:
        msg = (
            "Dependencies changed again after restart; refusing to restart twice.\n"
            f"{INSTALL_HINT}"
        )
        raise DependencyInstallError(msg)
    if changed:
        logger.info("Dependencies installed, restarting")
    return changed
