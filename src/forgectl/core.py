"""Forge: the host object that owns one invocation.

Boot order:
  1. prepare the shared tree and put its ``site-packages`` on ``sys.path``
  2. sync declared dependencies (may request a restart)
  3. load builtin command modules
  4. resolve, load, and discover each declared module in order

The command registry is built fresh here every run; nothing about the
command tree is cached between invocations.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path

from forgectl.builtins import BUILTIN_MODULES
from forgectl.commands._context import ForgeContext
from forgectl.commands.registry import CommandRegistry
from forgectl.config.settings import ForgeSettings
from forgectl.errors import ExitNotification
from forgectl.modules.discovery import discover_commands
from forgectl.modules.loader import ensure_on_sys_path, load_module
from forgectl.modules.resolver import resolve_module
from forgectl.output.console import resolve_color
from forgectl.packages.manager import PackageManager
from forgectl.packages.sync import RESTART_EXIT_CODE, auto_install
from forgectl.state import StateManager

logger = logging.getLogger(__name__)


class Forge:
    """Everything one ``forge`` invocation needs, in one place.

    Args:
        settings: Frozen settings for this invocation.
        manager: Shared-tree package manager (tests inject one with a fake
            pip runner).
    """

    def __init__(self, settings: ForgeSettings, *, manager: PackageManager | None = None) -> None:
        self.settings = settings
        self.manager = manager or PackageManager()
        self.registry = CommandRegistry()
        self.color = resolve_color(settings.color_mode)
        self._state: StateManager | None = None

    @property
    def project_root(self) -> Path | None:
        return self.settings.project_root

    @property
    def forge_home(self) -> Path:
        return self.manager.home

    @property
    def state(self) -> StateManager | None:
        """State store for the current project (None outside a project)."""
        if self._state is None and self.project_root is not None:
            self._state = StateManager(self.project_root)
        return self._state

    # ------------------------------------------------------------------
    # Boot
    # ------------------------------------------------------------------

    def boot(self, *, install_only: bool = False) -> None:
        """Run every boot step. Raises ExitNotification(42) to restart.

        With *install_only*, dependency sync and project modules are skipped
        so `forge module install` works while dependencies are missing.
        """
        self.prepare()
        if not install_only:
            self.sync_dependencies()
        self.load_builtins()
        if not install_only:
            self.load_modules()

    def prepare(self) -> None:
        self.manager.ensure_home()
        ensure_on_sys_path(self.manager.site_packages)

    def sync_dependencies(self) -> None:
        if auto_install(self.settings, self.manager):
            raise ExitNotification(RESTART_EXIT_CODE, "Dependencies changed, restart required")

    def load_builtins(self) -> None:
        for name in BUILTIN_MODULES:
            module = importlib.import_module(name)
            self.registry.register(discover_commands(module, name))

    def load_modules(self) -> None:
        if not self.settings.modules:
            return
        base = self.project_root or self.settings.user_dir
        for text in self.settings.modules:
            resolved = resolve_module(text, base, forge_home=self.forge_home)
            module = load_module(resolved, base, forge_home=self.forge_home)
            discovered = discover_commands(module, resolved.specifier)
            self.registry.register(discovered)
            logger.debug(
                "Loaded %s from %s (%s)", text, resolved.path, resolved.tier.value
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def command_settings(self, group_name: str | None, command_name: str) -> dict:
        """The ``settings`` slice for one command."""
        key = f"{group_name}.{command_name}" if group_name else command_name
        return dict(self.settings.settings.get(key, {}))

    def make_context(self, group_name: str | None, command_name: str) -> ForgeContext:
        return ForgeContext(
            forge=self,
            config=self.settings,
            settings=self.command_settings(group_name, command_name),
            state=self.state,
            group_name=group_name,
            command_name=command_name,
            log_level=self.settings.effective_log_level,
            log_format=self.settings.log_format,
            color_mode=self.settings.color_mode,
        )
