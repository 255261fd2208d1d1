"""Top-level builtin commands: ``forge cd`` and ``forge home``."""

from __future__ import annotations

import os
import subprocess
from typing import Any

import click

from forgectl.command import ForgeContext, ModuleMetadata, exit_with, get_logger

forge_module = ModuleMetadata(group=False)

log = get_logger("core")


class _Cd:
    description = "Open a shell in the forge home directory"

    def execute(self, options: dict[str, Any], args: list[Any], context: ForgeContext) -> None:
        home = context.forge.forge_home
        shell = os.environ.get("SHELL") or "/bin/sh"
        env = {**os.environ, "FORGE_HOME": str(home)}
        log.debug("Starting shell", shell=shell, cwd=str(home))
        code = subprocess.call([shell], cwd=home, env=env)
        if code:
            exit_with(code)


class _Home:
    description = "Print the forge home directory"

    def execute(self, options: dict[str, Any], args: list[Any], context: ForgeContext) -> None:
        click.echo(str(context.forge.forge_home))


commands = {"cd": _Cd, "home": _Home}
