"""``forge module ...``: manage the shared install tree for this project."""

from __future__ import annotations

from typing import Any

import click

from forgectl.command import ForgeContext, die, get_logger
from forgectl.modules.alias import alias_target, ensure_alias
from forgectl.packages.sync import sync_dependencies

forge_module = {
    "group": "module",
    "description": "Manage shared modules and dependencies",
}

log = get_logger("module")


class _Install:
    description = "Install declared dependencies into the shared tree"
    usage = "[DEPENDENCY]..."

    def execute(self, options: dict[str, Any], args: list[Any], context: ForgeContext) -> None:
        deps = [str(a) for a in args] or list(context.config.dependencies)
        if not deps:
            click.echo("No dependencies declared.")
            return
        manager = context.forge.manager
        missing = manager.missing(deps)
        if not missing:
            click.echo("All dependencies are installed.")
            return
        sync_dependencies(missing, "auto", manager)
        for dep in missing:
            click.echo(f"Installed {dep}")


class _List:
    description = "List dependencies recorded in the shared manifest"

    def execute(self, options: dict[str, Any], args: list[Any], context: ForgeContext) -> None:
        installed = context.forge.manager.installed()
        if not installed:
            click.echo("No dependencies installed.")
            return
        width = max(len(name) for name in installed)
        for name, spec in sorted(installed.items()):
            click.echo(f"{name.ljust(width)}  {spec}")


class _Alias:
    description = "Show the shared-tree alias for this project's .forge directory"

    def execute(self, options: dict[str, Any], args: list[Any], context: ForgeContext) -> None:
        project_root = context.forge.project_root
        if project_root is None:
            die("Not inside a forge project (no .forge/ directory found)")
        link = ensure_alias(project_root, context.forge.forge_home)
        log.debug("Alias ready", alias=str(link))
        click.echo(f"{link} -> {alias_target(project_root)}")


commands = {"install": _Install, "list": _List, "alias": _Alias}
