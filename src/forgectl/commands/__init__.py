"""Command tree assembly for forgectl.

Provides register_commands(), which binds everything the host discovered
(builtins first, then project modules) onto the root CLI group.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click

    from forgectl.core import Forge


def register_commands(cli: click.Group, forge: Forge) -> None:
    """Register all discovered groups and top-level commands on the root CLI group."""
    from forgectl.commands.binder import bind_registry

    bind_registry(forge.registry, cli, forge)
