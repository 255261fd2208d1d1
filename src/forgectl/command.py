"""Public API for command module authors.

A module in ``.forge/`` (or a shared package) imports from here::

    from forgectl.command import ForgeContext, click, get_logger

    forge_module = {"group": "website", "description": "Website tasks"}

    log = get_logger("website")

    class Publish:
        description = "Publish the site"

        def define_command(self, cmd):
            click.option("--dry-run", is_flag=True)(cmd)

        async def execute(self, options, args, context: ForgeContext):
            log.info("Publishing", dry_run=options["dry_run"])

Project-local modules are imported through the shared tree, so everything
here is the same object the host uses.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import Any, Protocol, runtime_checkable

import click
import structlog

from forgectl.commands._context import ForgeContext
from forgectl.errors import die, exit_with
from forgectl.modules.discovery import ModuleMetadata

__all__ = [
    "ForgeCommand",
    "ForgeContext",
    "ModuleMetadata",
    "click",
    "die",
    "exit_with",
    "get_logger",
]


@runtime_checkable
class ForgeCommand(Protocol):
    """Structural type of a command. Mappings with the same keys also work."""

    description: str

    def execute(
        self, options: dict[str, Any], args: list[Any], context: ForgeContext
    ) -> Awaitable[Any] | Any: ...


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for command code, configured by the host (``forge.<name>``)."""
    return structlog.get_logger(f"forge.{name}")
