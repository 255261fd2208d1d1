"""Custom Click base classes for forge command trees.

:class:`ForgeGroup` refuses to run without a subcommand: it prints
``ERROR: subcommand required`` and its help to stderr and exits 1.
:class:`ForgeClickCommand` remembers the :class:`CommandDefinition` it was
built from so help and tests can reach it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from forgectl.output.console import print_error

if TYPE_CHECKING:
    from forgectl.modules.discovery import CommandDefinition

SUBCOMMAND_REQUIRED = "subcommand required"


class ForgeClickCommand(click.Command):
    """Click Command that carries its source :class:`CommandDefinition`."""

    def __init__(
        self,
        *args: Any,
        definition: CommandDefinition | None = None,
        group_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.definition = definition
        self.group_name = group_name


class ForgeGroup(click.Group):
    """Click Group that treats a missing subcommand as a usage error.

    Sets ``command_class = ForgeClickCommand`` so subcommands declared with
    ``@group.command()`` get the forge command class too.
    """

    command_class = ForgeClickCommand

    def __init__(self, *args: Any, color: bool = False, **kwargs: Any) -> None:
        kwargs["invoke_without_command"] = True
        kwargs["callback"] = self._require_subcommand(kwargs.get("callback"))
        super().__init__(*args, **kwargs)
        self.color = color

    def _require_subcommand(self, callback: Callable[..., Any] | None) -> Callable[..., Any]:
        def run(*args: Any, **kwargs: Any) -> Any:
            ctx = click.get_current_context()
            rv = callback(*args, **kwargs) if callback is not None else None
            if ctx.invoked_subcommand is None and not ctx.resilient_parsing:
                print_error(SUBCOMMAND_REQUIRED, color=self.color)
                click.echo(ctx.get_help(), err=True)
                ctx.exit(1)
            return rv

        return run
