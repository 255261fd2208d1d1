"""Bind registry entries to Click commands.

Every command gets one callback that:

1. splits Click's parsed values into ``options`` (from ``click.Option``
   params, keyed by name) and positional ``args`` (from ``click.Argument``
   params, flattened in declaration order);
2. builds a :class:`ForgeContext`;
3. runs ``execute(options, args, context)``, driving a returned awaitable
   to completion with anyio;
4. wraps anything unexpected it raises in :class:`CommandFailedError`.

Commands without ``define_command`` accept any arguments and options and
receive them all, unparsed, as ``args``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any

import anyio
import click

from forgectl.commands._base import ForgeClickCommand, ForgeGroup
from forgectl.commands._context import ForgeContext
from forgectl.errors import CommandFailedError, ExitNotification, FatalError
from forgectl.modules.discovery import CommandDefinition

if TYPE_CHECKING:
    from forgectl.commands.registry import CommandRegistry
    from forgectl.core import Forge

logger = logging.getLogger(__name__)

DEFAULT_ARGS_METAVAR = "[ARGS]..."

# Raised by commands on purpose; reported as-is.
_PASSTHROUGH = (
    FatalError,
    ExitNotification,
    click.ClickException,
    click.Abort,
    click.exceptions.Exit,
)


def split_params(
    command: click.Command, values: dict[str, Any]
) -> tuple[dict[str, Any], list[Any]]:
    """Separate Click's parsed values into ``(options, args)``."""
    options: dict[str, Any] = {}
    args: list[Any] = []
    for param in command.params:
        if param.name is None or param.name not in values:
            continue
        value = values[param.name]
        if isinstance(param, click.Argument):
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                args.extend(value)
            else:
                args.append(value)
        else:
            options[param.name] = value
    return options, args


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def run_execute(
    definition: CommandDefinition,
    options: dict[str, Any],
    args: list[Any],
    context: ForgeContext,
) -> Any:
    """Call ``execute`` and finish it if it returned an awaitable."""
    result = definition.execute(options, args, context)
    if inspect.isawaitable(result):
        result = anyio.run(_await, result)
    return result


def build_command(
    definition: CommandDefinition,
    group_name: str | None,
    forge: Forge,
) -> ForgeClickCommand:
    """Create the Click command for one definition."""
    command_path = f"{group_name} {definition.name}" if group_name else definition.name

    def callback(**values: Any) -> None:
        options, args = split_params(command, values)
        context = forge.make_context(group_name, definition.name)
        logger.debug("Running %s", command_path)
        try:
            run_execute(definition, options, args, context)
        except _PASSTHROUGH:
            raise
        except Exception as exc:
            raise CommandFailedError(command_path, exc) from exc

    command = ForgeClickCommand(
        name=definition.name,
        callback=callback,
        help=definition.description,
        short_help=definition.description,
        definition=definition,
        group_name=group_name,
    )

    if definition.define_command is not None:
        definition.define_command(command)
    else:
        command.params.append(
            click.Argument(
                ["args"],
                nargs=-1,
                type=click.UNPROCESSED,
                metavar=definition.usage or DEFAULT_ARGS_METAVAR,
            )
        )
        command.context_settings["ignore_unknown_options"] = True
    return command


def bind_registry(registry: CommandRegistry, root_group: click.Group, forge: Forge) -> None:
    """Attach every registered command and group to *root_group*."""
    for definition in registry.top_level.values():
        root_group.add_command(build_command(definition, None, forge))

    for group in registry.groups.values():
        if group.name in registry.top_level:
            logger.warning("Group %s shadows a top-level command of the same name", group.name)
        click_group = ForgeGroup(
            name=group.name,
            help=group.description,
            short_help=group.description,
            color=forge.color,
        )
        for definition in group.commands.values():
            click_group.add_command(build_command(definition, group.name, forge))
        root_group.add_command(click_group)
