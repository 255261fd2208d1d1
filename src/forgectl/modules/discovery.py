"""Command discovery: which bindings of a loaded module are commands.

A command is anything exposing a string ``description`` and a callable
``execute``. It can be an object (attribute access), a mapping (key access)
or a class, which is instantiated with no arguments first::

    hello = {"description": "says hi", "execute": lambda o, a, ctx: print("hi")}

    class Deploy:
        description = "Deploy the site"
        def execute(self, options, args, context): ...

Two bindings are special: ``forge_module`` holds group metadata and
``commands`` holds a mapping (or object) of commands keyed by name.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Literal

from forgectl.modules.specifier import Specifier, parse_specifier

logger = logging.getLogger(__name__)

METADATA_BINDING = "forge_module"
COMMANDS_BINDING = "commands"


@dataclass(frozen=True)
class CommandDefinition:
    """A normalized command, independent of how the author spelled it."""

    name: str
    description: str
    execute: Callable[..., Any]
    usage: str | None = None
    define_command: Callable[[Any], Any] | None = None


@dataclass(frozen=True)
class ModuleMetadata:
    """Group placement for a module's commands.

    ``group=False`` registers the commands at top level; ``None`` derives
    the group name from the module specifier.
    """

    group: str | Literal[False] | None = None
    description: str | None = None


@dataclass(frozen=True)
class DiscoveredModule:
    """Everything a module contributes to the command tree."""

    group_name: str | None
    description: str | None
    commands: dict[str, CommandDefinition] = field(default_factory=dict)


def _read(obj: object, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def is_command_like(obj: object) -> bool:
    """Structural check: string ``description`` and callable ``execute``."""
    return isinstance(_read(obj, "description"), str) and callable(_read(obj, "execute"))


def _instantiate(name: str, obj: object) -> object | None:
    if not inspect.isclass(obj):
        return obj
    if not is_command_like(obj):
        return None
    try:
        return obj()
    except Exception:
        logger.warning("Failed to instantiate command class %s", name, exc_info=True)
        return None


def _definition(name: str, obj: object) -> CommandDefinition | None:
    candidate = _instantiate(name, obj)
    if candidate is None or not is_command_like(candidate):
        return None
    usage = _read(candidate, "usage")
    define_command = _read(candidate, "define_command")
    return CommandDefinition(
        name=name,
        description=_read(candidate, "description"),
        execute=_read(candidate, "execute"),
        usage=usage if isinstance(usage, str) else None,
        define_command=define_command if callable(define_command) else None,
    )


def read_metadata(module: ModuleType) -> ModuleMetadata:
    """Read the ``forge_module`` binding, tolerating its absence."""
    raw = getattr(module, METADATA_BINDING, None)
    if raw is None:
        return ModuleMetadata()
    if isinstance(raw, ModuleMetadata):
        return raw

    group = _read(raw, "group")
    if group is not None and group is not False and not isinstance(group, str):
        logger.warning("Ignoring invalid group %r in %s", group, module.__name__)
        group = None
    description = _read(raw, "description")
    if description is not None and not isinstance(description, str):
        description = None
    return ModuleMetadata(group=group, description=description)


def command_name(export_name: str) -> str:
    """CLI name for an export; ``commands`` keys and named bindings alike.

    Examples:
        >>> command_name("say_hi")
        'say-hi'
        >>> command_name("deploy")
        'deploy'
    """
    return export_name.replace("_", "-")


def default_group_name(specifier: Specifier) -> str:
    """Group name derived from the last specifier segment.

    Examples:
        >>> default_group_name(parse_specifier("./website"))
        'website'
        >>> default_group_name(parse_specifier("forge_standard/hello"))
        'hello'
        >>> default_group_name(parse_specifier("./tools/deploy.py"))
        'deploy'
    """
    name = specifier.name
    if name.endswith(".py"):
        name = name[: -len(".py")]
    return name


def _exported_commands(module: ModuleType) -> dict[str, object]:
    raw = getattr(module, COMMANDS_BINDING, None)
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return {str(k): v for k, v in raw.items()}
    if is_command_like(raw) or inspect.isclass(raw):
        logger.warning(
            "'%s' in %s should map names to commands, not be a command",
            COMMANDS_BINDING,
            module.__name__,
        )
        return {}
    if not hasattr(raw, "__dict__"):
        logger.warning(
            "Ignoring '%s' in %s: expected a mapping or object, got %s",
            COMMANDS_BINDING,
            module.__name__,
            type(raw).__name__,
        )
        return {}
    return {k: v for k, v in vars(raw).items() if not k.startswith("_")}


def _named_bindings(module: ModuleType) -> dict[str, object]:
    found: dict[str, object] = {}
    for attr, obj in vars(module).items():
        if attr.startswith("_") or attr in (METADATA_BINDING, COMMANDS_BINDING):
            continue
        if inspect.ismodule(obj):
            continue
        if (inspect.isclass(obj) or inspect.isfunction(obj)) and obj.__module__ != module.__name__:
            continue  # imported, not defined here
        found[attr] = obj
    return found


def discover_commands(module: ModuleType, specifier: str | Specifier) -> DiscoveredModule:
    """Collect every command a module exports, plus its group placement."""
    spec = specifier if isinstance(specifier, Specifier) else parse_specifier(specifier)
    metadata = read_metadata(module)

    if metadata.group is False:
        group_name = None
    elif metadata.group:
        group_name = metadata.group
    else:
        group_name = default_group_name(spec)

    commands: dict[str, CommandDefinition] = {}
    for source in (_exported_commands(module), _named_bindings(module)):
        for name, obj in source.items():
            name = command_name(name)
            definition = _definition(name, obj)
            if definition is None:
                continue
            if name in commands:
                logger.debug("Command %s redefined in %s", name, module.__name__)
            commands[name] = definition

    logger.debug(
        "Discovered %d command(s) in %s (group=%s)",
        len(commands),
        spec.text,
        group_name or "<top-level>",
    )
    return DiscoveredModule(
        group_name=group_name,
        description=metadata.description,
        commands=commands,
    )
