"""Command registry: the two-level tree of discovered commands.

One registry per invocation. Builtins register first, then project modules
in declaration order. Registering a group that already exists adds to its
command map instead of replacing it, so several modules can contribute to
one group (``./aws/s3`` and ``@team/aws`` both land in ``aws``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from forgectl.modules.discovery import CommandDefinition, DiscoveredModule

logger = logging.getLogger(__name__)


@dataclass
class CommandGroup:
    """A named group of commands (``forge <group> <command>``)."""

    name: str
    description: str | None = None
    commands: dict[str, CommandDefinition] = field(default_factory=dict)


@dataclass
class CommandRegistry:
    """Top-level commands plus groups, keyed by name."""

    top_level: dict[str, CommandDefinition] = field(default_factory=dict)
    groups: dict[str, CommandGroup] = field(default_factory=dict)

    def register(self, discovered: DiscoveredModule) -> None:
        """Add everything *discovered* contributes. Later names win."""
        if discovered.group_name is None:
            for name in discovered.commands:
                if name in self.top_level:
                    logger.debug("Top-level command %s overridden", name)
            self.top_level.update(discovered.commands)
            return

        group = self.groups.get(discovered.group_name)
        if group is None:
            group = CommandGroup(name=discovered.group_name)
            self.groups[group.name] = group
        if group.description is None and discovered.description:
            group.description = discovered.description
        for name in discovered.commands:
            if name in group.commands:
                logger.debug("Command %s %s overridden", group.name, name)
        group.commands.update(discovered.commands)

    def get(self, group_name: str | None, command_name: str) -> CommandDefinition | None:
        """Look up one command; ``group_name=None`` means top-level."""
        if group_name is None:
            return self.top_level.get(command_name)
        group = self.groups.get(group_name)
        return group.commands.get(command_name) if group else None
