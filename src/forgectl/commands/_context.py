"""ForgeContext: what a command's ``execute`` receives as its third argument.

Built fresh by the binder for every invocation; nothing in it outlives the
process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from forgectl.config.settings import get_setting

if TYPE_CHECKING:
    from forgectl.config.models import ColorMode, LogFormat
    from forgectl.config.settings import ForgeSettings
    from forgectl.core import Forge
    from forgectl.state import StateManager


@dataclass(frozen=True)
class ForgeContext:
    """Per-invocation context handed to a command.

    Attributes:
        forge: The host that loaded this command.
        config: The merged, frozen settings for this invocation.
        settings: This command's slice of ``config.settings``.
        state: Project/user state store, or None outside a project.
        group_name: Group the command lives in (None for top-level).
        command_name: The command's own name.
    """

    forge: Forge
    config: ForgeSettings
    settings: dict[str, Any]
    state: StateManager | None
    group_name: str | None
    command_name: str
    log_level: str
    log_format: LogFormat
    color_mode: ColorMode

    @property
    def command_path(self) -> str:
        """``group.command`` or just ``command`` for top-level commands."""
        if self.group_name:
            return f"{self.group_name}.{self.command_name}"
        return self.command_name

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        """Logger named after the command, bound to its path."""
        return structlog.get_logger(f"forge.{self.command_path}")

    def get_setting(self, key: str, default: Any = None) -> Any:
        """One value from this command's ``settings`` slice in the config."""
        return get_setting(self.config, self.command_path, key, default)
