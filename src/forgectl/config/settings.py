"""Unified settings: CLI flags, env vars, and layered config files in one object.

Priority chain (highest to lowest):
  1. Init kwargs: bootstrap CLI flags
  2. Env vars: ``FORGE_*`` prefix
  3. Config files: user, then project, then local, deep-merged
  4. Code defaults: baked into the fields below

Uses Pydantic Settings v2 with a custom :class:`LayeredConfigSource` that
reuses the walk-up discovery and merge logic from
:mod:`forgectl.config.discovery`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from forgectl.config.discovery import load_layered_config, resolve_project_root
from forgectl.config.models import (
    BootstrapConfig,
    ColorMode,
    InstallMode,
    LogFormat,
    snake_case_keys,
)
from forgectl.config.paths import FORGE_DIR_NAME
from forgectl.errors import ConfigError


class LayeredConfigSource(PydanticBaseSettingsSource):
    """Read settings from the merged config layers of a project."""

    def __init__(self, settings_cls: type[BaseSettings], project_root: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = snake_case_keys(load_layered_config(project_root))

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return only keys that are declared fields; unknown keys are ignored."""
        fields = self.settings_cls.model_fields
        return {k: v for k, v in self._data.items() if k in fields}


# Thread-local storage for the project root during construction.
_tls = threading.local()


class ForgeSettings(BaseSettings):
    """Everything one invocation knows about its environment.

    Attributes:
        project_root: Directory containing ``.forge/`` (None outside a project).
        user_dir: Where the user invoked forge from.
        is_restarted: Set by the launcher after a dependency restart.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "FORGE_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved paths (derived, not read from files) ---
    project_root: Path | None = None
    user_dir: Path = Field(default_factory=Path.cwd)

    # --- Bootstrap flags ---
    debug: bool = False
    quiet: bool = False
    silent: bool = False
    log_level: str | None = None
    log_format: LogFormat = "pretty"
    color_mode: ColorMode = "auto"
    is_restarted: bool = False

    # --- Config file fields ---
    modules: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    settings: dict[str, dict[str, Any]] = Field(default_factory=dict)
    install_mode: InstallMode = "auto"
    offline: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the layered config source between env vars and defaults."""
        project_root = getattr(_tls, "project_root", None)
        return (
            init_settings,
            env_settings,
            LayeredConfigSource(settings_cls, project_root),
        )

    @property
    def forge_dir(self) -> Path | None:
        """The project's ``.forge/`` directory."""
        if self.project_root is None:
            return None
        return self.project_root / FORGE_DIR_NAME

    @property
    def effective_log_level(self) -> str:
        """``--log-level`` if given, else derived from debug/quiet/silent."""
        if self.log_level:
            return self.log_level
        if self.debug:
            return "debug"
        if self.silent:
            return "silent"
        if self.quiet:
            return "warn"
        return "info"

    @classmethod
    def from_bootstrap(
        cls,
        bootstrap: BootstrapConfig | None = None,
        *,
        cwd: Path | None = None,
    ) -> ForgeSettings:
        """Construct settings from the bootstrap CLI parse.

        Resolves the project root (``--root`` > ``FORGE_PROJECT`` > walk-up
        from *cwd*), loads its config layers, and applies CLI flags as
        highest-priority overrides. Flags left at their defaults do not
        mask env vars or config values.
        """
        bootstrap = bootstrap or BootstrapConfig()
        user_dir = (cwd or Path.cwd()).resolve()
        project_root = resolve_project_root(bootstrap.root, user_dir)

        overrides = bootstrap.model_dump(exclude={"root"}, exclude_defaults=True)
        _tls.project_root = project_root
        try:
            return cls(project_root=project_root, user_dir=user_dir, **overrides)
        except ValidationError as exc:
            msg = f"Invalid configuration: {exc}"
            raise ConfigError(msg) from exc
        finally:
            _tls.project_root = None


def get_setting(settings: ForgeSettings, command_path: str, key: str, default: Any = None) -> Any:
    """Read one value from the ``settings[command_path]`` slice.

    *command_path* is ``group.command`` (e.g. ``"basic.greet"``) or just the
    command name for top-level commands.
    """
    return settings.settings.get(command_path, {}).get(key, default)
