"""Configuration types shared by the bootstrap parse and the settings layer.

Sparse config contract: defaults are baked into code, ``.forge/config.yml``
only contains what a project needs (usually just ``modules``).
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel

InstallMode = Literal["auto", "manual", "ask"]
ColorMode = Literal["auto", "always", "never"]
LogFormat = Literal["pretty", "json"]

LOG_LEVELS = ("silent", "trace", "debug", "info", "warn", "error", "fatal")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_case_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Rewrite top-level ``camelCase`` keys (``installMode``) as ``snake_case``.

    Nested mappings are left alone: ``settings`` keys are command paths and
    their contents belong to the commands.
    """
    return {_CAMEL_BOUNDARY.sub(r"_\1", key).lower(): value for key, value in data.items()}


# --- Bootstrap (first, permissive CLI parse) ---


class BootstrapConfig(BaseModel):
    """Global CLI flags extracted before any module is loaded."""

    model_config = {"frozen": True}

    debug: bool = False
    quiet: bool = False
    silent: bool = False
    log_level: str | None = None
    log_format: LogFormat = "pretty"
    color_mode: ColorMode = "auto"
    root: str | None = None
    is_restarted: bool = False
