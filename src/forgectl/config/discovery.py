"""Project discovery and layered config file loading.

Walk-up finder locates ``.forge/``, similar to how git finds ``.git/``.
Supports the ``FORGE_PROJECT`` env var and the ``--root`` CLI flag.

Config layers (lowest to highest priority):
  1. User     ``$XDG_CONFIG_HOME/forge/config.*``
  2. Project  ``.forge/config.*``
  3. Local    ``.forge/config.local.*`` (gitignored overrides)

Each layer is deep-merged over the previous one: mappings merge
recursively, everything else is replaced.
"""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from forgectl.config.paths import FORGE_DIR_NAME, user_config_dir
from forgectl.errors import ConfigError

PROJECT_ENV_VAR = "FORGE_PROJECT"
CONFIG_EXTENSIONS = ("yml", "yaml", "toml", "json")


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for a ``.forge/`` directory.

    Returns the directory containing ``.forge/``, or None if not found.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / FORGE_DIR_NAME).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def explicit_project_root(root: str | Path | None = None) -> Path | None:
    """Project root from ``--root`` or ``FORGE_PROJECT``, if either is set.

    Raises ConfigError when ``FORGE_PROJECT`` names a directory without
    ``.forge/``.
    """
    if root:
        return Path(root).expanduser().resolve()

    env_path = os.environ.get(PROJECT_ENV_VAR)
    if env_path:
        p = Path(env_path).expanduser()
        if (p / FORGE_DIR_NAME).is_dir():
            return p.resolve()
        msg = f"{PROJECT_ENV_VAR}={env_path} but {FORGE_DIR_NAME}/ not found"
        raise ConfigError(msg)
    return None


def resolve_project_root(root: str | Path | None = None, cwd: Path | None = None) -> Path | None:
    """Explicit root first, then walk-up discovery from *cwd*."""
    return explicit_project_root(root) or find_project_root(cwd)


def find_config_file(directory: Path, stem: str = "config") -> Path | None:
    """First ``<stem>.<ext>`` in *directory* by :data:`CONFIG_EXTENSIONS` order."""
    for ext in CONFIG_EXTENSIONS:
        candidate = directory / f"{stem}.{ext}"
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML, TOML or JSON config file into a plain dict.

    An empty file yields ``{}``. Parse errors raise ConfigError naming the file.
    """
    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    try:
        if suffix in (".yml", ".yaml"):
            data = YAML(typ="safe").load(raw)
        elif suffix == ".toml":
            data = tomllib.loads(raw)
        elif suffix == ".json":
            data = json.loads(raw) if raw.strip() else {}
        else:
            msg = f"Unsupported config format: {path}"
            raise ConfigError(msg)
    except (YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        msg = f"Invalid config in {path}: {exc}"
        raise ConfigError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config in {path} must be a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return *base* with *override* merged in (mappings merge recursively).

    Examples:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": 4})
        {'a': {'x': 1, 'y': 3}, 'b': 4}
        >>> deep_merge({"modules": ["a"]}, {"modules": ["b"]})
        {'modules': ['b']}
    """
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = deep_merge(current, value)
        elif value is not None:
            result[key] = value
    return result


def config_layers(project_root: Path | None) -> list[Path]:
    """Config files that exist, lowest priority first."""
    layers: list[Path] = []
    user = find_config_file(user_config_dir())
    if user is not None:
        layers.append(user)
    if project_root is not None:
        forge_dir = project_root / FORGE_DIR_NAME
        project = find_config_file(forge_dir)
        if project is not None:
            layers.append(project)
        local = find_config_file(forge_dir, stem="config.local")
        if local is not None:
            layers.append(local)
    return layers


def load_layered_config(project_root: Path | None) -> dict[str, Any]:
    """Deep-merge user, project and local config layers into one dict."""
    merged: dict[str, Any] = {}
    for path in config_layers(project_root):
        merged = deep_merge(merged, read_config_file(path))
    return merged
