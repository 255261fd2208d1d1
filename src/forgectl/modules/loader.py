"""Import a resolved module under its canonical name.

Modules from the shared and project tiers are imported by dotted name with
their ``site-packages`` directory on ``sys.path``. Local modules inside
``.forge/`` go through the project alias (see :mod:`forgectl.modules.alias`)
so they share one import system with the shared tree. Anything else (a
``../`` path outside ``.forge/``, or a path segment that is not a valid
identifier) is loaded from its file location.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import sys
from pathlib import Path
from types import ModuleType

from forgectl.config.paths import site_packages_dir
from forgectl.errors import ModuleLoadError
from forgectl.modules.alias import alias_module_name, ensure_alias, is_inside_forge_dir
from forgectl.modules.resolver import ModuleTier, ResolvedModulePath

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^0-9A-Za-z_]")


def ensure_on_sys_path(directory: Path) -> None:
    """Append *directory* to ``sys.path`` once."""
    entry = str(directory)
    if entry not in sys.path:
        sys.path.append(entry)
        importlib.invalidate_caches()
        logger.debug("Added %s to sys.path", entry)


def _importable(name: str) -> bool:
    return bool(name) and all(part.isidentifier() for part in name.split("."))


def _file_module_name(resolved: ResolvedModulePath) -> str:
    stem = _UNSAFE.sub("_", resolved.specifier.text).strip("_")
    return f"forge_module_{stem}"


def _import_by_name(name: str) -> ModuleType:
    return importlib.import_module(name)


def _import_from_file(name: str, path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        msg = f"Could not create module spec for {path}"
        raise ModuleLoadError(msg)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


def load_module(
    resolved: ResolvedModulePath,
    project_root: Path,
    *,
    forge_home: Path | None = None,
) -> ModuleType:
    """Import *resolved* and return the module object.

    Raises:
        ModuleLoadError: the module raised while being imported.
        AliasConflictError: the project alias points somewhere else.
    """
    shared = site_packages_dir(forge_home)
    shared.mkdir(parents=True, exist_ok=True)
    ensure_on_sys_path(shared)

    path = resolved.path
    if resolved.tier is ModuleTier.LOCAL and is_inside_forge_dir(path, project_root):
        name = alias_module_name(path, project_root)
        # Bucket and hash segments may start with a digit; only the file part must be valid.
        by_name = _importable(name.split(".", 3)[3]) if name.count(".") >= 3 else False
        if by_name:
            ensure_alias(project_root, forge_home)
        else:
            name = _file_module_name(resolved)
    elif resolved.tier is ModuleTier.LOCAL:
        name = _file_module_name(resolved)
        by_name = False
    else:
        ensure_on_sys_path(resolved.root)
        name = resolved.module_name
        by_name = _importable(name)
        if not by_name:
            name = _file_module_name(resolved)

    if name in sys.modules:
        logger.debug("Module %s already loaded", name)
        return sys.modules[name]

    logger.debug("Loading %s as %s", path, name)
    try:
        if by_name:
            return _import_by_name(name)
        return _import_from_file(name, path)
    except ModuleLoadError:
        raise
    except Exception as exc:
        sys.modules.pop(name, None)
        msg = f"Failed to load module {resolved.specifier.text} from {path}: {exc}"
        raise ModuleLoadError(msg) from exc
