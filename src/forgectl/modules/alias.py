"""Alias indirection for project-local command modules.

Project-local modules live in ``<project>/.forge/``, outside the shared
install tree. Loading them by file location would give each one an ad-hoc
module name that is not part of any package, so sibling imports between
``.forge/`` files load a second copy, and nothing ties them to the shared
tree the host's own packages are imported from.

Instead, each project gets a stable symlink inside the shared
``site-packages`` directory::

    $FORGE_HOME/site-packages/_forge_projects/<hh>/<hash16> -> <project>/.forge

``<hash16>`` is the start of ``sha256(<canonical project root>)`` and ``<hh>``
its first two characters, bucketing aliases so the directory never grows
flat. ``_forge_projects`` is a namespace package on ``sys.path``, so a file
such as ``.forge/greet.py`` is imported as
``_forge_projects.<hh>.<hash16>.greet`` through the normal import system:
one canonical name per file, and ``import forgectl`` inside it resolves to
the instance already in ``sys.modules``.

INVARIANT: at most one alias per project root. Re-creating it is a no-op;
an alias that points elsewhere is an error, never silently replaced.
"""

from __future__ import annotations

import hashlib
import importlib
import os
from pathlib import Path

import structlog

from forgectl.config.paths import ALIAS_ROOT_PACKAGE, FORGE_DIR_NAME, alias_root
from forgectl.errors import AliasConflictError, FatalError

log = structlog.get_logger(__name__)

BUCKET_LENGTH = 2
ALIAS_LENGTH = 16


def alias_hash(project_root: Path) -> str:
    """Full sha256 hex digest of the canonical project root path."""
    canonical = str(Path(project_root).resolve())
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def alias_path(project_root: Path, forge_home: Path | None = None) -> Path:
    """Where the alias for *project_root* lives (whether or not it exists)."""
    digest = alias_hash(project_root)
    return alias_root(forge_home) / digest[:BUCKET_LENGTH] / digest[:ALIAS_LENGTH]


def alias_target(project_root: Path) -> Path:
    """The real ``.forge/`` directory an alias must point at."""
    return Path(project_root).resolve() / FORGE_DIR_NAME


def ensure_alias(project_root: Path, forge_home: Path | None = None) -> Path:
    """Create the alias for *project_root* if needed and return its path.

    Idempotent: an existing alias with the right target is left alone.

    Raises:
        AliasConflictError: the alias path exists but is not a symlink to
            this project's ``.forge/`` directory.
        FatalError: the symlink could not be created.
    """
    link = alias_path(project_root, forge_home)
    target = alias_target(project_root)

    if link.is_symlink():
        current = Path(os.readlink(link))
        if current == target:
            log.debug("Alias already exists", alias=str(link), target=str(target))
            return link
        log.warning(
            "Alias points at a different project",
            alias=str(link),
            target=str(current),
            expected=str(target),
        )
        msg = (
            f"Alias {link} points at {current}, expected {target}.\n"
            "Remove the stale alias and retry."
        )
        raise AliasConflictError(msg)

    if link.exists():
        log.warning("Alias path exists but is not a symlink", alias=str(link))
        msg = f"Alias path {link} exists but is not a symlink"
        raise AliasConflictError(msg)

    link.parent.mkdir(parents=True, exist_ok=True)
    try:
        link.symlink_to(target, target_is_directory=True)
    except FileExistsError:
        # Another process created it between our check and the symlink call.
        if link.is_symlink() and Path(os.readlink(link)) == target:
            return link
        msg = f"Alias path {link} was created concurrently with a different target"
        raise AliasConflictError(msg) from None
    except OSError as exc:
        log.error("Failed to create alias", alias=str(link), target=str(target), error=str(exc))
        msg = f"Failed to create alias {link} -> {target}: {exc}"
        raise FatalError(msg) from exc

    importlib.invalidate_caches()
    log.debug("Created alias", alias=str(link), target=str(target))
    return link


def rewrite_path(path: Path, project_root: Path, forge_home: Path | None = None) -> Path:
    """Map a file inside ``.forge/`` to the same file under the alias.

    Input:  ``/work/app/.forge/tools/deploy.py``
    Output: ``$FORGE_HOME/site-packages/_forge_projects/3f/3fa1.../tools/deploy.py``
    """
    relative = _relative_to_forge_dir(path, project_root)
    return ensure_alias(project_root, forge_home) / relative


def alias_module_name(path: Path, project_root: Path) -> str:
    """Canonical dotted import name for a ``.forge/`` file via the alias."""
    relative = _relative_to_forge_dir(path, project_root).with_suffix("")
    parts = list(relative.parts)
    if parts[-1] == "__init__":
        parts.pop()
    digest = alias_hash(project_root)
    prefix = [ALIAS_ROOT_PACKAGE, digest[:BUCKET_LENGTH], digest[:ALIAS_LENGTH]]
    return ".".join(prefix + parts)


def is_inside_forge_dir(path: Path, project_root: Path) -> bool:
    """Whether *path* is a file under the project's ``.forge/`` directory."""
    try:
        _relative_to_forge_dir(path, project_root)
    except ValueError:
        return False
    return True


def _relative_to_forge_dir(path: Path, project_root: Path) -> Path:
    forge_dir = alias_target(project_root)
    return Path(path).resolve().relative_to(forge_dir)
