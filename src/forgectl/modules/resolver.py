"""Module resolution: specifier to concrete file, searched tier by tier.

Priority order (first match wins):
  1. Local   ``<project>/.forge/<name>.py`` or ``<name>/__init__.py``
               (bare and ``./`` specifiers only)
  2. Shared  ``$FORGE_HOME/site-packages/<parts>``
  3. Project ``<project>/.venv/.../site-packages/<parts>``

A specifier that matches nothing is a hard failure listing every
candidate path that was tried.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from forgectl.config.paths import FORGE_DIR_NAME, site_packages_dir
from forgectl.errors import ModuleResolutionError
from forgectl.modules.specifier import Specifier, SpecifierKind, parse_specifier

logger = logging.getLogger(__name__)


class ModuleTier(StrEnum):
    """Where a resolved module was found."""

    LOCAL = "local"
    SHARED = "shared"
    PROJECT = "project"


@dataclass(frozen=True)
class ResolvedModulePath:
    """The chosen file for a specifier, tagged with its origin tier.

    Attributes:
        specifier: The parsed specifier that was resolved.
        path: Absolute path to the module file (``.py`` or ``__init__.py``).
        tier: Which search tier matched.
        root: The search root the match was found under (``.forge/`` for
            local modules, a ``site-packages`` directory otherwise).
    """

    specifier: Specifier
    path: Path
    tier: ModuleTier
    root: Path

    @property
    def module_name(self) -> str:
        """Dotted import name of :attr:`path` relative to :attr:`root`."""
        rel = self.path.relative_to(self.root).with_suffix("")
        parts = list(rel.parts)
        if parts[-1] == "__init__":
            parts.pop()
        return ".".join(parts)


def _file_candidates(base: Path, parts: tuple[str, ...]) -> Iterator[Path]:
    """``base/a/b.py`` then ``base/a/b/__init__.py`` (exact ``.py`` first)."""
    target = base.joinpath(*parts)
    if target.suffix == ".py":
        yield target
    yield target.with_name(target.name + ".py")
    yield target / "__init__.py"


def project_site_packages(project_root: Path) -> list[Path]:
    """``site-packages`` directories of the project's ``.venv``, if any."""
    venv = project_root / ".venv"
    found = sorted(venv.glob("lib/python*/site-packages"))
    windows = venv / "Lib" / "site-packages"
    if windows.is_dir():
        found.append(windows)
    return [p for p in found if p.is_dir()]


def resolve_module(
    specifier: str | Specifier,
    project_root: Path,
    *,
    forge_home: Path | None = None,
) -> ResolvedModulePath:
    """Resolve *specifier* to exactly one module file.

    Raises:
        SpecifierError: *specifier* is malformed.
        ModuleResolutionError: nothing matched; ``candidates`` lists every
            path tried, in order.
    """
    spec = specifier if isinstance(specifier, Specifier) else parse_specifier(specifier)
    forge_dir = project_root / FORGE_DIR_NAME
    attempted: list[str] = []

    def _search(
        base: Path, parts: tuple[str, ...], tier: ModuleTier
    ) -> ResolvedModulePath | None:
        for candidate in _file_candidates(base, parts):
            attempted.append(str(candidate))
            if candidate.is_file():
                resolved = ResolvedModulePath(
                    specifier=spec,
                    path=Path(os.path.abspath(candidate)),
                    tier=tier,
                    root=Path(os.path.abspath(base)),
                )
                logger.debug(
                    "Resolved module %s -> %s (%s)", spec.text, resolved.path, tier.value
                )
                return resolved
        return None

    logger.debug("Resolving module %s (%s)", spec.text, spec.kind.value)

    if spec.kind is SpecifierKind.LOCAL:
        found = _search(forge_dir, spec.parts, ModuleTier.LOCAL)
        if found is not None:
            return found
        msg = (
            f"Local module not found: {spec.text}\n"
            f"Searched in: {forge_dir}\n"
            "Attempted paths:\n  " + "\n  ".join(attempted)
        )
        raise ModuleResolutionError(msg, specifier=spec.text, candidates=attempted)

    if spec.kind is SpecifierKind.BARE:
        found = _search(forge_dir, spec.parts, ModuleTier.LOCAL)
        if found is not None:
            return found

    shared = site_packages_dir(forge_home)
    found = _search(shared, spec.parts, ModuleTier.SHARED)
    if found is not None:
        return found

    for site in project_site_packages(project_root):
        found = _search(site, spec.parts, ModuleTier.PROJECT)
        if found is not None:
            return found

    msg = (
        f"Module not found: {spec.text}\n"
        "Attempted paths:\n  " + "\n  ".join(attempted) + "\n\n"
        "Suggestions:\n"
        "  1. Add the package to the 'dependencies' section of .forge/config.yml\n"
        "  2. Run: forge module install"
    )
    raise ModuleResolutionError(msg, specifier=spec.text, candidates=attempted)
