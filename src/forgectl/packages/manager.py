"""The shared install tree: manifest bookkeeping and pip installs.

``$FORGE_HOME/manifest.json`` records every dependency that was installed
into ``$FORGE_HOME/site-packages``::

    {"name": "forge-home", "dependencies": {"left-pad": "left-pad>=1.0"}}

Requirement strings are keyed by their normalized project name. Literal
dependencies (paths, VCS and URL forms) have no reliable name before they
are built, so they are keyed and matched by the literal string itself.

The tree is shared by every project and every running forgectl process.
Two concurrent installs can race; manifest writes are atomic so readers
never see a partial file.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import subprocess
import sys
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from forgectl.config.paths import forge_home, manifest_path, site_packages_dir
from forgectl.errors import DependencyInstallError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "forge-home"

Runner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]

_LITERAL_PREFIXES = ("file:", "/", ".", "~", "git+", "github:", "http://", "https://")
_NAME_RE = re.compile(r"^\s*([A-Za-z0-9](?:[A-Za-z0-9._-]*[A-Za-z0-9])?)")


def run_pip(args: Sequence[str]) -> subprocess.CompletedProcess[str]:
    """Run ``python -m pip`` with *args* using the current interpreter."""
    return subprocess.run(
        [sys.executable, "-m", "pip", *args],
        capture_output=True,
        text=True,
        check=False,
    )


def normalize_name(name: str) -> str:
    """PEP 503 normalization.

    Examples:
        >>> normalize_name("Left_Pad")
        'left-pad'
        >>> normalize_name("forge.standard")
        'forge-standard'
    """
    return re.sub(r"[-_.]+", "-", name).lower()


def is_literal(dep: str) -> bool:
    """Whether *dep* is a path, VCS, or URL dependency rather than a name.

    Examples:
        >>> is_literal("git+https://example.com/repo.git")
        True
        >>> is_literal("left-pad>=1.0")
        False
    """
    return dep.strip().startswith(_LITERAL_PREFIXES)


def parse_dependency_name(dep: str) -> str:
    """Manifest key for *dep*.

    Examples:
        >>> parse_dependency_name("Left_Pad[extra]>=1.0")
        'left-pad'
        >>> parse_dependency_name("./vendor/tool")
        './vendor/tool'
    """
    text = dep.strip()
    if is_literal(text):
        return text
    match = _NAME_RE.match(text)
    if match is None:
        msg = f"Invalid dependency: {dep!r}"
        raise DependencyInstallError(msg)
    return normalize_name(match.group(1))


def pip_requirement(dep: str) -> str:
    """Translate a declared dependency into something pip understands."""
    text = dep.strip()
    if text.startswith("github:"):
        return f"git+https://github.com/{text[len('github:'):]}"
    if text.startswith("file:") and not text.startswith("file://"):
        text = text[len("file:") :]
    if text.startswith("~"):
        return str(Path(text).expanduser())
    return text


class PackageManager:
    """Inspect and install into the shared ``$FORGE_HOME`` tree.

    Args:
        home: Root of the shared tree (defaults to :func:`forge_home`).
        runner: Executes ``pip`` with the given arguments. Tests inject a
            fake here so pip never runs.
    """

    def __init__(self, home: Path | None = None, *, runner: Runner | None = None) -> None:
        self.home = home or forge_home()
        self._runner = runner or run_pip

    is_literal = staticmethod(is_literal)
    parse_dependency_name = staticmethod(parse_dependency_name)

    @property
    def site_packages(self) -> Path:
        return site_packages_dir(self.home)

    @property
    def manifest(self) -> Path:
        return manifest_path(self.home)

    def ensure_home(self) -> None:
        """Create the shared tree and an empty manifest if missing."""
        self.site_packages.mkdir(parents=True, exist_ok=True)
        if not self.manifest.exists():
            self._write_manifest({"name": MANIFEST_NAME, "dependencies": {}})
            logger.debug("Created manifest at %s", self.manifest)

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def _read_manifest(self) -> dict[str, Any] | None:
        try:
            data = json.loads(self.manifest.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Could not read manifest %s: %s", self.manifest, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Manifest %s is not a JSON object", self.manifest)
            return None
        return data

    def _write_manifest(self, data: dict[str, Any]) -> None:
        self.manifest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".manifest-", suffix=".json", dir=self.manifest.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
                fh.write("\n")
            os.replace(tmp, self.manifest)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _content_hash(self) -> str:
        try:
            return hashlib.sha256(self.manifest.read_bytes()).hexdigest()
        except OSError:
            return ""

    def installed(self) -> dict[str, str]:
        """Manifest ``dependencies`` mapping (empty when unreadable)."""
        data = self._read_manifest() or {}
        deps = data.get("dependencies")
        if not isinstance(deps, dict):
            return {}
        return {str(k): str(v) for k, v in deps.items()}

    def is_installed(self, dep: str) -> bool:
        """Whether *dep* is recorded in the manifest."""
        installed = self.installed()
        if is_literal(dep):
            return dep.strip() in installed.values()
        return parse_dependency_name(dep) in installed

    def missing(self, deps: Sequence[str]) -> list[str]:
        """Declared dependencies not yet recorded, in declaration order."""
        return [dep for dep in deps if not self.is_installed(dep)]

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def install(self, dep: str) -> bool:
        """Install *dep* into the shared tree and record it.

        Returns whether the manifest content changed, i.e. whether a running
        process may now see stale imports and should restart.

        Raises:
            DependencyInstallError: pip failed or could not be started.
        """
        self.ensure_home()
        before = self._content_hash()
        requirement = pip_requirement(dep)
        args = [
            "install",
            "--disable-pip-version-check",
            "--no-input",
            "--upgrade",
            "--target",
            str(self.site_packages),
            requirement,
        ]
        logger.info("Installing %s", dep)
        try:
            result = self._runner(args)
        except OSError as exc:
            msg = f"Failed to run pip for {dep}: {exc}"
            raise DependencyInstallError(msg) from exc
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            msg = f"Failed to install {dep} (pip exited {result.returncode})"
            if detail:
                msg = f"{msg}:\n{detail}"
            raise DependencyInstallError(msg)

        data = self._read_manifest() or {"name": MANIFEST_NAME}
        deps = data.get("dependencies")
        if not isinstance(deps, dict):
            deps = {}
        deps[parse_dependency_name(dep)] = dep.strip()
        data["dependencies"] = deps
        self._write_manifest(data)

        changed = self._content_hash() != before
        logger.debug("Installed %s (manifest changed: %s)", dep, changed)
        return changed
