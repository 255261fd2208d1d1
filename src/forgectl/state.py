"""JSON-backed key/value state for commands.

* Project state: ``.forge/state.json`` (tracked, shared with the team)
* User state: ``.forge/state.local.json`` (ignored, per user)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from forgectl.config.paths import FORGE_DIR_NAME

logger = logging.getLogger(__name__)

PROJECT_STATE_FILE = "state.json"
USER_STATE_FILE = "state.local.json"


class StateManager:
    """Read and write per-project and per-user command state."""

    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root
        self.forge_dir = project_root / FORGE_DIR_NAME

    def _read(self, filename: str) -> dict[str, Any]:
        path = self.forge_dir / filename
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object state in %s", path)
            return {}
        return data

    def _write(self, filename: str, data: dict[str, Any]) -> None:
        self.forge_dir.mkdir(parents=True, exist_ok=True)
        path = self.forge_dir / filename
        path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def get_project(self, key: str, default: Any = None) -> Any:
        return self._read(PROJECT_STATE_FILE).get(key, default)

    def set_project(self, key: str, value: Any) -> None:
        state = self._read(PROJECT_STATE_FILE)
        state[key] = value
        self._write(PROJECT_STATE_FILE, state)

    def get_user(self, key: str, default: Any = None) -> Any:
        return self._read(USER_STATE_FILE).get(key, default)

    def set_user(self, key: str, value: Any) -> None:
        state = self._read(USER_STATE_FILE)
        state[key] = value
        self._write(USER_STATE_FILE, state)
