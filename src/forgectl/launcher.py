"""The ``forge`` console script: run forgectl, restarting once if asked.

The child (``python -m forgectl``) exits with :data:`RESTART_EXIT_CODE`
after installing dependencies into the shared tree. The launcher re-runs
the same command line once with ``FORGE_RESTARTED=1`` so the fresh process
imports the new packages. A second restart request is an error.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from collections.abc import Callable, Mapping, Sequence

from forgectl.output.console import print_error
from forgectl.packages.sync import RESTART_EXIT_CODE, RESTARTED_ENV_VAR

logger = logging.getLogger(__name__)

ChildRunner = Callable[[Sequence[str], Mapping[str, str]], int]


def run_child(command: Sequence[str], env: Mapping[str, str]) -> int:
    """Run *command* with *env*, inheriting stdio, and return its exit code."""
    return subprocess.call(list(command), env=dict(env))


def child_command(argv: Sequence[str]) -> list[str]:
    return [sys.executable, "-m", "forgectl", *argv]


def launch(
    argv: Sequence[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    runner: ChildRunner = run_child,
) -> int:
    """Run forgectl in a child process and apply the restart protocol."""
    args = list(sys.argv[1:] if argv is None else argv)
    child_env = dict(os.environ if env is None else env)
    command = child_command(args)

    try:
        code = runner(command, child_env)
        if code != RESTART_EXIT_CODE:
            return code

        if child_env.get(RESTARTED_ENV_VAR) == "1":
            print_error("Restart requested again after a restart; giving up")
            return 1

        logger.debug("Restarting after dependency install")
        child_env[RESTARTED_ENV_VAR] = "1"
        code = runner(command, child_env)
    except KeyboardInterrupt:
        return 130
    except OSError as exc:
        print_error(f"Failed to start forgectl: {exc}")
        return 1

    if code == RESTART_EXIT_CODE:
        print_error(
            "Dependencies still changing after restart; giving up",
            hint="Run: forge module install",
        )
        return 1
    return code


def main() -> None:
    sys.exit(launch())
