"""Exception taxonomy for forgectl.

Three kinds of termination flow through the single handler in
:func:`forgectl.cli.handle_error`:

* :class:`ExitNotification`: intentional, successful exit (help, version,
  restart request). Not an error.
* :class:`FatalError`: a known, described failure with a human message and
  an exit code. Printed tersely unless ``--debug`` is active.
* anything else: an unexpected internal failure, logged with its traceback.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NoReturn


class ExitNotification(Exception):  # noqa: N818
    """Clean exit with a specific code (help, version, restart)."""

    def __init__(self, exit_code: int = 0, message: str | None = None) -> None:
        super().__init__(message or f"Exit with code {exit_code}")
        self.exit_code = exit_code


class FatalError(Exception):
    """Unrecoverable, user-facing failure."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigError(FatalError):
    """Invalid or unreadable configuration."""


class SpecifierError(FatalError):
    """A module specifier string that cannot be interpreted."""


class ModuleResolutionError(FatalError):
    """No candidate location matched a module specifier."""

    def __init__(self, message: str, *, specifier: str, candidates: Sequence[str]) -> None:
        super().__init__(message)
        self.specifier = specifier
        self.candidates = list(candidates)


class AliasConflictError(FatalError):
    """An alias path exists but does not point at the expected project."""


class ModuleLoadError(FatalError):
    """A resolved module raised while being imported."""


class DependencyInstallError(FatalError):
    """Dependencies could not be installed or are still missing."""


class CommandFailedError(FatalError):
    """A command's ``execute`` raised."""

    def __init__(self, command: str, cause: BaseException) -> None:
        super().__init__(f"Command failed: {command}: {cause}")
        self.command = command


def die(message: str, cause: BaseException | None = None) -> NoReturn:
    """Abort the current command with a :class:`FatalError`.

    Safe to call anywhere; the CLI error handler reports it. *cause* is
    chained so ``--debug`` output shows the original traceback.
    """
    raise FatalError(message) from cause


def exit_with(code: int = 0) -> NoReturn:
    """Exit cleanly with *code* via :class:`ExitNotification`."""
    raise ExitNotification(code)
