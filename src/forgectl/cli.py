"""Root CLI for forge: two-phase parsing and the single error handler.

Phase one (:func:`bootstrap`) permissively pulls the global flags out of
argv before anything is loaded, because they decide where the project is
and how to log. Phase two re-parses the full command line strictly with
Click once every command module has been discovered.
"""

from __future__ import annotations

import itertools
import os
import sys
import traceback
from collections.abc import Callable, Sequence
from typing import Any

import click
import structlog

from forgectl import __version__
from forgectl.commands import register_commands
from forgectl.commands._base import ForgeGroup
from forgectl.config.logging import configure_logging, is_logging_configured
from forgectl.config.models import LOG_LEVELS, BootstrapConfig
from forgectl.config.settings import ForgeSettings
from forgectl.core import Forge
from forgectl.errors import ExitNotification, FatalError
from forgectl.output.console import normalize_color_mode, print_error, resolve_color
from forgectl.packages.manager import PackageManager
from forgectl.packages.sync import RESTART_EXIT_CODE, RESTARTED_ENV_VAR

log = structlog.get_logger(__name__)

PROG_NAME = "forge"


def global_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the global flags shared by the bootstrap and strict parsers."""
    options = [
        click.option(
            "-r", "--root", default=None, metavar="DIR", help="Project root (contains .forge/)."
        ),
        click.option("-d", "--debug", is_flag=True, help="Debug logging and tracebacks."),
        click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors."),
        click.option("-s", "--silent", is_flag=True, help="Disable logging."),
        click.option(
            "--log-level",
            type=click.Choice(LOG_LEVELS, case_sensitive=False),
            default=None,
            help="Explicit log level.",
        ),
        click.option(
            "--log-format",
            type=click.Choice(["pretty", "json"], case_sensitive=False),
            default="pretty",
            show_default=True,
            help="Log output format.",
        ),
        click.option(
            "--color", "color", default=None, metavar="MODE", help="auto, always, or never."
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.command(
    add_help_option=False,
    context_settings={
        "ignore_unknown_options": True,
        "allow_extra_args": True,
        "allow_interspersed_args": False,
    },
)
@global_options
def _bootstrap_cli(**_: Any) -> None:
    """Never invoked; only its parser is used."""


def _bootstrap_parse(argv: Sequence[str]) -> tuple[dict[str, Any], list[str]]:
    try:
        ctx = _bootstrap_cli.make_context(PROG_NAME, list(argv), resilient_parsing=True)
    except click.ClickException:
        return {}, []
    return ctx.params, list(ctx.args)


def command_words(argv: Sequence[str]) -> list[str]:
    """Everything after the global flags (subcommand path and its arguments)."""
    return _bootstrap_parse(argv)[1]


def _builtins_only(words: Sequence[str]) -> bool:
    """Boot without dependency sync or project modules.

    `forge module install` must work while dependencies are missing, and
    `forge --version` must work in a broken project.
    """
    if list(words[:2]) == ["module", "install"]:
        return True
    leading = itertools.takewhile(lambda w: w.startswith("-"), words)
    return "--version" in leading


def bootstrap(argv: Sequence[str]) -> BootstrapConfig:
    """Extract global flags from *argv* without validating anything else.

    Parsing stops at the first positional argument, so options after a
    subcommand name belong to the subcommand. Malformed global flags are
    ignored here and reported by the strict parse.
    """
    params, _ = _bootstrap_parse(argv)

    if os.environ.get("NO_COLOR"):
        color_mode = "never"
    else:
        color_mode = normalize_color_mode(params.get("color"))

    log_level = params.get("log_level")
    return BootstrapConfig(
        debug=bool(params.get("debug")),
        quiet=bool(params.get("quiet")),
        silent=bool(params.get("silent")),
        log_level=log_level.lower() if log_level else None,
        log_format=(params.get("log_format") or "pretty").lower(),
        color_mode=color_mode,
        root=params.get("root"),
        is_restarted=os.environ.get(RESTARTED_ENV_VAR) == "1",
    )


def build_cli(forge: Forge) -> ForgeGroup:
    """Root group with every discovered command bound onto it."""

    @click.group(
        cls=ForgeGroup,
        name=PROG_NAME,
        color=forge.color,
        context_settings={"help_option_names": ["-h", "--help"]},
    )
    @click.version_option(version=__version__, prog_name=PROG_NAME)
    @global_options
    @click.pass_context
    def cli(ctx: click.Context, **_: Any) -> None:
        """forge: personal command-line automation."""
        ctx.obj = forge

    register_commands(cli, forge)
    return cli


def handle_error(exc: BaseException, *, debug: bool = False, color: bool = False) -> int:
    """Report *exc* and return the process exit code."""
    if isinstance(exc, click.exceptions.Exit):
        return exc.exit_code
    if isinstance(exc, ExitNotification):
        if exc.exit_code == RESTART_EXIT_CODE:
            log.debug("Restart requested", exit_code=exc.exit_code)
        return exc.exit_code
    if isinstance(exc, click.UsageError):
        command_path = exc.ctx.command_path if exc.ctx is not None else PROG_NAME
        print_error(
            exc.format_message(),
            color=color,
            hint=f"Try '{command_path} --help' for more information.",
        )
        return 1
    if isinstance(exc, click.ClickException):
        print_error(exc.format_message(), color=color)
        return exc.exit_code
    if isinstance(exc, click.Abort):
        click.echo("Aborted!", err=True)
        return 1
    if isinstance(exc, KeyboardInterrupt):
        click.echo("Aborted!", err=True)
        return 130
    if isinstance(exc, FatalError):
        print_error(exc.message, color=color)
        if debug:
            _report_traceback(exc)
        return exc.exit_code

    if is_logging_configured():
        log.error("Unexpected error", error=str(exc), exc_info=exc)
    else:
        sys.stderr.write(f"ERROR: {exc}\n")
        traceback.print_exception(exc, file=sys.stderr)
    return 1


def _report_traceback(exc: BaseException) -> None:
    if is_logging_configured():
        log.debug("Error details", error=type(exc).__name__, exc_info=exc)
    else:
        traceback.print_exception(exc, file=sys.stderr)


def run(argv: Sequence[str] | None = None, *, manager: PackageManager | None = None) -> int:
    """Run one invocation and return its exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    debug = False
    color = False
    try:
        options = bootstrap(args)
        debug = options.debug
        settings = ForgeSettings.from_bootstrap(options)
        debug = settings.debug
        color = resolve_color(settings.color_mode)
        configure_logging(
            level=settings.effective_log_level,
            log_format=settings.log_format,
            color=color,
        )
        log.debug(
            "Settings resolved",
            project_root=str(settings.project_root),
            restarted=settings.is_restarted,
        )

        forge = Forge(settings, manager=manager)
        forge.boot(install_only=_builtins_only(command_words(args)))
        cli = build_cli(forge)
        rv = cli.main(args=args, prog_name=PROG_NAME, standalone_mode=False)
    except (Exception, KeyboardInterrupt) as exc:
        return handle_error(exc, debug=debug, color=color)
    return rv if isinstance(rv, int) else 0


def main(argv: Sequence[str] | None = None) -> None:
    """Console entry point (``forgectl``); the ``forge`` launcher wraps this."""
    sys.exit(run(argv))
