"""Typer application and CLI entry point for shellcred.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``plugins``, ``import``, ``run``, ``generate``,
``remove``, ``sessions``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~shellcred.exceptions.ShellcredError` exits with the error's code;
anything else is written to a crash log under the data directory.

See Also:
    :mod:`shellcred.config`: Configuration resolution.
    :mod:`shellcred.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from shellcred import __version__
from shellcred.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED, EXIT_SUCCESS

app = typer.Typer(
    name="shellcred",
    help="Discover local credentials and hand them, or short-lived stand-ins, to CLI tools.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"shellcred {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~shellcred.output.OutputManager` and the
    log handler from CLI flags.
    """
    from shellcred.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose=verbose, quiet=quiet, no_color=no_color)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def register_commands(target: typer.Typer) -> None:
    """Attach the built-in sub-commands to *target*."""
    from shellcred.commands.discover import import_command, plugins_command
    from shellcred.commands.provision import generate_command, remove_command, sessions_command
    from shellcred.commands.run import run_command

    target.command("plugins")(plugins_command)
    target.command("import")(import_command)
    target.command("run")(run_command)
    target.command("generate")(generate_command)
    target.command("remove")(remove_command)
    target.command("sessions")(sessions_command)


register_commands(app)


def _setup_signal_handlers() -> None:
    """Turn Ctrl-C into a clean exit that still runs cleanup handlers."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from shellcred.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``shellcred`` console script.

    Unhandled :class:`~shellcred.exceptions.ShellcredError` instances cause
    a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        # Without standalone mode click returns the exit code instead of exiting.
        code = app(standalone_mode=False)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        sys.exit(handle_exception(exc))
    sys.exit(code if isinstance(code, int) else EXIT_SUCCESS)


def handle_exception(exc: BaseException) -> int:
    """Report *exc* on stderr and return the process exit code."""
    import click

    from shellcred.exceptions import ProvisionError, ShellcredError
    from shellcred.output import error, suggest

    if isinstance(exc, click.exceptions.Exit):
        return exc.exit_code
    if isinstance(exc, click.exceptions.Abort):
        sys.stderr.write("\nCancelled.\n")
        return EXIT_INTERRUPTED
    if isinstance(exc, click.ClickException):
        exc.show()
        return exc.exit_code
    if isinstance(exc, ShellcredError):
        error(str(exc))
        if isinstance(exc, ProvisionError) and exc.session_id:
            suggest(f"Session id: {exc.session_id}")
        return exc.exit_code
    log_path = _write_crash_log(exc)  # type: ignore[arg-type]
    error(f"Unexpected error. Debug log: {log_path}")
    return EXIT_GENERIC_FAILURE
