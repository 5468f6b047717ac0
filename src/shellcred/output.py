"""Output formatting with strict stdout/stderr discipline.

* **stdout** -- primary data only (candidates, session ids, tables). This is
  what scripts capture, e.g. ``shellcred --json generate aws``.
* **stderr** -- diagnostics and log records. The wrapped command of
  ``shellcred run`` owns both streams while it runs.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

:class:`OutputManager` holds format preferences and is installed once by
:func:`~shellcred.app.main_callback`; the module-level helpers
(:func:`info`, :func:`error`, ...) delegate to it. :func:`configure_logging`
routes library log records to stderr through :class:`rich.logging.RichHandler`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Collection, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from shellcred.models import FieldName

MASK = "****"

_LOGGER_NAME = "shellcred"


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` picks ``RICH`` for an interactive, colour-capable stdout and
    ``PLAIN`` for everything else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes command results to stdout and diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Drop informational stderr messages; warnings and errors stay.
        verbose: Show debug messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_data(self, data: Any) -> None:
        """Print a field mapping or a list of records in the active format.

        Plain mode writes one ``key<TAB>value`` line per mapping entry.
        """
        if self._format == OutputFormat.PLAIN:
            if isinstance(data, dict):
                for key, value in data.items():
                    self.print_data(f"{key}\t{value}")
            else:
                for item in data:
                    self.print_data(str(item))
            return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.JSON:
            self.print_data(text)
        else:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows under *headers*.

        JSON mode emits one object per row keyed by header; plain mode emits
        tab-separated lines with the headers first.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def _diag(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diag(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diag(message, f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._diag(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._diag(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Next-step hint such as the ``remove`` command for a session."""
        if not self._quiet:
            hint = f"→ {message}"
            self._diag(hint, f"[dim]{hint}[/dim]")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diag(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# --- Secrets ---


def mask(value: str, secret: bool = True) -> str:
    """Return *value*, or a fixed mask when it is a non-empty secret."""
    return MASK if secret and value else value


def display_fields(
    fields: Mapping[FieldName, str],
    secret_fields: Collection[FieldName],
    show_secrets: bool = False,
) -> dict[str, str]:
    """Key *fields* by display name, masking secret values unless *show_secrets*."""
    return {
        name.value: value if show_secrets else mask(value, name in secret_fields)
        for name, value in fields.items()
    }


# --- Logging ---


def configure_logging(verbose: bool = False, quiet: bool = False, no_color: bool = False) -> None:
    """Send ``shellcred`` log records to stderr through Rich.

    WARNING by default, DEBUG with ``--verbose``, ERROR with ``--quiet``.
    Calling it again replaces the previous handler.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_shellcred", False):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(file=sys.stderr, stderr=True, no_color=no_color or _should_disable_color()),
        show_time=verbose,
        show_path=verbose,
        markup=False,
    )
    handler._shellcred = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


# --- Global instance (installed by the root callback) ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the active :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_data(data: Any) -> None:
    get_output().format_data(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
