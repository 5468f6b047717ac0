"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain data and table output
- Secret masking
- Log routing through configure_logging
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from shellcred.output import (
    MASK,
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    display_fields,
    get_output,
    mask,
    reset_output,
    set_output,
)
from shellcred import output as output_module
from shellcred.models import FieldName


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("shellcred.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("shellcred.output._is_tty", lambda: True)


@pytest.fixture()
def plain(non_tty) -> OutputManager:
    return OutputManager(format=OutputFormat.PLAIN, no_color=True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, plain):
        plain.print_data("session-id")
        captured = capfd.readouterr()
        assert captured.out == "session-id\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, plain, method):
        getattr(plain, method)("something happened")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "something happened" in captured.err

    def test_prefixes_without_color(self, capfd, plain):
        plain.warning("stale session")
        plain.error("no credentials")
        err = capfd.readouterr().err
        assert "Warning: stale session" in err
        assert "Error: no credentials" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_success_suggest(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("a")
        mgr.success("b")
        mgr.suggest("c")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_errors_and_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("w")
        mgr.error("e")
        mgr.print_data("d")
        captured = capfd.readouterr()
        assert captured.out == "d\n"
        assert "w" in captured.err and "e" in captured.err

    def test_debug_hidden_by_default(self, capfd, plain):
        plain.debug("internal")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.debug("internal")
        assert "[debug] internal" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Data formats
# ------------------------------------------------------------------ #


class TestFormats:
    def test_json_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_data({"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": MASK})
        assert json.loads(capfd.readouterr().out) == {
            "AWS_ACCESS_KEY_ID": "AKIA",
            "AWS_SECRET_ACCESS_KEY": MASK,
        }

    def test_plain_dict_is_tab_separated(self, capfd, plain):
        plain.format_data({"user": "report", "host": "db.internal"})
        assert capfd.readouterr().out == "user\treport\nhost\tdb.internal\n"

    def test_json_table_is_list_of_objects(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["SESSION", "EXPIRES"], [["abc", "2024-01-01"], ["def", "2024-01-02"]])
        assert json.loads(capfd.readouterr().out) == [
            {"SESSION": "abc", "EXPIRES": "2024-01-01"},
            {"SESSION": "def", "EXPIRES": "2024-01-02"},
        ]

    def test_plain_table(self, capfd, plain):
        plain.print_table(["NAME", "PLATFORM"], [["aws", "AWS"]])
        assert capfd.readouterr().out == "NAME\tPLATFORM\naws\tAWS\n"

    def test_rich_table_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["NAME"], [["mysql"]], title="Plugins")
        captured = capfd.readouterr()
        assert "mysql" in captured.out
        assert captured.err == ""


@pytest.mark.parametrize(
    "value,secret,expected",
    [("hunter2", True, MASK), ("hunter2", False, "hunter2"), ("", True, "")],
)
def test_mask(value, secret, expected):
    assert mask(value, secret) == expected


def test_display_fields():
    fields = {FieldName.USER: "report", FieldName.PASSWORD: "s3cr3t"}
    assert display_fields(fields, {FieldName.PASSWORD}) == {"User": "report", "Password": MASK}
    assert display_fields(fields, {FieldName.PASSWORD}, show_secrets=True)["Password"] == "s3cr3t"


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


class TestConfigureLogging:
    @pytest.mark.parametrize(
        "kwargs,level",
        [({}, logging.WARNING), ({"verbose": True}, logging.DEBUG), ({"quiet": True}, logging.ERROR)],
    )
    def test_levels(self, kwargs, level):
        configure_logging(**kwargs)
        assert logging.getLogger("shellcred").level == level

    def test_replaces_previous_handler(self):
        configure_logging()
        configure_logging(verbose=True)
        handlers = [h for h in logging.getLogger("shellcred").handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1

    def test_records_go_to_stderr(self, capfd):
        configure_logging(no_color=True)
        logging.getLogger("shellcred.provision.session").warning("quarantined session abc")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "quarantined session abc" in captured.err


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_is_lazy_singleton(self, non_tty):
        reset_output()
        assert get_output() is get_output()

    def test_set_output_routes_module_helpers(self, capfd, plain):
        set_output(plain)
        output_module.format_data(["via helper"])
        output_module.info("note")
        captured = capfd.readouterr()
        assert captured.out == "via helper\n"
        assert "note" in captured.err
