"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain rendering of format_response
- The never-suppressed operator notice
- Logging configuration
- Global instance management
"""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from xapi import output as output_module
from xapi.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("xapi.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("xapi.output._is_tty", lambda: True)


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
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

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


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello")
        captured = capsys.readouterr()
        assert captured.out == "hello\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capsys, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_error_prefix(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).error("bad")
        assert capsys.readouterr().err == "Error: bad\n"


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_success_suggest(self, capsys, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("i")
        mgr.success("s")
        mgr.suggest("n")
        assert capsys.readouterr().err == ""

    def test_quiet_keeps_warnings_and_errors(self, capsys, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("w")
        mgr.error("e")
        err = capsys.readouterr().err
        assert "Warning: w" in err
        assert "Error: e" in err

    def test_quiet_keeps_prompt_notice(self, capsys, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, quiet=True)
        mgr.prompt_notice("https://x.com/i/oauth2/authorize?state=abc")
        captured = capsys.readouterr()
        assert captured.err == "https://x.com/i/oauth2/authorize?state=abc\n"
        assert captured.out == ""

    def test_debug_requires_verbose(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        assert capsys.readouterr().err == ""
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("shown")
        assert "[debug] shown" in capsys.readouterr().err


class TestFormatResponse:
    def test_json(self, capsys, non_tty):
        data = {"data": {"id": "1", "text": "hi"}}
        OutputManager(format=OutputFormat.JSON).format_response(data)
        assert json.loads(capsys.readouterr().out) == data

    def test_plain_dict_is_tab_separated(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"id": "42", "deleted": True})
        assert capsys.readouterr().out == "id\t42\ndeleted\tTrue\n"

    def test_plain_list(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(["a", "b"])
        assert capsys.readouterr().out == "a\nb\n"


class TestConfigureLogging:
    def test_default_level_is_warning(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        configure_logging()
        logger = logging.getLogger("xapi")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_verbose_is_debug_and_idempotent(self):
        configure_logging(verbose=True)
        configure_logging(verbose=True)
        logger = logging.getLogger("xapi")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_no_color_uses_plain_handler(self, monkeypatch, capsys):
        monkeypatch.setenv("NO_COLOR", "1")
        configure_logging()
        logger = logging.getLogger("xapi")
        assert not isinstance(logger.handlers[0], RichHandler)


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_reset(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_delegate(self, capsys, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via module")
        output_module.print_data("payload")
        captured = capsys.readouterr()
        assert "via module" in captured.err
        assert captured.out == "payload\n"
