"""Typer application and CLI entry point for xapi.

This module wires the root Typer application together: global output flags,
per-invocation config overrides stored in ``ctx.obj``, the ``auth`` and
``config`` sub-command groups and the post commands.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`xapi.config`: Config resolution that consumes the overrides.
    :mod:`xapi.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from xapi import __version__
from xapi.commands.auth import auth_app
from xapi.commands.config import config_app
from xapi.commands.posts import delete_command, me_command, tweet_command
from xapi.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="xapi",
    help="Post to the X v2 API with automatic OAuth 2.0 credential handling.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(auth_app, name="auth", help="Credential management.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.command("tweet")(tweet_command)
app.command("delete")(delete_command)
app.command("me")(me_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"xapi {__version__}")
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
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Never prompt for an authorization code."
    ),
    open_browser: bool = typer.Option(
        False, "--open-browser", help="Open the authorization URL in a browser."
    ),
    sink: Optional[str] = typer.Option(
        None, "--sink", help="Where tokens are saved: json, dotenv or memory."
    ),
    dotenv_path: Optional[str] = typer.Option(
        None, "--dotenv-path", help="Path of the .env file used by the dotenv sink."
    ),
    token_url: Optional[str] = typer.Option(
        None, "--token-url", help="Override the OAuth 2.0 token endpoint."
    ),
    api_base_url: Optional[str] = typer.Option(
        None, "--api-base-url", help="Override the API base URL."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~xapi.output.OutputManager` and logging
    from CLI flags, and stores shared options in the Typer context so that
    sub-commands can read them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output and logging.
        no_input: Disable the interactive authorization prompt.
        open_browser: Also open the authorization URL in a browser.
        sink: Credential sink override.
        dotenv_path: ``.env`` path override.
        token_url: Token endpoint override.
        api_base_url: API base URL override.
    """
    from xapi.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["no_input"] = no_input
    ctx.obj["open_browser"] = open_browser
    ctx.obj["verbose"] = verbose
    ctx.obj["overrides"] = {
        "credential_sink": sink,
        "dotenv_path": dotenv_path,
        "token_url": token_url,
        "api_base_url": api_base_url,
    }


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from xapi.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``xapi`` console script.

    Unhandled :class:`~xapi.exceptions.XapiError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from xapi.exceptions import XapiError
        from xapi.output import error

        if isinstance(exc, XapiError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
