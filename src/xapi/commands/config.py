"""Config commands -- view and modify the persisted configuration.

Provides the ``xapi config`` sub-command group for reading, updating and
resetting ``~/.config/xapi/config.json`` (:class:`~xapi.models.XapiConfig`).
Values saved here have the lowest precedence: ``XAPI_*`` environment
variables and CLI flags still override them.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from xapi.config import get_config_path, load_config, save_config
from xapi.exceptions import XapiError
from xapi.models import XapiConfig
from xapi.output import error, format_response, info, print_data, success


config_app = typer.Typer(no_args_is_help=True)

_NULLABLE_KEYS = ("client_secret_source", "refresh_token_source")
_NULL_WORDS = ("null", "none", "")


@config_app.command("show")
def config_show() -> None:
    """Show the persisted configuration.

    Prints the config file path followed by every field, defaults
    included.

    Example::

        xapi config show
        xapi --json config show
    """
    try:
        config = load_config()
    except XapiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config file: {get_config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("path")
def config_path() -> None:
    """Print the config file path."""
    print_data(str(get_config_path()))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config field, e.g. 'token_url' or 'credential_sink'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    ``scopes`` takes a space- or comma-separated list. Optional fields
    (``client_secret_source``, ``refresh_token_source``) accept ``null``
    to unset them, which turns the client into a public client for
    ``client_secret_source``. The updated config is validated before it is
    saved.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value is invalid.

    Example::

        xapi config set credential_sink dotenv
        xapi config set scopes "tweet.read users.read offline.access"
        xapi config set client_secret_source null
    """
    if key not in XapiConfig.model_fields:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        config = load_config()
    except XapiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data = config.model_dump(mode="json")
    coerced = _coerce(key, value)
    data[key] = coerced

    try:
        new_config = XapiConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation."),
) -> None:
    """Reset the configuration to defaults."""
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(XapiConfig())
    success("Configuration reset to defaults.")


def _coerce(key: str, value: str) -> Any:
    if key == "scopes":
        return value.replace(",", " ").split()
    if key in _NULLABLE_KEYS and value.strip().lower() in _NULL_WORDS:
        return None
    return value
