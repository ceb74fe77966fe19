"""Auth commands -- manage the OAuth 2.0 credentials.

Provides the ``xapi auth`` sub-command group:

    xapi auth login    # interactive authorization (PKCE), saves tokens
    xapi auth refresh  # new bearer from the saved refresh credential
    xapi auth status   # what is configured and saved
    xapi auth logout   # forget saved tokens
"""

from __future__ import annotations

from typing import Optional

import typer

from xapi.auth.manager import CredentialManager
from xapi.auth.persistence import DotenvSink, JsonFileSink, create_sink
from xapi.commands.context import config_from_context, run
from xapi.exceptions import XapiError
from xapi.models import XapiConfig
from xapi.output import error, format_response, info, print_data, success, suggest, warning


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    show_tokens: bool = typer.Option(
        False, "--show-tokens", help="Print the obtained tokens to stdout."
    ),
) -> None:
    """Run the interactive authorization and save the resulting tokens.

    Prints the authorization URL, waits for the code (or the full redirect
    URL) on stdin, exchanges it for tokens and hands them to the
    configured credential sink.

    Example::

        xapi auth login --show-tokens
    """

    async def _login(
        manager: CredentialManager, config: XapiConfig
    ) -> tuple[str, Optional[str]]:
        bearer = await manager.login()
        return bearer, manager.refresh_token

    bearer, refresh = run(ctx, _login)
    success("Authorization complete. Tokens saved.")
    if show_tokens:
        print_data(f"x_bearer_token={bearer}")
        if refresh:
            print_data(f"x_refresh_token={refresh}")
    suggest("Post something: xapi tweet \"hello\"")


@auth_app.command("refresh")
def auth_refresh(ctx: typer.Context) -> None:
    """Obtain a new bearer credential with the saved refresh credential.

    Never falls back to the interactive flow; fails if no refresh
    credential is available.
    """

    async def _refresh(manager: CredentialManager, config: XapiConfig) -> str:
        return await manager.force_refresh()

    run(ctx, _refresh)
    success("Bearer credential refreshed.")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the configured endpoints and whether tokens are saved."""
    try:
        config = config_from_context(ctx)
        sink = create_sink(config)
        saved = sink.load()
    except XapiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    status: dict[str, object] = {
        "client_id_source": config.client_id_source,
        "token_url": config.token_url,
        "scopes": " ".join(config.scopes),
        "credential_sink": config.credential_sink,
        "bearer_token": "saved" if saved and saved.bearer_token else "missing",
        "refresh_token": "saved" if saved and saved.refresh_token else "missing",
    }
    if isinstance(sink, (JsonFileSink, DotenvSink)):
        status["credentials_path"] = str(sink.path)
    if saved and saved.saved_at:
        status["saved_at"] = saved.saved_at.isoformat()
    format_response(status)

    if saved and saved.bearer_token and not saved.refresh_token:
        warning("The saved bearer has no refresh credential and cannot be renewed once it expires.")
    if not (saved and saved.refresh_token):
        suggest("Authorize: xapi auth login")


@auth_app.command("logout")
def auth_logout(ctx: typer.Context) -> None:
    """Forget the saved bearer and refresh credentials.

    Tokens are removed locally only; they stay valid at X until they
    expire or are revoked there.
    """
    try:
        sink = create_sink(config_from_context(ctx))
        if sink.load() is None:
            warning("No saved credentials to remove.")
            return
        sink.clear()
    except XapiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info("Saved credentials removed.")
