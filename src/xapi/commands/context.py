"""Helpers shared by the command modules.

Commands are synchronous Typer callbacks; the library is asynchronous.
:func:`run` bridges the two and turns :class:`~xapi.exceptions.XapiError`
into a printed error plus the matching exit code.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import typer

from xapi.auth.manager import CredentialManager, create_manager
from xapi.config import resolve_config
from xapi.exceptions import XapiError
from xapi.models import XapiConfig
from xapi.output import debug, error

T = TypeVar("T")


def config_from_context(ctx: typer.Context) -> XapiConfig:
    """Resolve the effective config, applying overrides stored by the root callback."""
    obj: dict[str, Any] = ctx.obj or {}
    return resolve_config(obj.get("overrides"))


def manager_from_context(ctx: typer.Context, config: XapiConfig) -> CredentialManager:
    """Build a :class:`CredentialManager` honouring ``--no-input`` and ``--open-browser``."""
    obj: dict[str, Any] = ctx.obj or {}
    return create_manager(
        config,
        interactive=not obj.get("no_input", False),
        open_browser=obj.get("open_browser", False),
    )


def run(ctx: typer.Context, action: Callable[[CredentialManager, XapiConfig], Awaitable[T]]) -> T:
    """Build the manager, run *action* on a fresh event loop, and close it.

    Raises:
        typer.Exit: With the error's ``exit_code`` if an :class:`XapiError` occurs.
    """

    async def _main() -> T:
        config = config_from_context(ctx)
        manager = manager_from_context(ctx, config)
        debug(
            f"Token endpoint {config.token_url}, credential sink {config.credential_sink}, "
            f"refresh credential {'present' if manager.has_refresh_token else 'absent'}"
        )
        try:
            return await action(manager, config)
        finally:
            await manager.aclose()

    try:
        return asyncio.run(_main())
    except XapiError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
