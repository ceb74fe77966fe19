"""Credential manager -- lifecycle of the bearer credential.

The :class:`CredentialManager` is the central coordinator of the auth
subsystem. It owns one :class:`~xapi.auth.credential_store.CredentialStore`
and exposes the two operations the request layer relies on:

- :meth:`~CredentialManager.authenticate` -- return the cached bearer, or
  run the acquisition protocol (refresh, then interactive) exactly once no
  matter how many callers are waiting.
- :meth:`~CredentialManager.force_refresh` -- drop the cached bearer and
  obtain a new one with the refresh credential only.

Every acquisition runs inside the store's exclusive scope, so at most one
exchange with the authorization server is in flight per manager. The
exchange runs in a task owned by the manager and callers wait on it through
:func:`asyncio.shield`. Cancelling a caller (for example with
:func:`asyncio.wait_for`) therefore never aborts an exchange halfway, and a
refresh credential the server has already rotated is still recorded.

For the common case, :func:`create_manager` builds a manager from an
:class:`~xapi.models.XapiConfig`.

See Also:
    :class:`~xapi.client.async_client.ApiClient` -- the request layer that
    calls :meth:`~CredentialManager.force_refresh` on a 401.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Coroutine, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from xapi.auth.base import AuthorizationPrompt, CredentialSink
from xapi.auth.credential_store import CredentialStore
from xapi.auth.persistence import MemorySink, create_sink
from xapi.auth.pkce import generate_pkce_pair, generate_state
from xapi.auth.prompt import ConsolePrompt, HeadlessPrompt
from xapi.auth.token_endpoint import TokenEndpoint
from xapi.config import resolve_credential
from xapi.exceptions import (
    AuthorizationError,
    EmptyAuthorizationCodeError,
    ExchangeRejectedError,
    NoRefreshCredentialError,
)
from xapi.models import TokenResponse, XapiConfig

logger = logging.getLogger(__name__)


class CredentialManager:
    """Obtain, cache and renew the bearer credential for one OAuth client.

    Args:
        endpoint: Token endpoint client used for both grants.
        refresh_token: Refresh credential available at startup, if any.
        sink: Receives every obtained ``(bearer, refresh)`` pair. Defaults to
            a :class:`~xapi.auth.persistence.MemorySink`.
        prompt: Asks the operator for an authorization code. Defaults to
            :class:`~xapi.auth.prompt.HeadlessPrompt`, which fails instead
            of blocking.
        store: The bearer slot. A fresh, empty store is created when omitted.
        seed_bearer: Previously persisted bearer to start ``Cached`` with.
            Ignored when *store* is given.

    Example::

        manager = CredentialManager(endpoint, refresh_token=saved_refresh)
        bearer = await manager.authenticate()
    """

    def __init__(
        self,
        endpoint: TokenEndpoint,
        *,
        refresh_token: Optional[str] = None,
        sink: Optional[CredentialSink] = None,
        prompt: Optional[AuthorizationPrompt] = None,
        store: Optional[CredentialStore] = None,
        seed_bearer: Optional[str] = None,
    ) -> None:
        self._endpoint = endpoint
        self._refresh_token = refresh_token or None
        self._sink = sink if sink is not None else MemorySink()
        self._prompt = prompt if prompt is not None else HeadlessPrompt()
        self._store = store if store is not None else CredentialStore(seed_bearer or None)
        self._inflight: Optional[asyncio.Task[str]] = None
        self._tasks: set[asyncio.Task[str]] = set()

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def endpoint(self) -> TokenEndpoint:
        return self._endpoint

    @property
    def refresh_token(self) -> Optional[str]:
        """The refresh credential the next refresh exchange will use."""
        return self._refresh_token

    @property
    def has_refresh_token(self) -> bool:
        return self._refresh_token is not None

    async def authenticate(self) -> str:
        """Return a bearer credential, acquiring one if none is cached.

        A cached value is returned without any network call. Otherwise the
        caller joins the in-flight acquisition, starting one if there is
        none, so concurrent callers share a single exchange. Cancelling the
        caller only ends its wait; the acquisition still completes and
        caches its result.

        Returns:
            The bearer credential.

        Raises:
            ExchangeRejectedError: If the code exchange is rejected.
            EmptyAuthorizationCodeError: If the operator submits a blank code.
            AuthorizationError: If the interactive step cannot complete.
            PersistenceError: If the sink cannot record the new pair.
        """
        cached = self._store.read()
        if cached is not None:
            return cached

        if self._inflight is None or self._inflight.done():
            self._inflight = self._detach(self._acquire_and_cache())
        return await asyncio.shield(self._inflight)

    async def force_refresh(self) -> str:
        """Discard the cached bearer and obtain a new one via the refresh grant.

        The slot is cleared before the exchange starts and stays empty if it
        fails. The interactive exchange is never attempted.

        Raises:
            NoRefreshCredentialError: If no refresh credential is configured.
            ExchangeRejectedError: If the authorization server rejects it.
        """
        return await asyncio.shield(self._detach(self._refresh_and_cache()))

    async def login(self) -> str:
        """Discard the cached bearer and run the interactive exchange unconditionally."""
        return await asyncio.shield(self._detach(self._login_and_cache()))

    async def invalidate(self) -> None:
        """Clear the cached bearer so the next :meth:`authenticate` re-acquires."""
        async with self._store.acquire_exclusive() as guard:
            guard.clear()

    async def aclose(self) -> None:
        """Wait for exchanges whose callers went away, then close the endpoint."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._endpoint.aclose()

    # ------------------------------------------------------------------ #
    # Manager-owned exchange tasks
    # ------------------------------------------------------------------ #

    def _detach(self, coro: Coroutine[object, object, str]) -> asyncio.Task[str]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task[str]) -> None:
        self._tasks.discard(task)
        if self._inflight is task:
            self._inflight = None
        # Waiters get the error through shield; a task nobody awaits anymore
        # must not log "exception was never retrieved".
        if not task.cancelled():
            task.exception()

    async def _acquire_and_cache(self) -> str:
        async with self._store.acquire_exclusive() as guard:
            # Filled by a force_refresh() or login() we queued behind.
            if guard.value is not None:
                return guard.value
            bearer = await self._acquire()
            guard.set(bearer)
            return bearer

    async def _refresh_and_cache(self) -> str:
        async with self._store.acquire_exclusive() as guard:
            guard.clear()
            bearer = await self._refresh()
            guard.set(bearer)
            return bearer

    async def _login_and_cache(self) -> str:
        async with self._store.acquire_exclusive() as guard:
            guard.clear()
            bearer = await self._interactive()
            guard.set(bearer)
            return bearer

    # ------------------------------------------------------------------ #
    # Acquisition protocol (runs inside the exclusive scope)
    # ------------------------------------------------------------------ #

    async def _acquire(self) -> str:
        if self._refresh_token is not None:
            try:
                return await self._refresh()
            except ExchangeRejectedError as exc:
                logger.warning(
                    "Refresh exchange failed, falling back to interactive authorization: %s",
                    exc,
                )
        else:
            logger.info("No refresh credential configured, starting interactive authorization")
        return await self._interactive()

    async def _refresh(self) -> str:
        if self._refresh_token is None:
            raise NoRefreshCredentialError(
                "No refresh credential configured; run the interactive authorization first"
            )
        token = await self._endpoint.refresh(self._refresh_token)
        self._record(token)
        return token.access_token

    async def _interactive(self) -> str:
        code_verifier, code_challenge = generate_pkce_pair()
        state = generate_state()
        url = self._endpoint.authorization_url(code_challenge, state)

        reply = await self._prompt.request_code(url)
        code = parse_authorization_reply(reply, state)

        token = await self._endpoint.exchange_code(code, code_verifier)
        self._record(token)
        return token.access_token

    def _record(self, token: TokenResponse) -> None:
        """Adopt a newly issued refresh credential and hand the pair to the sink."""
        if token.refresh_token and token.refresh_token != self._refresh_token:
            if self._refresh_token is not None:
                logger.info("Authorization server rotated the refresh credential")
            self._refresh_token = token.refresh_token
        self._sink.save(token.access_token, token.refresh_token)


def parse_authorization_reply(reply: str, expected_state: str) -> str:
    """Extract the authorization code from the operator's reply.

    The reply is either the bare code or the full redirect URL. For a URL,
    an ``error`` parameter or a ``state`` that differs from *expected_state*
    is rejected.

    Raises:
        EmptyAuthorizationCodeError: If no code was given.
        AuthorizationError: If the redirect reports an error or a foreign state.
    """
    text = reply.strip()
    if not text:
        raise EmptyAuthorizationCodeError("Authorization code cannot be empty")

    if "://" not in text and not text.startswith("?"):
        return text

    params = parse_qs(urlparse(text).query)
    if "error" in params:
        description = params.get("error_description", [""])[0]
        message = f"Authorization was not granted: {params['error'][0]}"
        raise AuthorizationError(f"{message} - {description}" if description else message)

    state = params.get("state", [None])[0]
    if state is not None and state != expected_state:
        raise AuthorizationError("Authorization state mismatch; restart the login")

    code = params.get("code", [""])[0].strip()
    if not code:
        raise EmptyAuthorizationCodeError("Redirect URL does not contain an authorization code")
    return code


def create_manager(
    config: XapiConfig,
    *,
    interactive: bool = True,
    open_browser: bool = False,
    http: Optional[httpx.AsyncClient] = None,
    sink: Optional[CredentialSink] = None,
) -> CredentialManager:
    """Create a :class:`CredentialManager` from configuration.

    The startup refresh credential comes from ``refresh_token_source`` when
    configured, else from the sink's saved pair, else from the
    ``X_REFRESH_TOKEN`` environment variable. A saved bearer (or
    ``X_BEARER_TOKEN``) seeds the slot; if it is stale the first request
    recovers through the 401 retry.

    Args:
        config: The effective configuration.
        interactive: Use :class:`ConsolePrompt` rather than :class:`HeadlessPrompt`.
        open_browser: Let the console prompt open the authorization URL.
        http: Optional shared HTTP client for the token endpoint.
        sink: Override the sink selected by ``config.credential_sink``.

    Raises:
        ConfigError: If the client id (or configured secret) cannot be resolved.
    """
    client_id = resolve_credential(config.client_id_source)
    client_secret = (
        resolve_credential(config.client_secret_source) if config.client_secret_source else None
    )

    sink = sink if sink is not None else create_sink(config)
    saved = sink.load()

    refresh_token: Optional[str]
    if config.refresh_token_source:
        refresh_token = resolve_credential(config.refresh_token_source)
    elif saved is not None and saved.refresh_token:
        refresh_token = saved.refresh_token
    else:
        refresh_token = os.environ.get("X_REFRESH_TOKEN") or None

    seed_bearer = (saved.bearer_token if saved else None) or os.environ.get("X_BEARER_TOKEN")

    endpoint = TokenEndpoint(
        client_id,
        client_secret or None,
        authorization_url=config.authorization_url,
        token_url=config.token_url,
        redirect_uri=config.redirect_uri,
        scopes=config.scopes,
        http=http,
        timeout=config.timeout,
    )
    prompt: AuthorizationPrompt = (
        ConsolePrompt(open_browser=open_browser) if interactive else HeadlessPrompt()
    )
    return CredentialManager(
        endpoint,
        refresh_token=refresh_token,
        sink=sink,
        prompt=prompt,
        seed_bearer=seed_bearer,
    )
