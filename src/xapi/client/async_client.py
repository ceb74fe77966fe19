"""Asynchronous request layer for the X v2 API.

This module provides :class:`ApiClient`, which wraps
:class:`httpx.AsyncClient` and implements the credential retry contract:

1. Ask the :class:`~xapi.auth.manager.CredentialManager` for a bearer.
2. Send the call with ``Authorization: Bearer <bearer>``.
3. On HTTP 401, call :meth:`~xapi.auth.manager.CredentialManager.force_refresh`
   and send the same call once more with the new bearer.
4. Map any remaining non-success status to a typed exception.

Endpoint-specific capabilities (:mod:`xapi.client.endpoints`) route every
call through :meth:`ApiClient.request`, so the retry logic exists once.

See Also:
    :mod:`xapi.exceptions` for the error kinds raised here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from xapi.auth.manager import CredentialManager
from xapi.client.endpoints import TweetsApi, UsersApi
from xapi.exceptions import (
    ApiError,
    ConnectionError_,
    OpaqueResponseError,
    RateLimitedError,
    RetryInvariantError,
    UnauthorizedError,
)
from xapi.models import ProblemDetail

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.x.com/2"

# One initial attempt plus one retry after a forced refresh.
MAX_ATTEMPTS = 2

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiClient:
    """Asynchronous HTTP client for X v2 API calls.

    Must be used as an async context manager unless an already-open
    :class:`httpx.AsyncClient` is injected via *http*.

    Args:
        credentials: Source of bearer credentials and forced refreshes.
        base_url: API root every request path is appended to.
        timeout: Request timeout in seconds for the owned HTTP client.
        http: Optional externally managed :class:`httpx.AsyncClient`; it is
            not closed on exit.

    Example::

        async with ApiClient(manager) as client:
            created = await client.tweets.create_tweet("hello")
    """

    def __init__(
        self,
        credentials: CredentialManager,
        base_url: str = API_BASE_URL,
        timeout: float = 30.0,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = http
        self._owns_client = http is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ApiClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Capabilities
    # ------------------------------------------------------------------ #

    @property
    def tweets(self) -> TweetsApi:
        return TweetsApi(self)

    @property
    def users(self) -> UsersApi:
        return UsersApi(self)

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send an authenticated request, retrying once after a 401.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            path: Path appended to the base URL (e.g. ``/tweets``).
            params: Query parameters.
            json_body: JSON-serialisable body.

        Returns:
            The successful :class:`httpx.Response`.

        Raises:
            UnauthorizedError: If the call is still rejected after a forced refresh.
            RateLimitedError: On 429; not retried.
            ApiError: On other failures carrying a problem body.
            OpaqueResponseError: On other failures with an unrecognised body.
            ConnectionError_: On network / timeout errors.
            AuthError: If a credential cannot be obtained or refreshed.
        """
        bearer = await self._credentials.authenticate()

        for attempt in range(MAX_ATTEMPTS):
            response = await self._send(method, path, bearer, params, json_body)

            if response.status_code == 401 and attempt == 0:
                logger.info("%s %s returned 401, forcing a credential refresh", method, path)
                bearer = await self._credentials.force_refresh()
                continue

            self._map_response_error(response)
            return response

        raise RetryInvariantError(
            f"{method} {path}: no verdict after {MAX_ATTEMPTS} attempts"
        )

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    async def request_model(
        self,
        method: str,
        path: str,
        model: type[ModelT],
        **kwargs: Any,
    ) -> ModelT:
        """Send a request and parse the success body into *model*.

        Raises:
            OpaqueResponseError: If the body does not match *model*.
        """
        response = await self.request(method, path, **kwargs)
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OpaqueResponseError(
                response.status_code, f"unexpected response body: {exc}"
            ) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _send(
        self,
        method: str,
        path: str,
        bearer: str,
        params: Optional[dict[str, Any]],
        json_body: Optional[Any],
    ) -> httpx.Response:
        assert self._client is not None, "Client not initialised -- use as async context manager"

        headers = {"Authorization": f"Bearer {bearer}"}
        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["json"] = json_body

        try:
            return await self._client.request(method, f"{self._base_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"{method} {path} failed: {exc}") from exc

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        if status == 401:
            raise UnauthorizedError("The API rejected the bearer credential after a refresh")

        if status == 429:
            raise RateLimitedError(
                "Rate limit exceeded",
                retry_after=_int_header(response, "retry-after"),
                reset_at=_int_header(response, "x-rate-limit-reset"),
            )

        try:
            problem = ProblemDetail.model_validate(response.json())
        except (ValueError, ValidationError):
            raise OpaqueResponseError(status, response.text) from None
        raise ApiError(problem.title, problem.detail, problem.type, problem.status)


def _int_header(response: httpx.Response, name: str) -> Optional[int]:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
