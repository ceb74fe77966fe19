"""Client for the OAuth 2.0 authorization and token endpoints.

:class:`TokenEndpoint` knows how to build the browser authorization URL and
how to run the two grants the credential manager uses:

1. ``refresh_token`` -- trade a refresh credential for a new bearer
   (and possibly a rotated refresh credential).
2. ``authorization_code`` -- trade an operator-supplied code plus the PKCE
   verifier for a bearer and, typically, a refresh credential.

Every failure (transport error, non-2xx status, malformed body) surfaces as
:class:`~xapi.exceptions.ExchangeRejectedError`. Nothing is retried here.

Confidential clients authenticate with HTTP Basic (``client_id`` and
``client_secret``); public clients send ``client_id`` in the form body.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from xapi.exceptions import ExchangeRejectedError
from xapi.models import DEFAULT_SCOPES, TokenErrorResponse, TokenResponse

logger = logging.getLogger(__name__)

AUTHORIZATION_URL = "https://x.com/i/oauth2/authorize"
TOKEN_URL = "https://api.x.com/2/oauth2/token"
REDIRECT_URI = "http://localhost:8080/callback"


class TokenEndpoint:
    """Talks to the authorization server on behalf of one OAuth client.

    Args:
        client_id: The OAuth client id.
        client_secret: The client secret, or ``None`` for a public client.
        authorization_url: Browser-facing authorization endpoint.
        token_url: Token endpoint for both grants.
        redirect_uri: Redirect URI registered for the client.
        scopes: Scopes requested during the interactive exchange.
        http: Optional shared :class:`httpx.AsyncClient`. When omitted, one
            is created lazily and closed by :meth:`aclose`.
        timeout: Request timeout in seconds for the lazily created client.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str] = None,
        *,
        authorization_url: str = AUTHORIZATION_URL,
        token_url: str = TOKEN_URL,
        redirect_uri: str = REDIRECT_URI,
        scopes: Optional[list[str]] = None,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.authorization_endpoint = authorization_url
        self.token_url = token_url
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes) if scopes is not None else list(DEFAULT_SCOPES)
        self._http = http
        self._owns_http = http is None
        self._timeout = timeout

    def authorization_url(self, code_challenge: str, state: str) -> str:
        """Build the URL the operator opens to grant access.

        Args:
            code_challenge: S256 PKCE challenge for this attempt.
            state: Anti-forgery token echoed back on the redirect.

        Returns:
            The fully-formed authorization URL.
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Run the refresh-token grant.

        Raises:
            ExchangeRejectedError: If the server rejects the refresh token or
                cannot be reached.
        """
        logger.info("Requesting bearer credential via refresh_token grant")
        return await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            grant="refresh",
        )

    async def exchange_code(self, code: str, code_verifier: str) -> TokenResponse:
        """Run the authorization-code grant with the PKCE verifier.

        Raises:
            ExchangeRejectedError: If the server rejects the code or cannot
                be reached.
        """
        logger.info("Exchanging authorization code for bearer credential")
        return await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "code_verifier": code_verifier,
            },
            grant="code exchange",
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def _request_token(self, data: dict[str, str], grant: str) -> TokenResponse:
        """POST *data* to the token endpoint and parse the result."""
        auth: Optional[httpx.BasicAuth] = None
        if self._client_secret:
            auth = httpx.BasicAuth(self.client_id, self._client_secret)
        else:
            data = {**data, "client_id": self.client_id}

        try:
            response = await self._client().post(
                self.token_url,
                data=data,
                auth=auth,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Token %s failed: %s", grant, exc)
            raise ExchangeRejectedError(f"Token {grant} failed: {exc}") from exc

        if response.is_error:
            raise _rejection(grant, response)

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ExchangeRejectedError(
                f"Token {grant} returned an invalid response: {exc}",
                status_code=response.status_code,
            ) from exc

        logger.info(
            "Token %s succeeded (expires_in=%s, refresh_token=%s)",
            grant,
            token.expires_in,
            "issued" if token.refresh_token else "not issued",
        )
        return token


def _rejection(grant: str, response: httpx.Response) -> ExchangeRejectedError:
    """Build the error for a non-2xx token endpoint response."""
    error: Optional[str] = None
    detail = response.text[:200] if response.text else ""
    try:
        body = TokenErrorResponse.model_validate(response.json())
        error = body.error
        detail = f"{body.error}: {body.error_description}" if body.error_description else body.error
    except (ValueError, ValidationError):
        pass

    logger.warning("Token %s rejected with status %s (%s)", grant, response.status_code, error)
    message = f"Token {grant} rejected with status {response.status_code}"
    if detail:
        message = f"{message}: {detail}"
    return ExchangeRejectedError(message, status_code=response.status_code, error=error)
