"""Tests for TokenEndpoint -- authorization URL, refresh and code exchange."""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import parse_qs, parse_qsl, urlparse

import httpx
import pytest

from xapi.auth.token_endpoint import TOKEN_URL, TokenEndpoint
from xapi.exceptions import ExchangeRejectedError


def _form(request: httpx.Request) -> dict[str, str]:
    return dict(parse_qsl(request.content.decode()))


def _endpoint(http: httpx.AsyncClient, secret: str | None = None, **kwargs: Any) -> TokenEndpoint:
    return TokenEndpoint("cid", secret, http=http, **kwargs)


class TestAuthorizationUrl:
    def test_contains_pkce_and_client_parameters(self) -> None:
        endpoint = TokenEndpoint("cid")
        url = endpoint.authorization_url("challenge-1", "state-1")

        parsed = urlparse(url)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://x.com/i/oauth2/authorize"
        params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        assert params == {
            "response_type": "code",
            "client_id": "cid",
            "redirect_uri": "http://localhost:8080/callback",
            "scope": "tweet.read tweet.write users.read offline.access",
            "state": "state-1",
            "code_challenge": "challenge-1",
            "code_challenge_method": "S256",
        }

    def test_custom_scopes(self) -> None:
        endpoint = TokenEndpoint("cid", scopes=["users.read"])
        params = parse_qs(urlparse(endpoint.authorization_url("c", "s")).query)
        assert params["scope"] == ["users.read"]


class TestRefresh:
    @pytest.mark.asyncio
    async def test_public_client_sends_client_id_in_form(self, token_server) -> None:
        http, captured = token_server([(200, {"access_token": "b1", "refresh_token": "r2"})])
        token = await _endpoint(http).refresh("r1")

        assert token.access_token == "b1"
        assert token.refresh_token == "r2"
        request = captured[0]
        assert str(request.url) == TOKEN_URL
        assert _form(request) == {
            "grant_type": "refresh_token",
            "refresh_token": "r1",
            "client_id": "cid",
        }
        assert "authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_confidential_client_uses_basic_auth(self, token_server) -> None:
        http, captured = token_server([(200, {"access_token": "b1"})])
        token = await _endpoint(http, "secret").refresh("r1")

        assert token.refresh_token is None
        expected = base64.b64encode(b"cid:secret").decode()
        assert captured[0].headers["authorization"] == f"Basic {expected}"
        assert "client_id" not in _form(captured[0])

    @pytest.mark.asyncio
    async def test_invalid_grant_is_rejected(self, token_server) -> None:
        http, _ = token_server(
            [(400, {"error": "invalid_grant", "error_description": "Value passed was invalid"})]
        )
        with pytest.raises(ExchangeRejectedError) as exc_info:
            await _endpoint(http).refresh("dead")
        assert exc_info.value.status_code == 400
        assert exc_info.value.error == "invalid_grant"
        assert "Value passed was invalid" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, token_server) -> None:
        http, _ = token_server([(503, "upstream unavailable")])
        with pytest.raises(ExchangeRejectedError, match="503") as exc_info:
            await _endpoint(http).refresh("r1")
        assert exc_info.value.error is None

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, token_server) -> None:
        http, _ = token_server([(200, {"token_type": "bearer"})])
        with pytest.raises(ExchangeRejectedError, match="invalid response"):
            await _endpoint(http).refresh("r1")

    @pytest.mark.asyncio
    async def test_empty_access_token_is_rejected(self, token_server) -> None:
        http, _ = token_server([(200, {"access_token": "", "refresh_token": "r2"})])
        with pytest.raises(ExchangeRejectedError, match="invalid response"):
            await _endpoint(http).refresh("r1")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(ExchangeRejectedError, match="connection refused"):
            await _endpoint(http).refresh("r1")


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_sends_code_verifier_and_redirect(self, token_server) -> None:
        http, captured = token_server([(200, {"access_token": "b1", "refresh_token": "r1"})])
        token = await _endpoint(http, redirect_uri="http://127.0.0.1/cb").exchange_code(
            "code-1", "verifier-1"
        )

        assert token.access_token == "b1"
        assert _form(captured[0]) == {
            "grant_type": "authorization_code",
            "code": "code-1",
            "redirect_uri": "http://127.0.0.1/cb",
            "code_verifier": "verifier-1",
            "client_id": "cid",
        }

    @pytest.mark.asyncio
    async def test_rejected_code(self, token_server) -> None:
        http, _ = token_server([(400, {"error": "invalid_request"})])
        with pytest.raises(ExchangeRejectedError, match="invalid_request"):
            await _endpoint(http).exchange_code("bad", "verifier")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self, token_server) -> None:
        http, _ = token_server([])
        await _endpoint(http).aclose()
        assert not http.is_closed

    @pytest.mark.asyncio
    async def test_aclose_closes_owned_client(self) -> None:
        endpoint = TokenEndpoint("cid")
        owned = endpoint._client()
        await endpoint.aclose()
        assert owned.is_closed
