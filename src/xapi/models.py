"""Canonical Pydantic models shared across all xapi modules.

The models fall into three groups:

**Configuration** -- serialised as JSON in the user's config directory:
    :class:`XapiConfig`.

**OAuth wire models** -- parsed from the token endpoint:
    :class:`TokenResponse`, :class:`TokenErrorResponse`.

**API payloads** -- request/response bodies of the wrapped endpoints:
    :class:`ProblemDetail`, :class:`TweetRequest`, :class:`TweetData`,
    :class:`TweetObject`, :class:`DeletedTweet`, :class:`User`,
    :class:`UserObject`.

All models use Pydantic v2. Wire models ignore unknown fields so that new
attributes added by the server never break parsing.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_SCOPES = ["tweet.read", "tweet.write", "users.read", "offline.access"]


# --- Configuration ---


class XapiConfig(BaseModel):
    """User configuration persisted at ``~/.config/xapi/config.json``.

    Loaded and saved by :func:`~xapi.config.load_config` and
    :func:`~xapi.config.save_config`. Fields here have the lowest
    precedence and can be overridden by ``XAPI_*`` environment variables
    or CLI flags. See :func:`~xapi.config.resolve_config`.

    Credential fields hold *sources* (``env:VAR``, ``file:/path``,
    ``prompt``), never the secrets themselves.
    """

    client_id_source: str = Field(
        default="env:X_CLIENT_ID", description="Credential source for the OAuth client id"
    )
    client_secret_source: Optional[str] = Field(
        default="env:X_CLIENT_SECRET",
        description="Credential source for the OAuth client secret (None for public clients)",
    )
    refresh_token_source: Optional[str] = Field(
        default=None,
        description="Credential source for the refresh token; falls back to the sink",
    )
    authorization_url: str = "https://x.com/i/oauth2/authorize"
    token_url: str = "https://api.x.com/2/oauth2/token"
    redirect_uri: str = "http://localhost:8080/callback"
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    api_base_url: str = "https://api.x.com/2"
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    credential_sink: str = Field(
        default="json", description="Where obtained tokens are saved: json, dotenv"
    )
    dotenv_path: str = Field(default=".env", description="Path used by the dotenv sink")


# --- OAuth wire models ---


class TokenResponse(BaseModel):
    """Successful token endpoint response (:rfc:`6749#section-5.1`)."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


class TokenErrorResponse(BaseModel):
    """Error body returned by the token endpoint (:rfc:`6749#section-5.2`)."""

    model_config = ConfigDict(extra="ignore")

    error: str
    error_description: Optional[str] = None


# --- API payloads ---


class ProblemDetail(BaseModel):
    """Problem object X returns alongside a non-success status."""

    model_config = ConfigDict(extra="ignore")

    title: str
    detail: str
    type: str
    status: int


class TweetRequest(BaseModel):
    """Request payload for creating a new post."""

    text: str


class TweetData(BaseModel):
    """Core post data returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str


class TweetObject(BaseModel):
    """Envelope wrapping :class:`TweetData`."""

    model_config = ConfigDict(extra="ignore")

    data: TweetData


class DeletedFlag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    deleted: bool


class DeletedTweet(BaseModel):
    """Envelope returned by ``DELETE /tweets/:id``."""

    model_config = ConfigDict(extra="ignore")

    data: DeletedFlag


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    username: str


class UserObject(BaseModel):
    """Envelope returned by ``GET /users/me``."""

    model_config = ConfigDict(extra="ignore")

    data: User
