"""OAuth 2.0 credential lifecycle for xapi.

This package owns the bearer credential used on every API call:

- :class:`CredentialStore` -- the single slot holding the current bearer,
  with lock-free reads and an exclusive write scope.
- :class:`CredentialManager` -- the acquisition protocol (cached, refresh,
  then interactive) and the forced refresh used after a 401.
- :class:`TokenEndpoint` -- the authorization server client.
- :class:`AuthorizationPrompt` / :class:`CredentialSink` -- seams for the
  operator and for persistence, with console, headless, JSON-file, dotenv
  and in-memory implementations.

Typical usage::

    from xapi.auth import create_manager
    from xapi.config import resolve_config

    manager = create_manager(resolve_config())
    bearer = await manager.authenticate()
"""

from xapi.auth.base import AuthorizationPrompt, CredentialSink, SavedCredentials
from xapi.auth.credential_store import CredentialGuard, CredentialStore
from xapi.auth.manager import CredentialManager, create_manager, parse_authorization_reply
from xapi.auth.persistence import DotenvSink, JsonFileSink, MemorySink, create_sink
from xapi.auth.pkce import generate_pkce_pair, generate_state
from xapi.auth.prompt import ConsolePrompt, HeadlessPrompt
from xapi.auth.token_endpoint import TokenEndpoint

__all__ = [
    "AuthorizationPrompt",
    "ConsolePrompt",
    "CredentialGuard",
    "CredentialManager",
    "CredentialSink",
    "CredentialStore",
    "DotenvSink",
    "HeadlessPrompt",
    "JsonFileSink",
    "MemorySink",
    "SavedCredentials",
    "TokenEndpoint",
    "create_manager",
    "create_sink",
    "generate_pkce_pair",
    "generate_state",
    "parse_authorization_reply",
]
