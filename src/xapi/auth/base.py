"""Abstract collaborators of the credential manager.

This module defines the two seams the :class:`~xapi.auth.manager.CredentialManager`
talks through, so that the same acquisition protocol runs unchanged in an
interactive terminal, a headless service, or a test:

- :class:`AuthorizationPrompt` -- presents the authorization URL to an
  operator and returns the single line they type back.
- :class:`CredentialSink` -- receives every ``(bearer, refresh)`` pair the
  manager obtains so that it survives the process.

To support a new environment, subclass the relevant base and implement its
abstract methods. Concrete implementations live in :mod:`xapi.auth.prompt`
and :mod:`xapi.auth.persistence`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SavedCredentials(BaseModel):
    """A bearer/refresh pair as recorded by a :class:`CredentialSink`.

    Attributes:
        bearer_token: The last bearer credential obtained.
        refresh_token: The refresh credential to use on next start, if any.
        saved_at: UTC time the pair was written, when the sink records it.
    """

    bearer_token: Optional[str] = Field(default=None, description="Last bearer credential")
    refresh_token: Optional[str] = Field(default=None, description="Refresh credential")
    saved_at: Optional[datetime] = None


class AuthorizationPrompt(ABC):
    """Obtains an authorization code from an operator.

    The prompt is the only place the acquisition protocol may block for an
    unbounded time. Implementations must not interpret the returned text;
    the manager strips it, rejects blanks, and extracts ``code`` from a
    pasted redirect URL.
    """

    @abstractmethod
    async def request_code(self, authorization_url: str) -> str:
        """Show *authorization_url* and return the operator's raw reply.

        Args:
            authorization_url: The fully-formed URL the operator must open.

        Returns:
            One line of text as typed, without further validation.

        Raises:
            AuthorizationError: If no operator is available.
        """
        ...


class CredentialSink(ABC):
    """Durable record of obtained credentials.

    ``save`` is called after every successful acquisition. ``refresh_token``
    is ``None`` when the server did not issue or rotate one, in which case
    sinks keep whatever refresh credential they already hold.
    """

    @abstractmethod
    def save(self, bearer_token: str, refresh_token: Optional[str]) -> None:
        """Record a newly obtained credential pair.

        Raises:
            PersistenceError: If the pair cannot be written.
        """
        ...

    @abstractmethod
    def load(self) -> Optional[SavedCredentials]:
        """Return the last recorded pair, or ``None`` if nothing was saved."""
        ...

    def clear(self) -> None:
        """Forget any recorded credentials. The default is a no-op."""
        return None
