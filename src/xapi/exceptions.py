"""Exception hierarchy for xapi.

All exceptions inherit from :class:`XapiError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`xapi.exit_codes`.
The top-level error handler in :func:`xapi.app.main` catches ``XapiError``
and exits with the appropriate code, while unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    XapiError (exit 1)
    +-- AuthError                        (exit 3)
    |   +-- NoRefreshCredentialError     (exit 3)
    |   +-- ExchangeRejectedError        (exit 3)
    |   +-- AuthorizationError           (exit 3)
    |   +-- EmptyAuthorizationCodeError  (exit 2)
    |   +-- UnauthorizedError            (exit 3)
    +-- RateLimitedError                 (exit 8)
    +-- ApiError                         (exit 5)
    +-- OpaqueResponseError              (exit 5)
    +-- ConnectionError_                 (exit 6)
    +-- ConfigError                      (exit 1)
    +-- PersistenceError                 (exit 1)
    +-- RetryInvariantError              (exit 70)
"""

from __future__ import annotations

from typing import Optional

from xapi.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERNAL_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class XapiError(Exception):
    """Base exception for all xapi errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`xapi.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class AuthError(XapiError):
    """Raised when a credential cannot be obtained or is rejected."""

    exit_code = EXIT_AUTH_FAILURE


class NoRefreshCredentialError(AuthError):
    """Raised when a refresh exchange is requested but no refresh credential is configured."""


class ExchangeRejectedError(AuthError):
    """Raised when the token endpoint rejects a refresh or authorization-code exchange.

    Covers network failures talking to the token endpoint as well as
    protocol-level rejections (``invalid_grant`` and friends).

    Args:
        message: Human-readable description.
        status_code: HTTP status returned by the token endpoint, if any.
        error: The OAuth ``error`` code from the response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error


class AuthorizationError(AuthError):
    """Raised when the interactive authorization step fails (denied, state mismatch, no TTY)."""


class EmptyAuthorizationCodeError(AuthError):
    """Raised when the operator submits a blank authorization code."""

    exit_code = EXIT_INVALID_USAGE


class UnauthorizedError(AuthError):
    """Raised when the API rejects the attached bearer credential even after a refresh."""


class RateLimitedError(XapiError):
    """Raised when the API answers HTTP 429.

    Args:
        message: Human-readable description.
        retry_after: Seconds to wait, from the ``retry-after`` header.
        reset_at: Epoch seconds when the window resets, from ``x-rate-limit-reset``.
    """

    exit_code = EXIT_RATE_LIMITED

    def __init__(
        self,
        message: str,
        retry_after: Optional[int] = None,
        reset_at: Optional[int] = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.reset_at = reset_at


class ApiError(XapiError):
    """Raised when the API returns a structured problem body.

    The fields mirror the problem-details object X returns for failed calls.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, title: str, detail: str, type: str, status: int):
        super().__init__(f"{title} ({status}): {detail}")
        self.title = title
        self.detail = detail
        self.type = type
        self.status = status


class OpaqueResponseError(XapiError):
    """Raised for a non-success status whose body is not a recognised problem object."""

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, status_code: int, body: str):
        super().__init__(f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class ConnectionError_(XapiError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(XapiError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class PersistenceError(XapiError):
    """Raised when obtained credentials cannot be written to the credential sink."""

    exit_code = EXIT_GENERIC_FAILURE


class RetryInvariantError(XapiError):
    """Raised when the request layer exhausts its single retry without a verdict.

    This cannot happen unless the retry loop itself is broken; it is reported
    instead of looping.
    """

    exit_code = EXIT_INTERNAL_ERROR
