"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~xapi.exceptions.XapiError` subclass.
Shell wrappers can inspect the exit code to tell a throttled call from a
rejected credential without parsing stderr.

Example::

    $ xapi tweet "hello"
    $ echo $?
    8   # EXIT_RATE_LIMITED -- try again after the window resets
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments or operator input (e.g. an empty authorization code)."""

EXIT_AUTH_FAILURE = 3
"""A credential could not be obtained, or the API rejected it."""

EXIT_SERVER_ERROR = 5
"""The API answered with a non-success status other than 401 or 429."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 8
"""The API throttled the request (HTTP 429)."""

EXIT_INTERNAL_ERROR = 70
"""An internal invariant was violated (EX_SOFTWARE)."""
