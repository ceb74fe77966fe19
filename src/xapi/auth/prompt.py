"""Authorization prompts: how the operator is asked for an authorization code.

- :class:`ConsolePrompt` prints the authorization URL to stderr, optionally
  opens it in a browser, and reads one line from stdin. The read runs in a
  worker thread so other tasks on the event loop keep running while the
  operator is away.
- :class:`HeadlessPrompt` fails immediately. Services without an operator
  use it so that a dead refresh credential surfaces as an error instead of
  a hang.
"""

from __future__ import annotations

import asyncio
import sys
import webbrowser
from threading import Thread

from xapi.auth.base import AuthorizationPrompt
from xapi.exceptions import AuthorizationError
from xapi.output import get_output


class ConsolePrompt(AuthorizationPrompt):
    """Ask the operator at the terminal.

    Args:
        open_browser: Also try to open the URL in the default browser.
        require_tty: Refuse to prompt when stdin is not a terminal.
    """

    def __init__(self, open_browser: bool = False, require_tty: bool = True) -> None:
        self._open_browser = open_browser
        self._require_tty = require_tty

    async def request_code(self, authorization_url: str) -> str:
        if self._require_tty and not sys.stdin.isatty():
            raise AuthorizationError(
                "Interactive authorization requires a terminal (stdin must be a TTY)"
            )

        output = get_output()
        output.prompt_notice("\n=== OAuth 2.0 authorization ===")
        output.prompt_notice(
            "Open this URL in your browser, approve access, then paste the "
            "returned code (or the full redirect URL):"
        )
        output.prompt_notice(f"{authorization_url}\n")

        if self._open_browser:
            # Open browser in a separate thread to avoid blocking
            Thread(
                target=webbrowser.open, args=(authorization_url,), daemon=True
            ).start()

        return await asyncio.to_thread(self._read_line)

    @staticmethod
    def _read_line() -> str:
        sys.stderr.write("Authorization code: ")
        sys.stderr.flush()
        return sys.stdin.readline()


class HeadlessPrompt(AuthorizationPrompt):
    """Refuse interactive authorization."""

    async def request_code(self, authorization_url: str) -> str:
        raise AuthorizationError(
            "No valid refresh credential and interactive authorization is disabled. "
            "Run 'xapi auth login' in a terminal first."
        )
