"""Shared test fixtures for xapi.

Provides isolated config environments, output state management, a CLI
runner and small builders for mocked token endpoints. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from xapi.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use. Handlers
    installed by ``configure_logging`` are dropped for the same reason.
    """
    yield
    reset_output()
    logger = logging.getLogger("xapi")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path,
    clears every XAPI_* and X_* variable that could leak credentials into
    a test, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("xapi.config._is_xdg_platform", lambda: True)

    for var in [
        "XAPI_CLIENT_ID_SOURCE",
        "XAPI_CLIENT_SECRET_SOURCE",
        "XAPI_REFRESH_TOKEN_SOURCE",
        "XAPI_AUTHORIZATION_URL",
        "XAPI_TOKEN_URL",
        "XAPI_REDIRECT_URI",
        "XAPI_API_BASE_URL",
        "XAPI_TIMEOUT",
        "XAPI_CREDENTIAL_SINK",
        "XAPI_DOTENV_PATH",
        "XAPI_SCOPES",
        "X_CLIENT_ID",
        "X_CLIENT_SECRET",
        "X_BEARER_TOKEN",
        "X_REFRESH_TOKEN",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for tests that don't care about output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def token_server() -> Callable[..., tuple[httpx.AsyncClient, list[httpx.Request]]]:
    """Factory for an ``httpx.AsyncClient`` backed by a scripted token endpoint.

    Call it with a list of ``(status, json_body)`` tuples; each token
    request consumes the next entry. Returns the client and the list the
    captured requests are appended to.
    """

    def _factory(
        responses: list[tuple[int, Any]],
    ) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        captured: list[httpx.Request] = []
        queue = list(responses)

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            if not queue:
                raise AssertionError(f"Unexpected token request #{len(captured)}")
            status, body = queue.pop(0)
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client, captured

    return _factory


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
