"""Credential sinks: where obtained bearer and refresh credentials are recorded.

Three :class:`~xapi.auth.base.CredentialSink` implementations ship with
xapi:

- :class:`JsonFileSink` -- ``~/.local/share/xapi/credentials.json`` (XDG) or
  the platform-equivalent directory. Written atomically with ``0o600``
  permissions so that secrets are never world-readable, even momentarily.
- :class:`DotenvSink` -- ``export X_BEARER_TOKEN=...`` and
  ``export X_REFRESH_TOKEN=...`` lines in a shell-sourceable file, replaced
  in place so unrelated lines survive.
- :class:`MemorySink` -- keeps the pair in process; the default when no
  durable storage is wanted.

See Also:
    :class:`~xapi.auth.manager.CredentialManager` -- hands every
    obtained pair to its sink.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from xapi.auth.base import CredentialSink, SavedCredentials
from xapi.config import atomic_write, get_data_dir
from xapi.exceptions import ConfigError, PersistenceError
from xapi.models import XapiConfig

BEARER_ENV_KEY = "X_BEARER_TOKEN"
REFRESH_ENV_KEY = "X_REFRESH_TOKEN"


class MemorySink(CredentialSink):
    """Keep the last saved pair in memory only."""

    def __init__(self, initial: Optional[SavedCredentials] = None) -> None:
        self._saved = initial

    def save(self, bearer_token: str, refresh_token: Optional[str]) -> None:
        previous_refresh = self._saved.refresh_token if self._saved else None
        self._saved = SavedCredentials(
            bearer_token=bearer_token,
            refresh_token=refresh_token or previous_refresh,
            saved_at=datetime.now(timezone.utc),
        )

    def load(self) -> Optional[SavedCredentials]:
        return self._saved

    def clear(self) -> None:
        self._saved = None


class JsonFileSink(CredentialSink):
    """Persist credentials as a single JSON document.

    All writes are atomic: content is written to a temporary file in the
    same directory, fsynced, then renamed into place. This prevents
    partial writes from corrupting stored credentials.

    Args:
        path: Target file. Defaults to ``<data_dir>/credentials.json``.

    Example::

        sink = JsonFileSink()
        sink.save("bearer-1", "refresh-1")
        assert sink.load().refresh_token == "refresh-1"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path if path is not None else get_data_dir() / "credentials.json"

    @property
    def path(self) -> Path:
        """The filesystem path of the credentials file."""
        return self._path

    def save(self, bearer_token: str, refresh_token: Optional[str]) -> None:
        """Persist the pair atomically with ``0o600`` permissions.

        When *refresh_token* is ``None`` the previously stored refresh
        credential is kept.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        if refresh_token is None:
            previous = self.load()
            refresh_token = previous.refresh_token if previous else None

        entry = SavedCredentials(
            bearer_token=bearer_token,
            refresh_token=refresh_token,
            saved_at=datetime.now(timezone.utc),
        )
        text = json.dumps(entry.model_dump(mode="json"), indent=2) + "\n"
        try:
            atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            raise PersistenceError(f"Cannot write credentials to {self._path}: {exc}") from exc

    def load(self) -> Optional[SavedCredentials]:
        """Load the stored pair.

        Returns:
            The deserialised :class:`~xapi.auth.base.SavedCredentials`, or
            ``None`` if the file does not exist or cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return SavedCredentials.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError):
            return None

    def clear(self) -> None:
        """Delete the credentials file. No-op when it does not exist."""
        if self._path.is_file():
            self._path.unlink()


class DotenvSink(CredentialSink):
    """Persist credentials as ``export KEY=value`` lines.

    Existing ``export X_BEARER_TOKEN=`` / ``export X_REFRESH_TOKEN=`` lines
    are replaced in place; missing keys are appended. Every other line is
    preserved verbatim, so the file can double as the project's ``.env``.

    Args:
        path: The dotenv file to maintain.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def save(self, bearer_token: str, refresh_token: Optional[str]) -> None:
        lines = self._read_lines()
        _set_export(lines, BEARER_ENV_KEY, bearer_token)
        if refresh_token is not None:
            _set_export(lines, REFRESH_ENV_KEY, refresh_token)
        try:
            atomic_write(self._path, "\n".join(lines) + "\n", mode=0o600)
        except OSError as exc:
            raise PersistenceError(f"Cannot write credentials to {self._path}: {exc}") from exc

    def load(self) -> Optional[SavedCredentials]:
        values: dict[str, str] = {}
        for line in self._read_lines():
            for key in (BEARER_ENV_KEY, REFRESH_ENV_KEY):
                prefix = f"export {key}="
                if line.startswith(prefix):
                    values[key] = line[len(prefix):].strip()
        if not values:
            return None
        return SavedCredentials(
            bearer_token=values.get(BEARER_ENV_KEY) or None,
            refresh_token=values.get(REFRESH_ENV_KEY) or None,
        )

    def clear(self) -> None:
        """Drop the managed export lines, keeping everything else."""
        if not self._path.is_file():
            return
        kept = [
            line
            for line in self._read_lines()
            if not line.startswith((f"export {BEARER_ENV_KEY}=", f"export {REFRESH_ENV_KEY}="))
        ]
        try:
            atomic_write(self._path, "\n".join(kept) + "\n" if kept else "", mode=0o600)
        except OSError as exc:
            raise PersistenceError(f"Cannot rewrite {self._path}: {exc}") from exc

    def _read_lines(self) -> list[str]:
        if not self._path.is_file():
            return []
        try:
            return self._path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc


def _set_export(lines: list[str], key: str, value: str) -> None:
    prefix = f"export {key}="
    for idx, line in enumerate(lines):
        if line.startswith(prefix):
            lines[idx] = f"{prefix}{value}"
            return
    lines.append(f"{prefix}{value}")


def create_sink(config: XapiConfig) -> CredentialSink:
    """Build the sink selected by ``config.credential_sink``.

    Raises:
        ConfigError: If the sink name is unknown.
    """
    if config.credential_sink == "json":
        return JsonFileSink()
    if config.credential_sink == "dotenv":
        return DotenvSink(Path(config.dotenv_path).expanduser())
    if config.credential_sink == "memory":
        return MemorySink()
    raise ConfigError(
        f"Unknown credential sink '{config.credential_sink}': "
        "must be 'json', 'dotenv' or 'memory'"
    )
