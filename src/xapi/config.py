"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for xapi:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.xapi/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Config file** -- A single :class:`~xapi.models.XapiConfig` JSON file
  holding endpoint URLs, scopes, credential sources and the sink choice.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  ``XAPI_*`` environment variables, the config file and defaults.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files or an interactive prompt.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from xapi.exceptions import ConfigError
from xapi.models import XapiConfig

_APP_NAME = "xapi"
_CONFIG_FILENAME = "config.json"

# Environment variables that override single config fields.
_ENV_OVERRIDES: dict[str, str] = {
    "XAPI_CLIENT_ID_SOURCE": "client_id_source",
    "XAPI_CLIENT_SECRET_SOURCE": "client_secret_source",
    "XAPI_REFRESH_TOKEN_SOURCE": "refresh_token_source",
    "XAPI_AUTHORIZATION_URL": "authorization_url",
    "XAPI_TOKEN_URL": "token_url",
    "XAPI_REDIRECT_URI": "redirect_uri",
    "XAPI_API_BASE_URL": "api_base_url",
    "XAPI_TIMEOUT": "timeout",
    "XAPI_CREDENTIAL_SINK": "credential_sink",
    "XAPI_DOTENV_PATH": "dotenv_path",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory paths (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/xapi/`` (default ``~/.config/xapi/``).
    On macOS/Windows: ``~/.xapi/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (saved credentials, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/xapi/`` (default ``~/.local/share/xapi/``).
    On macOS/Windows: ``~/.xapi/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    When *mode* is given it is applied to the temp file before any content
    is written, so secrets are never readable with looser permissions.
    On any failure the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def get_config_path() -> Path:
    """Return the path of the config file (it may not exist yet)."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> XapiConfig:
    """Load the configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~xapi.models.XapiConfig`. If the file
        does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = get_config_path()
    if not path.is_file():
        return XapiConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return XapiConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: XapiConfig) -> None:
    """Persist the configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(get_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(cli_overrides: Optional[dict[str, Any]] = None) -> XapiConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_overrides``; ``None`` values are ignored)
        2. Environment variables (``XAPI_TOKEN_URL``, ``XAPI_CREDENTIAL_SINK``, ...)
        3. Config file (``~/.config/xapi/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~xapi.models.XapiConfig`.

    Raises:
        ConfigError: If the merged values fail validation.
    """
    # 4 + 3. File config with defaults filled in
    merged = load_config().model_dump()

    # 2. Environment variables
    for env_var, field in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            merged[field] = value
    env_scopes = os.environ.get("XAPI_SCOPES")
    if env_scopes:
        merged["scopes"] = env_scopes.split()

    # 1. CLI flags
    for field, value in (cli_overrides or {}).items():
        if value is not None:
            merged[field] = value

    try:
        return XapiConfig.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    raise ConfigError(f"Unknown credential source format: {source}")
