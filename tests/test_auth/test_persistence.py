"""Tests for credential sinks -- JSON file, dotenv file, memory."""

from __future__ import annotations

import json
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from xapi.auth.persistence import DotenvSink, JsonFileSink, MemorySink, create_sink
from xapi.exceptions import ConfigError, PersistenceError
from xapi.models import XapiConfig


class TestMemorySink:
    def test_load_empty(self) -> None:
        assert MemorySink().load() is None

    def test_save_and_load(self) -> None:
        sink = MemorySink()
        sink.save("b1", "r1")
        saved = sink.load()
        assert saved is not None
        assert (saved.bearer_token, saved.refresh_token) == ("b1", "r1")
        assert saved.saved_at is not None

    def test_keeps_refresh_when_not_rotated(self) -> None:
        sink = MemorySink()
        sink.save("b1", "r1")
        sink.save("b2", None)
        assert sink.load().refresh_token == "r1"
        assert sink.load().bearer_token == "b2"

    def test_clear(self) -> None:
        sink = MemorySink()
        sink.save("b1", "r1")
        sink.clear()
        assert sink.load() is None


class TestJsonFileSink:
    def test_default_path_in_data_dir(self, isolated_config: Path) -> None:
        sink = JsonFileSink()
        assert sink.path == isolated_config / "data" / "xapi" / "credentials.json"

    def test_save_writes_json_with_private_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        sink = JsonFileSink(path)
        sink.save("b1", "r1")

        data = json.loads(path.read_text())
        assert data["bearer_token"] == "b1"
        assert data["refresh_token"] == "r1"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_keeps_refresh_when_not_rotated(self, tmp_path: Path) -> None:
        sink = JsonFileSink(tmp_path / "creds.json")
        sink.save("b1", "r1")
        sink.save("b2", None)
        saved = sink.load()
        assert saved.bearer_token == "b2"
        assert saved.refresh_token == "r1"

    def test_rotation_replaces_refresh(self, tmp_path: Path) -> None:
        sink = JsonFileSink(tmp_path / "creds.json")
        sink.save("b1", "r1")
        sink.save("b2", "r2")
        assert sink.load().refresh_token == "r2"

    def test_load_missing_returns_none(self, tmp_path: Path) -> None:
        assert JsonFileSink(tmp_path / "nope.json").load() is None

    def test_load_corrupt_returns_none(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        path.write_text("{not json")
        assert JsonFileSink(path).load() is None

    def test_clear_removes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        sink = JsonFileSink(path)
        sink.save("b1", "r1")
        sink.clear()
        assert not path.exists()
        sink.clear()

    def test_write_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        sink = JsonFileSink(tmp_path / "creds.json")
        with patch("xapi.auth.persistence.atomic_write", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                sink.save("b1", "r1")


class TestDotenvSink:
    def test_appends_exports_to_new_file(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        DotenvSink(path).save("b1", "r1")
        assert path.read_text() == "export X_BEARER_TOKEN=b1\nexport X_REFRESH_TOKEN=r1\n"

    def test_replaces_existing_lines_and_keeps_others(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text(
            "export X_CLIENT_ID=cid\n"
            "export X_BEARER_TOKEN=old\n"
            "# comment\n"
            "export X_REFRESH_TOKEN=r0\n"
        )
        DotenvSink(path).save("b1", "r1")
        assert path.read_text().splitlines() == [
            "export X_CLIENT_ID=cid",
            "export X_BEARER_TOKEN=b1",
            "# comment",
            "export X_REFRESH_TOKEN=r1",
        ]

    def test_none_refresh_leaves_existing_line(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        sink = DotenvSink(path)
        sink.save("b1", "r1")
        sink.save("b2", None)
        saved = sink.load()
        assert saved.bearer_token == "b2"
        assert saved.refresh_token == "r1"

    def test_load_without_exports(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text("export OTHER=1\n")
        assert DotenvSink(path).load() is None
        assert DotenvSink(tmp_path / "missing").load() is None

    def test_clear_drops_managed_lines_only(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text("export X_CLIENT_ID=cid\nexport X_BEARER_TOKEN=b1\n")
        DotenvSink(path).clear()
        assert path.read_text() == "export X_CLIENT_ID=cid\n"


class TestCreateSink:
    def test_json_default(self, isolated_config: Path) -> None:
        assert isinstance(create_sink(XapiConfig()), JsonFileSink)

    def test_dotenv(self, isolated_config: Path) -> None:
        sink = create_sink(XapiConfig(credential_sink="dotenv", dotenv_path="secrets.env"))
        assert isinstance(sink, DotenvSink)
        assert sink.path == Path("secrets.env")

    def test_memory(self) -> None:
        assert isinstance(create_sink(XapiConfig(credential_sink="memory")), MemorySink)

    def test_unknown(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential sink"):
            create_sink(XapiConfig(credential_sink="vault"))
