"""Tests for the docprog CLI.

The Redis backend is replaced by an in-memory backend by patching
``docprog.cli.utils.open_backend``, so every command runs end to end
without a server.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from docprog import __version__
from docprog.backends.memory import InMemoryBackend
from docprog.cli.app import app
from docprog.core.errors import BackendFailure
from docprog.core.result import Err

runner = CliRunner()


@pytest.fixture
def memory():
    backend = InMemoryBackend()
    with patch("docprog.cli.utils.open_backend", return_value=backend):
        yield backend


def _json(output: str) -> dict:
    """Parse the pretty-printed JSON payload, skipping any log lines."""
    return json.loads(output[output.index("{\n") :])


class TestRoot:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "doc" in result.output
        assert "counter" in result.output

    def test_bad_configuration(self, monkeypatch):
        monkeypatch.setenv("DOCPROG_PORT", "not-a-port")
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 1
        assert "Configuration Error" in result.output


class TestDocCommands:
    def test_create_then_get(self, memory):
        result = runner.invoke(app, ["doc", "create", "user::1", '{"name": "ada"}', "--json"])
        assert result.exit_code == 0
        assert _json(result.stdout)["version"] == 1

        result = runner.invoke(app, ["doc", "get", "user::1", "--json"])
        assert result.exit_code == 0
        payload = _json(result.stdout)
        assert payload["ok"] is True
        assert payload["content"] == '{"name": "ada"}'

    def test_get_missing_exits_1(self, memory):
        result = runner.invoke(app, ["doc", "get", "nope"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_get_missing_json(self, memory):
        result = runner.invoke(app, ["doc", "get", "nope", "--json"])
        assert result.exit_code == 1
        payload = _json(result.stdout)
        assert payload["ok"] is False
        assert payload["error"]["category"] == "NOT_FOUND"

    def test_create_existing(self, memory):
        runner.invoke(app, ["doc", "create", "k", "{}"])
        result = runner.invoke(app, ["doc", "create", "k", "{}"])
        assert result.exit_code == 1
        assert "CONFLICT" in result.output

    def test_update_with_version(self, memory):
        runner.invoke(app, ["doc", "create", "k", "a"])

        stale = runner.invoke(app, ["doc", "update", "k", "b", "--version", "99"])
        assert stale.exit_code == 1

        fresh = runner.invoke(app, ["doc", "update", "k", "b", "--version", "1", "--json"])
        assert fresh.exit_code == 0
        assert _json(fresh.stdout)["version"] == 2

    def test_update_unconditional(self, memory):
        runner.invoke(app, ["doc", "create", "k", "a"])
        result = runner.invoke(app, ["doc", "update", "k", "b"])
        assert result.exit_code == 0
        assert memory.snapshot()

    def test_remove(self, memory):
        runner.invoke(app, ["doc", "create", "k", "a"])
        result = runner.invoke(app, ["doc", "remove", "k", "--json"])
        assert result.exit_code == 0
        assert _json(result.stdout)["removed"] == "k"
        assert memory.size() == 0


class TestImport:
    def test_import_continues_past_bad_lines(self, memory, tmp_path):
        path = tmp_path / "users.jsonl"
        path.write_text('{"id": 1}\nnot json\n{"id": 3}\n')

        result = runner.invoke(app, ["doc", "import", str(path), "--json"])

        assert result.exit_code == 1
        payload = _json(result.stdout)
        assert payload["succeeded"] == [0, 2]
        assert [f["index"] for f in payload["failed"]] == [1]
        assert memory.size() == 2

    def test_import_stop_on_error(self, memory, tmp_path):
        path = tmp_path / "users.jsonl"
        path.write_text('{"id": 1}\n{"name": "no id"}\n{"id": 3}\n')

        result = runner.invoke(app, ["doc", "import", str(path), "--stop-on-error"])

        assert result.exit_code == 1
        assert memory.size() == 1

    def test_import_all_ok(self, memory, tmp_path):
        path = tmp_path / "users.jsonl"
        path.write_text('{"id": "a"}\n\n{"id": "b"}\n')
        result = runner.invoke(app, ["doc", "import", str(path), "-k", "id"])
        assert result.exit_code == 0
        assert memory.size() == 2


class TestCounterCommands:
    def test_incr_and_get(self, memory):
        assert _json(runner.invoke(app, ["counter", "incr", "hits", "--by", "5", "--json"]).stdout)["value"] == 5
        assert _json(runner.invoke(app, ["counter", "incr", "hits", "-d", "3", "--json"]).stdout)["value"] == 8

        result = runner.invoke(app, ["counter", "get", "hits"])
        assert result.exit_code == 0
        assert "8" in result.stdout

    def test_get_missing(self, memory):
        assert runner.invoke(app, ["counter", "get", "nope"]).exit_code == 1


class TestConnection:
    @patch("docprog.cli.utils.RedisBackend")
    def test_unreachable_store_exits_1(self, mock_backend):
        mock_backend.return_value.connect.return_value = Err(BackendFailure("refused"))
        result = runner.invoke(app, ["doc", "get", "k"])
        assert result.exit_code == 1
        assert "BACKEND" in result.output

    def test_ping(self):
        backend = MagicMock()
        backend.settings.url = "redis://localhost:6379/0"
        with patch("docprog.cli.app.open_backend", return_value=backend):
            result = runner.invoke(app, ["ping"])
        assert result.exit_code == 0
        assert "connected" in result.output
        backend.disconnect.assert_called_once()


class TestConfigCommands:
    def test_show_json(self):
        result = runner.invoke(app, ["config", "show", "--format", "json"])
        assert result.exit_code == 0
        assert _json(result.stdout)["bucket_name"] == "default"

    def test_show_env(self, monkeypatch):
        monkeypatch.setenv("DOCPROG_BUCKET_NAME", "travel")
        result = runner.invoke(app, ["config", "show", "--format", "env"])
        assert "DOCPROG_BUCKET_NAME=travel" in result.output

    def test_show_table(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "io_pool_size" in result.output

    def test_files(self):
        result = runner.invoke(app, ["config", "files"])
        assert result.exit_code == 0
        assert "docprog.env" in result.output
