"""Tests for main.py - the endpoint-poker command."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

import main
from dispatcher import DispatchReport, PokeResult
from endpoints import Endpoint
from logging_config import HANDLER_NAME


@pytest.fixture(autouse=True)
def _drop_cli_handler():
    # the CLI points the root logger at the runner's stdout, which is gone afterwards
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def runner(monkeypatch):
    for name in ("POKER_ENDPOINTS_FILE", "POKER_ENV_FILE", "POKER_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def fake_dispatch(monkeypatch):
    calls = []

    async def _dispatch(endpoints, *, timeout=None, client=None):
        endpoints = tuple(endpoints)
        calls.append({"endpoints": endpoints, "timeout": timeout})
        results = tuple(
            PokeResult(ep, ok=False, status_code=500, error=f"bad status 500 for {ep.label}") for ep in endpoints
        )
        return DispatchReport(results=results, elapsed=0.01)

    monkeypatch.setattr(main, "dispatch", _dispatch)
    return calls


def _write_endpoints(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_missing_default_file_exits_before_dispatch(runner, fake_dispatch, tmp_path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(main.cli, [])
    assert result.exit_code == 1
    assert "error getting endpoints" in result.output
    assert "endpoints.json" in result.output
    assert fake_dispatch == []


def test_bad_method_exits_before_dispatch(runner, fake_dispatch, tmp_path):
    path = _write_endpoints(tmp_path / "eps.json", [{"url": "http://a.local/", "method": "DELETE"}])
    result = runner.invoke(main.cli, [path])
    assert result.exit_code == 1
    assert "unsupported HTTP method" in result.output
    assert fake_dispatch == []


def test_missing_env_file_exits(runner, fake_dispatch, tmp_path):
    path = _write_endpoints(tmp_path / "eps.json", [{"url": "http://a.local/", "method": "GET"}])
    result = runner.invoke(main.cli, [path, "--env-file", str(tmp_path / "nope.env")])
    assert result.exit_code == 1
    assert "startup failed" in result.output
    assert fake_dispatch == []


def test_failed_pokes_still_exit_zero(runner, fake_dispatch, tmp_path):
    path = _write_endpoints(tmp_path / "eps.json", [
        {"url": "http://a.local/", "method": "GET"},
        {"url": "http://b.local/", "method": "POST"},
    ])
    result = runner.invoke(main.cli, [path, "--timeout", "2.5"])
    assert result.exit_code == 0, result.output
    (call,) = fake_dispatch
    assert [ep.target for ep in call["endpoints"]] == ["http://a.local/", "http://b.local/"]
    assert call["timeout"] == 2.5
    assert "url found url=http://a.local/" in result.output


def test_default_file_and_env_settings(runner, fake_dispatch, tmp_path, monkeypatch):
    monkeypatch.setenv("POKER_TIMEOUT", "7")
    with runner.isolated_filesystem(temp_dir=tmp_path):
        _write_endpoints(Path("endpoints.json"), [{"url": "http://a.local/", "method": "GET"}])
        result = runner.invoke(main.cli, [])
    assert result.exit_code == 0, result.output
    assert fake_dispatch[0]["timeout"] == 7.0
    assert isinstance(fake_dispatch[0]["endpoints"][0], Endpoint)


def test_env_file_sets_settings(runner, fake_dispatch, tmp_path, monkeypatch):
    path = _write_endpoints(tmp_path / "eps.json", [{"url": "http://a.local/", "method": "GET"}])
    envfile = tmp_path / "run.env"
    envfile.write_text("POKER_TIMEOUT=4\n", encoding="utf-8")
    monkeypatch.setenv("POKER_TIMEOUT", "placeholder")
    monkeypatch.delenv("POKER_TIMEOUT")
    result = runner.invoke(main.cli, [path, "--env-file", str(envfile)])
    assert result.exit_code == 0, result.output
    assert fake_dispatch[0]["timeout"] == 4.0


def test_log_level_filters_info(runner, fake_dispatch, tmp_path):
    path = _write_endpoints(tmp_path / "eps.json", [{"url": "http://a.local/", "method": "GET"}])
    result = runner.invoke(main.cli, [path, "--log-level", "warning"])
    assert result.exit_code == 0
    assert "url found" not in result.output


def test_endpoints_file_not_utf8_exits_before_dispatch(runner, fake_dispatch, tmp_path):
    path = tmp_path / "eps.json"
    path.write_bytes(b'[{"url": "\xff", "method": "GET"}]')
    result = runner.invoke(main.cli, [str(path)])
    assert result.exit_code == 1
    assert "error getting endpoints" in result.output
    assert fake_dispatch == []


def test_default_env_file_not_utf8_exits(runner, fake_dispatch, tmp_path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path(".env").write_bytes(b"API_KEY=\xff\xfe\n")
        _write_endpoints(Path("endpoints.json"), [])
        result = runner.invoke(main.cli, [])
    assert result.exit_code == 1
    assert "startup failed" in result.output
    assert fake_dispatch == []


def test_env_file_taken_from_environment(runner, fake_dispatch, tmp_path, monkeypatch):
    path = _write_endpoints(tmp_path / "eps.json", [])
    monkeypatch.setenv("POKER_ENV_FILE", str(tmp_path / "missing.env"))
    result = runner.invoke(main.cli, [path])
    assert result.exit_code == 1
    assert "missing.env does not exist" in result.output


def test_cli_log_handler_is_named(runner, fake_dispatch, tmp_path):
    path = _write_endpoints(tmp_path / "eps.json", [])
    runner.invoke(main.cli, [path])
    names = [h.get_name() for h in logging.getLogger().handlers]
    assert HANDLER_NAME in names
