"""Tests for configuration loading."""

import json

import pytest
from pydantic import ValidationError

import cli
from core.config import (
    Config,
    DownstreamSettings,
    apply_env_overrides,
    config_path,
    load_config,
    validate_config,
)
from core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("DOWNSTREAM_API_KEY", raising=False)


def test_missing_file_is_created_with_defaults(tmp_path):
    path = tmp_path / "meter-relay" / "config.json"
    config = load_config(path)
    assert path.exists()
    assert config.server.port == 3001
    assert json.loads(path.read_text())["downstream"]["allowed_hosts"] == ["*.supabase.co"]


def test_existing_file_is_loaded(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "server": {"port": 9000},
                "cors": {"allowed_origins": ["https://allowed.example"]},
                "downstream": {"allowed_hosts": ["backend.example"], "timeout": 5},
            }
        )
    )
    config = load_config(path)
    assert config.server.port == 9000
    assert config.cors.allowed_origins == ("https://allowed.example",)
    assert config.downstream.timeout == 5.0
    assert config.relay.max_body_size == 1024 * 1024


def test_corrupted_file_is_backed_up(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{ not json")
    config = load_config(path)
    assert config == Config()
    assert (tmp_path / "config.json.bak").read_text() == "{ not json"
    assert json.loads(path.read_text())["server"]["port"] == 3001


def test_config_is_immutable():
    config = Config()
    with pytest.raises(ValidationError):
        config.server.port = 1


def test_env_overrides():
    config = apply_env_overrides(Config(), {"PORT": "10000", "DOWNSTREAM_API_KEY": "k"})
    assert config.server.port == 10000
    assert config.server.host == "0.0.0.0"
    assert config.downstream.api_key == "k"
    assert apply_env_overrides(Config(), {}) == Config()


def test_config_path_override(monkeypatch, tmp_path):
    monkeypatch.setenv("METER_RELAY_CONFIG", str(tmp_path / "relay.json"))
    assert config_path() == tmp_path / "relay.json"


def test_validate_config():
    validate_config(Config())
    with pytest.raises(ConfigurationError, match="allowed_hosts"):
        validate_config(Config(downstream=DownstreamSettings(allowed_hosts=())))
    with pytest.raises(ConfigurationError, match="timeout"):
        validate_config(Config(downstream=DownstreamSettings(timeout=0)))


def test_non_numeric_port_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="PORT"):
        apply_env_overrides(Config(), {"PORT": "abc"})


def test_cli_reports_bad_port_and_exits(monkeypatch, tmp_path):
    monkeypatch.setenv("METER_RELAY_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("PORT", "abc")
    monkeypatch.setattr("sys.argv", ["meter-relay", "--config"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 1
