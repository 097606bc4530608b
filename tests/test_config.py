import json
from pathlib import Path

import pytest

from tidal_cli.config import AppConfig, Credentials
from tidal_cli.errors import ConfigurationError


def test_app_config_ensure_dirs(monkeypatch, tmp_path):
    monkeypatch.setenv("TIDAL_CLI_CONFIG", str(tmp_path / "cfg"))
    config = AppConfig()
    config.ensure_dirs()
    assert config.config_dir.exists()
    assert config.credentials_path == tmp_path / "cfg" / "credentials.json"
    assert config.auth_storage_path == tmp_path / "cfg" / "auth-storage.json"


def test_app_config_from_env(monkeypatch):
    monkeypatch.setenv("TIDAL_CDP_PORT", "9333")
    monkeypatch.setenv("TIDAL_APP_PATH", "/Apps/TIDAL.app")
    monkeypatch.setenv("TIDAL_COUNTRY_CODE", "US")
    monkeypatch.setenv("TIDAL_DEBUG", "1")

    config = AppConfig()
    assert config.cdp_port == 9333
    assert config.app_path == "/Apps/TIDAL.app"
    assert config.country_code == "US"
    assert config.debug is True


@pytest.mark.parametrize("raw", ["abc", "0", "70000"])
def test_invalid_cdp_port_falls_back_to_default(monkeypatch, raw):
    monkeypatch.setenv("TIDAL_CDP_PORT", raw)
    assert AppConfig().cdp_port == 9222


def test_config_dir_expands_home(monkeypatch):
    monkeypatch.setenv("TIDAL_CLI_CONFIG", "~/tidal-test")
    assert AppConfig().config_dir == Path.home() / "tidal-test"


def test_credentials_load(tmp_path):
    path = tmp_path / "credentials.json"
    with pytest.raises(ConfigurationError):
        Credentials.load(path)

    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        Credentials.load(path)

    path.write_text(json.dumps({"clientId": "id"}))
    with pytest.raises(ConfigurationError):
        Credentials.load(path)

    path.write_text(json.dumps({"clientId": "id", "clientSecret": "secret"}))
    assert Credentials.load(path) == Credentials(client_id="id", client_secret="secret")
