from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from tidal_cli.errors import ConfigurationError

DEFAULT_CDP_PORT = 9222
DEFAULT_APP_PATH = "/Applications/TIDAL.app"
MIN_PORT = 1
MAX_PORT = 65535


def _cdp_port_from_env() -> int:
    raw = os.getenv("TIDAL_CDP_PORT")
    try:
        port = int(raw) if raw else DEFAULT_CDP_PORT
    except ValueError:
        return DEFAULT_CDP_PORT
    if MIN_PORT <= port <= MAX_PORT:
        return port
    return DEFAULT_CDP_PORT


def _default_config_dir() -> Path:
    return Path(os.getenv("TIDAL_CLI_CONFIG", "~/.config/tidal-cli")).expanduser()


@dataclass
class AppConfig:
    """Static configuration for one CLI invocation."""

    cdp_port: int = field(default_factory=_cdp_port_from_env)
    app_path: str = field(default_factory=lambda: os.getenv("TIDAL_APP_PATH", DEFAULT_APP_PATH))
    connect_timeout: float = 5.0
    navigation_wait: float = 2.0
    country_code: str = field(default_factory=lambda: os.getenv("TIDAL_COUNTRY_CODE", "DE"))
    config_dir: Path = field(default_factory=_default_config_dir)
    debug: bool = field(default_factory=lambda: os.getenv("TIDAL_DEBUG") == "1")

    @property
    def credentials_path(self) -> Path:
        return self.config_dir / "credentials.json"

    @property
    def auth_storage_path(self) -> Path:
        return self.config_dir / "auth-storage.json"

    def ensure_dirs(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)


@dataclass
class Credentials:
    """OAuth client credentials provided by the user."""

    client_id: str
    client_secret: str

    @classmethod
    def load(cls, path: Path) -> "Credentials":
        if not path.exists():
            raise ConfigurationError(f"Missing credentials file: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Malformed credentials file {path}: {exc}") from exc
        client_id = payload.get("clientId")
        client_secret = payload.get("clientSecret")
        if not client_id or not client_secret:
            raise ConfigurationError(f"Credentials file {path} must define clientId and clientSecret")
        return cls(client_id=str(client_id), client_secret=str(client_secret))
