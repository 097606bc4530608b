from pathlib import Path
from typing import Callable, List

import httpx
import pytest

from tidal_cli.catalog.client import ApiClient, TidalSession
from tidal_cli.config import AppConfig


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "data"
    directory.mkdir(parents=True, exist_ok=True)
    return directory


@pytest.fixture()
def config(data_dir: Path) -> AppConfig:
    return AppConfig(
        cdp_port=9333,
        app_path="/Applications/TIDAL.app",
        connect_timeout=1.0,
        navigation_wait=0,
        country_code="US",
        config_dir=data_dir,
        debug=False,
    )


@pytest.fixture(autouse=True)
def delays(monkeypatch) -> List[float]:
    """Record backoff and pacing pauses instead of sleeping through them."""
    recorded: List[float] = []

    async def fake_delay(seconds: float) -> None:
        recorded.append(seconds)

    for module in ("retry", "pagination", "playlists"):
        monkeypatch.setattr(f"tidal_cli.catalog.{module}.delay", fake_delay)
    return recorded


@pytest.fixture()
def make_session(config: AppConfig) -> Callable[[Callable[[httpx.Request], httpx.Response]], TidalSession]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> TidalSession:
        async def token() -> str:
            return "access-token"

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = ApiClient(http, token, config.country_code)
        return TidalSession(client=client, user_id="user-1", config=config)

    return factory


def track_resource(track_id: str, title: str = "Song", **attributes) -> dict:
    payload = {"title": title, "duration": "PT3M5S"}
    payload.update(attributes)
    return {
        "id": track_id,
        "type": "tracks",
        "attributes": payload,
        "relationships": {
            "artists": {"data": [{"id": "a1", "type": "artists"}]},
            "albums": {"data": [{"id": "al1", "type": "albums"}]},
            "genres": {"data": [{"id": "g1", "type": "genres"}]},
        },
    }


def shared_included() -> list:
    return [
        {"id": "a1", "type": "artists", "attributes": {"name": "Miles Davis"}},
        {"id": "al1", "type": "albums", "attributes": {"title": "Kind of Blue", "releaseDate": "1959-08-17"}},
        {"id": "g1", "type": "genres", "attributes": {"genreName": "Jazz"}},
    ]
