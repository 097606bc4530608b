import asyncio
import json
import time

import httpx
import pytest

from tidal_cli.auth import STORAGE_KEY, Authenticator
from tidal_cli.config import Credentials
from tidal_cli.errors import ConfigurationError, NotFoundError, OAuthError
from tidal_cli.storage import JSONStorage


class DummyOAuth:
    def __init__(self):
        self.fetched = None
        self.refreshed_with = None

    def authorization_url(self, url):
        return f"{url}?client_id=client", "state-1"

    def fetch_token(self, token_url, code, client_secret, include_client_id):
        self.fetched = (token_url, code, client_secret, include_client_id)
        return {
            "access_token": "initial-token",
            "refresh_token": "refresh-token",
            "expires_at": time.time() + 3600,
            "user_id": "user-9",
        }

    def refresh_token(self, token_url, refresh_token, client_id, client_secret):
        self.refreshed_with = refresh_token
        return {"access_token": "refreshed-token", "expires_at": time.time() + 3600}


class DummyServer:
    """Stands in for uvicorn: delivers one redirect to the callback app, then idles."""

    query = {"code": "auth-code", "state": "state-1"}

    def __init__(self, config):
        self.app = config.app
        self.should_exit = False

    async def serve(self):
        transport = httpx.ASGITransport(app=self.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://localhost:8080") as client:
            await client.get("/callback", params=self.query)
        while not self.should_exit:
            await asyncio.sleep(0)


@pytest.fixture()
def authenticator(tmp_path, monkeypatch):
    oauth = DummyOAuth()
    auth = Authenticator(JSONStorage(tmp_path / "auth.json"), Credentials("client", "secret"))
    monkeypatch.setattr(auth, "_session", lambda token=None: oauth)
    return auth, oauth


@pytest.mark.asyncio
async def test_login_exchanges_code_and_stores_token(authenticator, monkeypatch):
    auth, oauth = authenticator
    monkeypatch.setattr("tidal_cli.auth.uvicorn.Server", DummyServer)
    opened = []

    token = await auth.login(open_browser=opened.append, timeout=5)

    assert opened == ["https://login.tidal.com/authorize?client_id=client"]
    assert oauth.fetched[1:] == ("auth-code", "secret", True)
    assert token["access_token"] == "initial-token"
    assert await auth.user_id() == "user-9"


@pytest.mark.asyncio
async def test_login_rejects_state_mismatch(authenticator, monkeypatch):
    auth, _ = authenticator

    class WrongStateServer(DummyServer):
        query = {"code": "auth-code", "state": "forged"}

    monkeypatch.setattr("tidal_cli.auth.uvicorn.Server", WrongStateServer)
    with pytest.raises(OAuthError):
        await auth.login(open_browser=lambda url: None, timeout=5)
    assert await auth.token() is None


@pytest.mark.asyncio
async def test_access_token_refreshes_expired_token(authenticator):
    auth, oauth = authenticator
    await auth.storage.set(
        STORAGE_KEY,
        {"access_token": "old", "refresh_token": "refresh-token", "expires_at": time.time() - 10, "user_id": "user-9"},
    )

    assert await auth.access_token() == "refreshed-token"
    assert oauth.refreshed_with == "refresh-token"
    stored = await auth.storage.get(STORAGE_KEY)
    assert stored["user_id"] == "user-9"
    assert stored["refresh_token"] == "refresh-token"


@pytest.mark.asyncio
async def test_access_token_reuses_valid_token(authenticator):
    auth, oauth = authenticator
    await auth.storage.set(STORAGE_KEY, {"access_token": "valid", "expires_at": time.time() + 600, "user_id": "u"})
    assert await auth.access_token() == "valid"
    assert oauth.refreshed_with is None


@pytest.mark.asyncio
async def test_not_logged_in(authenticator):
    auth, _ = authenticator
    with pytest.raises(NotFoundError):
        await auth.access_token()
    with pytest.raises(NotFoundError):
        await auth.user_id()
    status = await auth.status()
    assert status.logged_in is False


@pytest.mark.asyncio
async def test_status_and_logout(authenticator):
    auth, _ = authenticator
    assert await auth.logout() is False

    await auth.storage.set(STORAGE_KEY, {"access_token": "t", "expires_at": time.time() + 600, "user_id": "user-9"})
    status = await auth.status()
    assert status.logged_in is True
    assert status.user_id == "user-9"
    assert 0 < status.expires_in <= 600

    assert await auth.logout() is True
    assert json.loads(auth.storage.path.read_text()) == {}
    assert (await auth.status()).logged_in is False


def test_from_config_requires_credentials(config):
    with pytest.raises(ConfigurationError):
        Authenticator.from_config(config)

    config.credentials_path.write_text(json.dumps({"clientId": "id", "clientSecret": "secret"}))
    auth = Authenticator.from_config(config)
    assert auth.credentials.client_id == "id"
    assert auth.storage.path == config.auth_storage_path
