"""OAuth session management for the TIDAL developer API.

The authorization-code + PKCE exchange itself is delegated to
``requests_oauthlib``; this module only drives it, receives the browser
redirect on a local uvicorn server, and keeps the token in ``JSONStorage``.
"""

from __future__ import annotations

import asyncio
import time
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import uvicorn
from loguru import logger
from requests_oauthlib import OAuth2Session

from tidal_cli.config import AppConfig, Credentials
from tidal_cli.errors import NotFoundError, OAuthError, OperationTimeoutError
from tidal_cli.storage import JSONStorage
from tidal_cli.web import build_callback_app

AUTHORIZATION_BASE_URL = "https://login.tidal.com/authorize"
TOKEN_URL = "https://auth.tidal.com/v1/oauth2/token"
REDIRECT_HOST = "localhost"
REDIRECT_PORT = 8080
REDIRECT_URI = f"http://{REDIRECT_HOST}:{REDIRECT_PORT}/callback"
SCOPES = [
    "user.read",
    "collection.read",
    "playlists.read",
    "playlists.write",
    "recommendations.read",
]
STORAGE_KEY = "tidal-cli-auth"
LOGIN_TIMEOUT = 120.0
REFRESH_MARGIN = 30

NOT_LOGGED_IN = "Not logged in. Run: tidal-cli auth login"


@dataclass
class AuthStatus:
    logged_in: bool
    user_id: Optional[str] = None
    expires_in: Optional[int] = None


class Authenticator:
    def __init__(
        self,
        storage: JSONStorage,
        credentials: Credentials,
        redirect_uri: str = REDIRECT_URI,
    ) -> None:
        self.storage = storage
        self.credentials = credentials
        self.redirect_uri = redirect_uri

    @classmethod
    def from_config(cls, config: AppConfig) -> "Authenticator":
        credentials = Credentials.load(config.credentials_path)
        return cls(storage=JSONStorage(config.auth_storage_path), credentials=credentials)

    def _session(self, token: Optional[Dict[str, Any]] = None) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.credentials.client_id,
            redirect_uri=self.redirect_uri,
            scope=SCOPES,
            token=token,
            pkce="S256",
        )

    async def login(
        self,
        open_browser: Callable[[str], Any] = webbrowser.open,
        timeout: float = LOGIN_TIMEOUT,
    ) -> Dict[str, Any]:
        oauth = self._session()
        authorization_url, state = oauth.authorization_url(AUTHORIZATION_BASE_URL)

        loop = asyncio.get_running_loop()
        received: asyncio.Future = loop.create_future()

        def _on_callback(params: Dict[str, str]) -> None:
            if not received.done():
                received.set_result(params)

        server = uvicorn.Server(
            uvicorn.Config(
                build_callback_app(_on_callback),
                host=REDIRECT_HOST,
                port=REDIRECT_PORT,
                log_level="warning",
            )
        )
        serve_task = asyncio.create_task(server.serve())

        logger.info("Opening browser for TIDAL login...")
        logger.info(f"If it doesn't open, visit: {authorization_url}")
        open_browser(authorization_url)

        try:
            params = await asyncio.wait_for(received, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeoutError(f"Login timed out after {timeout:g}s") from exc
        finally:
            server.should_exit = True
            await serve_task

        if params.get("error"):
            raise OAuthError(params["error"])
        if params.get("state") != state:
            raise OAuthError("OAuth state mismatch; retry the login.")

        def _exchange() -> Dict[str, Any]:
            return oauth.fetch_token(
                TOKEN_URL,
                code=params["code"],
                client_secret=self.credentials.client_secret,
                include_client_id=True,
            )

        token = dict(await asyncio.to_thread(_exchange))
        await self.storage.set(STORAGE_KEY, token)
        return token

    async def token(self) -> Optional[Dict[str, Any]]:
        token = await self.storage.get(STORAGE_KEY)
        if not token or not token.get("access_token"):
            return None
        return token

    async def _fresh_token(self) -> Dict[str, Any]:
        token = await self.token()
        if token is None:
            raise NotFoundError(NOT_LOGGED_IN)
        if token.get("expires_at", 0) - REFRESH_MARGIN >= time.time():
            return token
        if not token.get("refresh_token"):
            raise NotFoundError(NOT_LOGGED_IN)

        logger.debug("Access token expired, refreshing")
        oauth = self._session(token)

        def _refresh() -> Dict[str, Any]:
            return oauth.refresh_token(
                TOKEN_URL,
                refresh_token=token["refresh_token"],
                client_id=self.credentials.client_id,
                client_secret=self.credentials.client_secret,
            )

        refreshed = dict(await asyncio.to_thread(_refresh))
        refreshed.setdefault("user_id", token.get("user_id"))
        refreshed.setdefault("refresh_token", token["refresh_token"])
        await self.storage.set(STORAGE_KEY, refreshed)
        return refreshed

    async def access_token(self) -> str:
        token = await self._fresh_token()
        return str(token["access_token"])

    async def user_id(self) -> str:
        token = await self.token()
        if token is None:
            raise NotFoundError(NOT_LOGGED_IN)
        user_id = token.get("user_id")
        if not user_id:
            raise NotFoundError("No user session. Run: tidal-cli auth login")
        return str(user_id)

    async def status(self) -> AuthStatus:
        token = await self.token()
        if token is None or not token.get("user_id"):
            return AuthStatus(logged_in=False)
        expires_at = token.get("expires_at")
        expires_in = int(expires_at - time.time()) if expires_at else None
        return AuthStatus(logged_in=True, user_id=str(token["user_id"]), expires_in=expires_in)

    async def logout(self) -> bool:
        if not self.storage.exists():
            return False
        await self.storage.clear()
        return True
