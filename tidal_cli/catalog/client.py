from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional

import httpx
from loguru import logger

from tidal_cli.auth import Authenticator
from tidal_cli.catalog.base import API_BASE, ApiResult
from tidal_cli.catalog.retry import with_retry
from tidal_cli.config import AppConfig
from tidal_cli.models import User

JSON_API = "application/vnd.api+json"

TokenProvider = Callable[[], Awaitable[str]]


class ApiClient:
    """Thin JSON:API wrapper over an ``httpx.AsyncClient``.

    Calls never raise for HTTP errors or transport failures; the outcome is
    reported through ``ApiResult`` so the retry policy can inspect it.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token_provider: TokenProvider,
        country_code: str,
        api_base: str = API_BASE,
    ) -> None:
        self.http = http
        self.token_provider = token_provider
        self.country_code = country_code
        self.api_base = api_base.rstrip("/")

    async def _headers(self) -> Dict[str, str]:
        token = await self.token_provider()
        return {
            "Authorization": f"Bearer {token}",
            "Accept": JSON_API,
            "Content-Type": JSON_API,
        }

    def _params(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        query: Dict[str, Any] = {"countryCode": self.country_code}
        for key, value in (params or {}).items():
            if value is not None:
                query[key] = value
        return query

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> ApiResult:
        headers = await self._headers()
        try:
            response = await self.http.request(
                method,
                f"{self.api_base}{path}",
                params=self._params(params),
                headers=headers,
                json=json,
            )
        except httpx.HTTPError as exc:
            return ApiResult(error=exc)

        payload: Any = None
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text

        if response.is_success:
            return ApiResult(data=payload, response=response)
        return ApiResult(error=payload or response.reason_phrase, response=response)

    async def get(self, path: str, **kwargs: Any) -> ApiResult:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> ApiResult:
        return await self.request("POST", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResult:
        return await self.request("DELETE", path, **kwargs)


@dataclass
class TidalSession:
    """Everything a catalog call needs: the API client, the user and the config."""

    client: ApiClient
    user_id: str
    config: AppConfig


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"-> {request.method} {request.url}")


async def _log_response(response: httpx.Response) -> None:
    await response.aread()
    logger.debug(f"<- {response.status_code} {response.reason_phrase}")
    logger.debug(response.text[:2000])


@asynccontextmanager
async def open_session(
    config: AppConfig,
    authenticator: Optional[Authenticator] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[TidalSession]:
    """Build a logged-in session for the duration of one command."""
    authenticator = authenticator or Authenticator.from_config(config)
    user_id = await authenticator.user_id()
    # Fail before any request when the stored token cannot be refreshed.
    await authenticator.access_token()

    event_hooks = {"request": [_log_request], "response": [_log_response]} if config.debug else None
    async with httpx.AsyncClient(timeout=30.0, transport=transport, event_hooks=event_hooks) as http:
        client = ApiClient(http, authenticator.access_token, config.country_code)
        yield TidalSession(client=client, user_id=user_id, config=config)


async def get_current_user(session: TidalSession) -> User:
    result = await with_retry(lambda: session.client.get("/users/me"), label="getCurrentUser")
    resource = (result.data or {}).get("data") or {}
    attrs = resource.get("attributes") or {}
    return User(
        id=str(resource.get("id") or session.user_id),
        username=attrs.get("username"),
        email=attrs.get("email"),
        first_name=attrs.get("firstName"),
        last_name=attrs.get("lastName"),
        country=attrs.get("country"),
    )
