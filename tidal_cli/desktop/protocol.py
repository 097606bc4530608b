"""Chrome DevTools Protocol client for the TIDAL desktop app.

TIDAL is an Electron app; started with ``--remote-debugging-port`` it lists
its renderer targets on ``/json`` and accepts ``Runtime.evaluate`` over a
per-target WebSocket.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx
from loguru import logger
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from tidal_cli.config import AppConfig
from tidal_cli.errors import ConnectionFailed, EvaluationError, NotFoundError, OperationTimeoutError

MAIN_TARGET_HOST = "desktop.tidal.com"


@dataclass(frozen=True)
class Target:
    id: str
    title: str
    type: str
    url: str
    websocket_url: str

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Target":
        return cls(
            id=str(payload.get("id", "")),
            title=str(payload.get("title", "")),
            type=str(payload.get("type", "")),
            url=str(payload.get("url", "")),
            websocket_url=str(payload.get("webSocketDebuggerUrl", "")),
        )

    @property
    def is_main_page(self) -> bool:
        return self.type == "page" and MAIN_TARGET_HOST in self.url


def select_main_target(targets: List[Target]) -> Target:
    for target in targets:
        if target.is_main_page:
            return target
    seen = ", ".join(f"{target.type}:{target.url}" for target in targets)
    raise NotFoundError(f"Could not find TIDAL main page. Targets: {seen}")


class DevToolsClient:
    def __init__(self, config: AppConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self._transport = transport
        self._ids = itertools.count(1)

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.config.cdp_port}"

    async def get_targets(self) -> List[Target]:
        port = self.config.cdp_port
        try:
            async with httpx.AsyncClient(timeout=self.config.connect_timeout, transport=self._transport) as http:
                response = await http.get(f"{self.base_url}/json")
                payload = response.json()
        except httpx.TimeoutException as exc:
            raise OperationTimeoutError("Connection to TIDAL timed out") from exc
        except httpx.HTTPError as exc:
            raise ConnectionFailed(
                f"Cannot connect to TIDAL on port {port}. "
                f"Is TIDAL running with --remote-debugging-port={port}?\n{exc}"
            ) from exc
        except ValueError as exc:
            raise ConnectionFailed(f"Failed to parse CDP targets: {exc}") from exc

        if not isinstance(payload, list):
            raise ConnectionFailed(f"Failed to parse CDP targets: expected a list, got {type(payload).__name__}")
        return [Target.from_dict(item) for item in payload if isinstance(item, dict)]

    async def find_main_target(self) -> Target:
        return select_main_target(await self.get_targets())

    async def _exchange(self, target: Target, message: Dict[str, Any]) -> Dict[str, Any]:
        async with connect(target.websocket_url, max_size=None) as websocket:
            await websocket.send(json.dumps(message))
            async for raw in websocket:
                reply = json.loads(raw)
                if isinstance(reply, dict) and reply.get("id") == message["id"]:
                    return reply
        raise ConnectionFailed("DevTools connection closed before a response arrived")

    async def evaluate(self, expression: str, *, await_promise: bool = False) -> Any:
        """Evaluate ``expression`` in the main page and return its value.

        Targets are rediscovered on every call since the WebSocket address
        changes whenever the app restarts. The socket is closed before this
        returns or raises.
        """
        target = await self.find_main_target()
        message = {
            "id": next(self._ids),
            "method": "Runtime.evaluate",
            "params": {
                "expression": expression,
                "returnByValue": True,
                "awaitPromise": await_promise,
            },
        }
        try:
            reply = await asyncio.wait_for(self._exchange(target, message), timeout=self.config.connect_timeout)
        except asyncio.TimeoutError as exc:
            raise OperationTimeoutError("CDP evaluation timed out") from exc
        except json.JSONDecodeError as exc:
            raise ConnectionFailed(f"Malformed DevTools message: {exc}") from exc
        except (OSError, WebSocketException) as exc:
            raise ConnectionFailed(f"WebSocket error: {exc}") from exc

        error = reply.get("error")
        if error:
            detail = error.get("message") if isinstance(error, dict) else None
            raise EvaluationError(str(detail or error))
        result = reply.get("result") or {}
        details = result.get("exceptionDetails")
        if details:
            description = (details.get("exception") or {}).get("description")
            raise EvaluationError(description or details.get("text") or "JS evaluation error")
        return (result.get("result") or {}).get("value")

    async def navigate(self, url: str) -> None:
        logger.debug(f"Navigating to {url}")
        await self.evaluate(f"window.location.href = {json.dumps(url)}")
        await asyncio.sleep(self.config.navigation_wait)

    async def click_button(self, aria_label: str, *, container: Optional[str] = None, index: int = 0) -> bool:
        root = f"document.querySelector({json.dumps(container)})" if container else "document"
        selector = json.dumps(f"button[aria-label={json.dumps(aria_label)}]")
        result = await self.evaluate(
            f"""(() => {{
  const root = {root} || document;
  const buttons = [...root.querySelectorAll({selector})];
  if (buttons[{int(index)}]) {{ buttons[{int(index)}].click(); return true; }}
  return false;
}})()"""
        )
        return result is True
