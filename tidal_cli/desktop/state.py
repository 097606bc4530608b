"""Lifecycle observation of the TIDAL desktop app.

The tracker only looks; launching and clicking belong to the launcher and
the player actions.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional, Protocol

import httpx
from loguru import logger

from tidal_cli.desktop.nowplaying import parse_now_playing, playback_state, read_now_playing_raw
from tidal_cli.desktop.protocol import MAIN_TARGET_HOST
from tidal_cli.desktop.shell import run_command
from tidal_cli.errors import NotFoundError, OperationTimeoutError

PROCESS_NAME = "TIDAL"
PROBE_TIMEOUT = 2.0


class ReadinessState(str, Enum):
    DEAD = "Dead"
    LAUNCHING = "Launching"
    CONNECTING = "Connecting"
    READY = "Ready"
    PAUSED = "Paused"
    PLAYING = "Playing"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def at_least(self, other: "ReadinessState") -> bool:
        return self.rank >= other.rank


# Paused has a track loaded, so it is as ready as Ready.
_RANKS = {
    ReadinessState.DEAD: 0,
    ReadinessState.LAUNCHING: 1,
    ReadinessState.CONNECTING: 2,
    ReadinessState.READY: 3,
    ReadinessState.PAUSED: 3,
    ReadinessState.PLAYING: 4,
}


class Probes(Protocol):
    async def is_process_running(self) -> bool: ...

    async def is_debug_port_available(self, port: int) -> bool: ...

    async def is_main_page_loaded(self, port: int) -> bool: ...

    async def playback_state(self) -> str: ...


class SystemProbes:
    """Probes against the local machine, cheapest first."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def is_process_running(self) -> bool:
        result = await run_command(["pgrep", "-x", PROCESS_NAME])
        return result.returncode == 0 and bool(result.stdout.strip())

    async def _get(self, port: int, path: str) -> Optional[httpx.Response]:
        try:
            async with httpx.AsyncClient(timeout=PROBE_TIMEOUT, transport=self._transport) as http:
                return await http.get(f"http://localhost:{port}{path}")
        except httpx.HTTPError:
            return None

    async def is_debug_port_available(self, port: int) -> bool:
        response = await self._get(port, "/json/version")
        if response is None:
            return False
        return "TIDAL" in response.text or "Electron" in response.text

    async def is_main_page_loaded(self, port: int) -> bool:
        response = await self._get(port, "/json")
        if response is None:
            return False
        try:
            targets = response.json()
        except ValueError:
            return False
        if not isinstance(targets, list):
            return False
        return any(
            isinstance(target, dict)
            and target.get("type") == "page"
            and MAIN_TARGET_HOST in str(target.get("url", ""))
            for target in targets
        )

    async def playback_state(self) -> str:
        try:
            raw = await read_now_playing_raw()
        except NotFoundError:
            return "stopped"
        return playback_state(parse_now_playing(raw))


class ReadinessTracker:
    def __init__(self, probes: Optional[Probes] = None, port: int = 9222) -> None:
        self.probes = probes or SystemProbes()
        self.port = port

    async def observe(self) -> ReadinessState:
        """Compute the state fresh, stopping at the first probe that settles it."""
        if not await self.probes.is_process_running():
            return ReadinessState.DEAD
        if not await self.probes.is_debug_port_available(self.port):
            return ReadinessState.LAUNCHING
        if not await self.probes.is_main_page_loaded(self.port):
            return ReadinessState.CONNECTING

        playback = await self.probes.playback_state()
        if playback == "playing":
            return ReadinessState.PLAYING
        if playback == "paused":
            return ReadinessState.PAUSED
        return ReadinessState.READY

    async def wait_for(
        self,
        target: ReadinessState,
        timeout: float,
        poll_interval: float = 0.5,
    ) -> ReadinessState:
        """Block until the app is at least as ready as ``target``; return the state reached."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while loop.time() < deadline:
            current = await self.observe()
            if current.at_least(target):
                return current
            logger.debug(f"Waiting for {target.value}, currently {current.value}")
            await asyncio.sleep(poll_interval)

        final = await self.observe()
        if final.at_least(target):
            return final
        raise OperationTimeoutError(
            f'Timed out waiting for TIDAL state "{target.value}" after {timeout:g}s (current: "{final.value}")'
        )
