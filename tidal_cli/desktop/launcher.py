from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from tidal_cli.config import AppConfig
from tidal_cli.desktop.shell import run_command, spawn_detached
from tidal_cli.desktop.state import PROCESS_NAME, Probes, SystemProbes
from tidal_cli.errors import LaunchTimeoutError

QUIT_SCRIPT = f'tell application "{PROCESS_NAME}" to quit'


class DesktopLauncher:
    """Keeps the desktop app running with its DevTools port open."""

    launch_timeout = 15.0
    poll_interval = 0.5
    quit_timeout = 5.0

    def __init__(self, config: AppConfig, probes: Optional[Probes] = None) -> None:
        self.config = config
        self.probes = probes or SystemProbes()

    async def port_available(self) -> bool:
        return await self.probes.is_debug_port_available(self.config.cdp_port)

    async def ensure_running(self) -> bool:
        """Make sure the debug port answers; return True when the app had to be (re)started."""
        if await self.port_available():
            return False

        if await self.probes.is_process_running():
            logger.warning("TIDAL is running but CDP is not available. Relaunching with debug port...")
            await self.quit()

        logger.info("Launching TIDAL with remote debugging...")
        spawn_detached(
            [
                "open",
                "-a",
                self.config.app_path,
                "--args",
                f"--remote-debugging-port={self.config.cdp_port}",
            ]
        )
        if not await self._wait_until(self.port_available, self.launch_timeout):
            raise LaunchTimeoutError(f"Timed out waiting for TIDAL to start with CDP after {self.launch_timeout:g}s")
        return True

    async def quit(self) -> None:
        result = await run_command(["osascript", "-e", QUIT_SCRIPT], timeout=self.quit_timeout)
        if result.returncode != 0:
            logger.debug("Graceful quit failed, killing the process")
            await run_command(["pkill", "-x", PROCESS_NAME])

        async def exited() -> bool:
            return not await self.probes.is_process_running()

        if not await self._wait_until(exited, self.quit_timeout):
            logger.warning("TIDAL did not exit in time; launching anyway")

    async def _wait_until(self, condition: Callable[[], Awaitable[bool]], timeout: float) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if await condition():
                return True
            await asyncio.sleep(self.poll_interval)
        return await condition()
