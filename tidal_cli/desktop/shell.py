from __future__ import annotations

import asyncio
import subprocess
from typing import Sequence

from loguru import logger

TIMEOUT_EXIT = 124
NOT_FOUND_EXIT = 127


async def run_command(args: Sequence[str], timeout: float = 3.0) -> subprocess.CompletedProcess:
    """Run a short-lived helper and capture its output.

    A missing executable or a helper that outlives ``timeout`` is reported
    through the exit code, like a shell would.
    """

    def _run() -> subprocess.CompletedProcess:
        try:
            return subprocess.run(list(args), capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as exc:
            return subprocess.CompletedProcess(list(args), NOT_FOUND_EXIT, "", str(exc))
        except subprocess.TimeoutExpired as exc:
            return subprocess.CompletedProcess(list(args), TIMEOUT_EXIT, "", str(exc))

    result = await asyncio.to_thread(_run)
    logger.debug(f"{args[0]} exited with {result.returncode}")
    return result


def spawn_detached(args: Sequence[str]) -> None:
    subprocess.Popen(
        list(args),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
