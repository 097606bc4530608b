from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import httpx

API_BASE = "https://openapi.tidal.com/v2"

# Fixed pause between consecutive API requests of one collection.
RATE_LIMIT_DELAY = 0.2
# Track batches stay at 50 ids to keep request URLs short.
TRACK_BATCH_SIZE = 50
DETAIL_BATCH_SIZE = 20
PLAYLIST_ITEMS_BATCH_SIZE = 20


@dataclass
class ApiResult:
    """Outcome of one API call: parsed payload or error payload plus the raw response."""

    data: Any = None
    error: Any = None
    response: Optional[httpx.Response] = None

    @property
    def status(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None


async def delay(seconds: float) -> None:
    await asyncio.sleep(seconds)
