from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar
from urllib.parse import unquote

from loguru import logger

from tidal_cli.catalog.base import RATE_LIMIT_DELAY, delay
from tidal_cli.models import ResourceIdentifier

T = TypeVar("T")

_CURSOR_PATTERN = re.compile(r"page(?:%5B|\[)cursor(?:%5D|\])=([^&#]+)", re.IGNORECASE)

PageFetcher = Callable[[Optional[str]], Awaitable[Optional[Mapping[str, Any]]]]
BatchFetcher = Callable[[List[str]], Awaitable[Sequence[T]]]


def extract_cursor(next_link: Optional[str]) -> Optional[str]:
    """Read ``page[cursor]`` from a next-link URL (raw or percent-encoded brackets)."""
    if not next_link:
        return None
    match = _CURSOR_PATTERN.search(next_link)
    if not match:
        return None
    # Opaque token: only %XX escapes are decoded, "+" stays literal.
    return unquote(match.group(1)) or None


def document_identifiers(document: Optional[Mapping[str, Any]]) -> List[ResourceIdentifier]:
    data = (document or {}).get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    return [ResourceIdentifier.from_dict(item) for item in data]


async def collect_ids(
    fetch_page: PageFetcher,
    *,
    limit: int,
    wanted_type: Optional[str] = None,
    label: str = "collect",
) -> List[str]:
    """Walk cursor pagination, accumulating ids until ``limit``, an empty page or the last page."""
    ids: List[str] = []
    cursor: Optional[str] = None
    page = 0

    while len(ids) < limit:
        document = await fetch_page(cursor)
        identifiers = document_identifiers(document)
        if wanted_type is not None:
            identifiers = [identifier for identifier in identifiers if identifier.type == wanted_type]
        logger.debug(f"{label}: page {page} returned {len(identifiers)} ids")
        if not identifiers:
            break
        ids.extend(identifier.id for identifier in identifiers)

        links = (document or {}).get("links") or {}
        cursor = extract_cursor(links.get("next"))
        if not cursor or len(ids) >= limit:
            break
        page += 1
        await delay(RATE_LIMIT_DELAY)

    return ids[:limit]


async def fetch_in_batches(
    ids: Sequence[str],
    fetch_batch: BatchFetcher[T],
    *,
    batch_size: int,
    key: Callable[[T], str],
    label: str = "batch",
) -> List[T]:
    """Fetch detail records in sequential batches and return them in ``ids`` order.

    Ids the API never returned (region-restricted, deleted) are dropped.
    """
    records: Dict[str, T] = {}
    for index, start in enumerate(range(0, len(ids), batch_size)):
        if index:
            await delay(RATE_LIMIT_DELAY)
        chunk = list(ids[start : start + batch_size])
        logger.debug(f"{label}: fetching batch {index} ({len(chunk)} ids)")
        for record in await fetch_batch(chunk):
            records[key(record)] = record
    return [records[item] for item in ids if item in records]
