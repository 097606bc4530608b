"""Backoff wrappers for remote calls.

``with_retry`` only absorbs HTTP 429; every other failure is raised at once.
``with_empty_retry`` covers endpoints that throttle silently by answering
with an empty payload.
"""

from __future__ import annotations

import json
import re
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from tidal_cli.catalog.base import ApiResult, delay
from tidal_cli.errors import RateLimitedError, RequestFailedError

DEFAULT_RETRY_DELAY = 1.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_EMPTY_BASE_DELAY = 0.5

T = TypeVar("T")


def format_api_error(error: object) -> str:
    """Best-effort human-readable detail for an API error payload."""
    if not error:
        return "Unknown API error"
    if isinstance(error, dict) and isinstance(error.get("errors"), list) and error["errors"]:
        first = error["errors"][0]
        if isinstance(first, dict):
            for field_name in ("detail", "title"):
                value = first.get(field_name)
                if isinstance(value, str) and value:
                    return value
    if isinstance(error, BaseException):
        return str(error)
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return str(error)


def retry_after_seconds(result: ApiResult) -> float:
    if result.response is None:
        return DEFAULT_RETRY_DELAY
    header = result.response.headers.get("retry-after")
    match = re.match(r"\s*(\d+)", header or "")
    if not match:
        return DEFAULT_RETRY_DELAY
    return float(match.group(1))


async def with_retry(
    operation: Callable[[], Awaitable[ApiResult]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    label: str = "request",
) -> ApiResult:
    for attempt in range(max_retries + 1):
        result = await operation()
        status = result.status

        if status != 429:
            if result.error is not None:
                raise RequestFailedError(label, status, format_api_error(result.error))
            return result

        if attempt == max_retries:
            logger.warning(f"[retry] {label}: 429 after {max_retries} retries, giving up")
            detail = format_api_error(result.error) if result.error else "Too Many Requests"
            raise RateLimitedError(label, detail)

        wait = retry_after_seconds(result)
        logger.info(f"[retry] {label}: 429, waiting {wait:g}s (attempt {attempt + 1}/{max_retries})")
        await delay(wait)

    raise RuntimeError("retry loop exited unexpectedly")


async def with_empty_retry(
    operation: Callable[[], Awaitable[Optional[T]]],
    is_empty: Callable[[T], bool],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_EMPTY_BASE_DELAY,
    label: str = "request",
) -> Optional[T]:
    result: Optional[T] = None
    for attempt in range(max_retries + 1):
        result = await operation()
        if result is not None and not is_empty(result):
            return result

        if attempt == max_retries:
            logger.info(f"[retry] {label}: empty after {max_retries} retries, giving up")
            break

        wait = base_delay * 2**attempt
        logger.info(
            f"[retry] {label}: empty result, retrying in {wait:g}s (attempt {attempt + 1}/{max_retries})"
        )
        await delay(wait)
    return result
