"""Retry with exponential backoff for remote fetches and LLM calls."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * (2**attempt), max_delay)


def _retry_after(response: httpx.Response, default: float, max_delay: float) -> float:
    header = response.headers.get("retry-after")
    if not header:
        return default
    try:
        return min(float(header), max_delay)
    except ValueError:
        return default


async def retry_async(
    fn,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    **kwargs,
):
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Retries on httpx timeout/connection errors and on HTTP 429 or 5xx
    responses raised via ``raise_for_status``. Anything else propagates
    immediately; the last transient error is raised once retries run out.
    """
    last_exc: Exception | None = None
    for attempt in range(max_retries + 1):
        try:
            return await fn(*args, **kwargs)
        except RETRYABLE_EXCEPTIONS as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = _backoff(attempt, base_delay, max_delay)
            logger.warning(
                "Retry %d/%d after %s: %s (waiting %.1fs)",
                attempt + 1, max_retries, type(exc).__name__, exc, delay,
            )
            await asyncio.sleep(delay)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code not in RETRYABLE_HTTP_CODES:
                raise
            last_exc = exc
            if attempt == max_retries:
                break
            delay = _retry_after(
                exc.response, _backoff(attempt, base_delay, max_delay), max_delay,
            )
            logger.warning(
                "Retry %d/%d after HTTP %d (waiting %.1fs)",
                attempt + 1, max_retries, exc.response.status_code, delay,
            )
            await asyncio.sleep(delay)

    raise last_exc  # type: ignore[misc]
