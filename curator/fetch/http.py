"""Remote document transport shared by the processors."""

from __future__ import annotations

import logging

import httpx

from curator.config import get_fetch_config
from curator.retry import retry_async

logger = logging.getLogger(__name__)


async def fetch_text(url: str, config: dict) -> str:
    """GET a feed or page body, retrying transient failures."""
    cfg = get_fetch_config(config)
    return await retry_async(
        _get, url, cfg["timeout"], cfg["user_agent"],
        max_retries=cfg["max_retries"], base_delay=0.5,
    )


async def _get(url: str, timeout: float, user_agent: str) -> str:
    headers = {"User-Agent": user_agent}
    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, headers=headers,
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.text
