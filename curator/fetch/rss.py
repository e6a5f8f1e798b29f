"""RSS/Atom feed processor."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import feedparser
from bs4 import BeautifulSoup

from curator.fetch import register_processor
from curator.fetch.base import BaseProcessor, describe_error
from curator.fetch.http import fetch_text
from curator.models import ParsedArticle, ProcessorResult, Source

logger = logging.getLogger(__name__)


@register_processor("rss")
class RSSProcessor(BaseProcessor):
    """Parse an RSS or Atom feed into candidate articles."""

    @property
    def name(self) -> str:
        return "rss"

    async def fetch(self, source: Source, job_id: str, max_articles: int) -> ProcessorResult:
        logger.info(
            "[%s] RSS processor: %s - limit %d", job_id, source.name, max_articles,
        )
        try:
            feed = await load_feed(source.url, self.config)
        except Exception as exc:
            logger.error("[%s] RSS fetch failed for %s: %s", job_id, source.name, exc)
            return ProcessorResult(success=False, error=describe_error(exc))

        entries = list(feed.entries)
        meta = getattr(feed, "feed", None) or {}

        # Feeds are assumed newest-first; take the prefix as published
        to_process = entries[:max_articles]
        logger.info(
            "[%s] %s: processing %d of %d entries (limit %d)",
            job_id, source.name, len(to_process), len(entries), max_articles,
        )

        articles = []
        for entry in to_process:
            article = _entry_to_article(entry)
            if article is None:
                logger.debug("[%s] Skipping RSS entry without title or link", job_id)
                continue
            articles.append(article)

        return ProcessorResult(
            success=True,
            articles=articles,
            total_items=len(entries),
            feed_title=meta.get("title"),
            feed_description=meta.get("subtitle") or meta.get("description"),
        )


async def load_feed(url: str, config: dict):
    """Download and parse a feed. Raises on transport or parse failure."""
    body = await fetch_text(url, config)
    feed = feedparser.parse(body)
    if getattr(feed, "bozo", False) and not feed.entries:
        reason = getattr(feed, "bozo_exception", None) or "unparseable document"
        raise ValueError(f"Invalid feed: {reason}")
    return feed


async def check_feed(url: str, config: dict) -> dict:
    """Fetch and parse a feed URL without saving anything."""
    try:
        feed = await load_feed(url, config)
    except Exception as exc:
        return {"success": False, "error": describe_error(exc)}
    meta = getattr(feed, "feed", None) or {}
    return {
        "success": True,
        "feed_title": meta.get("title"),
        "item_count": len(feed.entries),
    }


def _entry_to_article(entry) -> ParsedArticle | None:
    title = (entry.get("title") or "").strip()
    link = (entry.get("link") or "").strip()
    if not title or not link:
        return None

    return ParsedArticle(
        title=title,
        link=link,
        published_date=_entry_date(entry),
        meta_description=_snippet(entry.get("summary", "")),
        guid=entry.get("id") or None,
    )


def _entry_date(entry) -> datetime | None:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            # feedparser normalizes struct_time values to UTC
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return None


def _snippet(summary: str) -> str:
    """Plain-text version of an entry summary."""
    if not summary:
        return ""
    text = BeautifulSoup(summary, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split())
