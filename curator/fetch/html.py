"""HTML listing-page processor driven by per-domain selectors."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urljoin, urlparse

import trafilatura
from bs4 import BeautifulSoup, Tag
from dateutil import parser as date_parser

from curator.config import get_html_site_overrides
from curator.fetch import register_processor
from curator.fetch.base import BaseProcessor, describe_error
from curator.fetch.http import fetch_text
from curator.fetch.sites import (
    HTMLSiteConfig,
    UnsupportedDomainError,
    require_site_config,
    site_config_from_dict,
)
from curator.models import ParsedArticle, ProcessorResult, Source

logger = logging.getLogger(__name__)

SECTION_PREFIX = re.compile(r"^(Announcements|Featured|Research|Blog|Policy|Product)\s*")
NON_NAVIGABLE = ("#", "javascript:", "mailto:")
MONTH_OR_YEAR = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b|\b(19|20)\d{2}\b",
    re.IGNORECASE,
)


@dataclass
class ExtractedItem:
    title: str
    link: str
    description: str = ""
    published_date: datetime | None = None


@register_processor("html")
class HTMLProcessor(BaseProcessor):
    """Scrape article cards from a listing page."""

    @property
    def name(self) -> str:
        return "html"

    def site_configs(self) -> list[HTMLSiteConfig]:
        return [site_config_from_dict(d) for d in get_html_site_overrides(self.config)]

    async def fetch(self, source: Source, job_id: str, max_articles: int) -> ProcessorResult:
        logger.info(
            "[%s] HTML processor: %s - limit %d", job_id, source.name, max_articles,
        )
        try:
            site = require_site_config(source.url, self.site_configs())
        except UnsupportedDomainError as exc:
            logger.error("[%s] %s", job_id, exc)
            return ProcessorResult(success=False, error=str(exc))

        logger.info("[%s] Using site config for %s", job_id, site.domain)
        try:
            html = await fetch_text(source.url, self.config)
            return self.parse_page(html, source, site, job_id, max_articles)
        except Exception as exc:
            logger.error("[%s] HTML fetch failed for %s: %s", job_id, source.name, exc)
            return ProcessorResult(success=False, error=describe_error(exc))

    def parse_page(
        self,
        html: str,
        source: Source,
        site: HTMLSiteConfig,
        job_id: str,
        max_articles: int,
    ) -> ProcessorResult:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()

        containers = soup.select(site.container_selector)
        selected = containers[:max_articles]
        logger.info(
            "[%s] %s: processing %d of %d containers matching %r",
            job_id, source.name, len(selected), len(containers), site.container_selector,
        )

        articles: list[ParsedArticle] = []
        seen_titles: set[str] = set()
        for index, container in enumerate(selected):
            try:
                item = extract_article_data(container, site, source.url)
            except Exception:
                logger.exception("[%s] Error extracting article %d", job_id, index)
                continue

            if not is_valid_article(item, site, seen_titles):
                continue
            seen_titles.add(item.title)
            articles.append(
                ParsedArticle(
                    title=item.title,
                    link=item.link,
                    published_date=item.published_date,
                    meta_description=item.description or None,
                    guid=item.link,
                )
            )

        logger.info("[%s] HTML scraping extracted %d articles", job_id, len(articles))
        title, description = _page_metadata(html)
        return ProcessorResult(
            success=True,
            articles=articles,
            total_items=len(containers),
            feed_title=title or source.name,
            feed_description=description or "",
        )


def extract_article_data(container: Tag, site: HTMLSiteConfig, source_url: str) -> ExtractedItem:
    """Pull title, link, date and description out of one container."""
    if site.title_selector:
        title = _text(container.select_one(site.title_selector))
    else:
        # Card layouts where the whole container is the link
        title = _text(container)

    published_date = None
    if site.date_selector:
        date_el = container.select_one(site.date_selector)
        if date_el is not None:
            visible = _text(date_el)
            published_date = _parse_date(date_el.get("datetime"), visible)
            if published_date and visible and visible in title:
                title = title.replace(visible, "", 1).strip()

    title = SECTION_PREFIX.sub("", title).strip()

    if site.link_selector:
        link_el = container.select_one(site.link_selector)
        link = link_el.get("href", "") if link_el is not None else ""
    else:
        link = container.get("href") or ""
        if not link:
            anchor = container.find("a")
            link = anchor.get("href", "") if anchor is not None else ""

    description = ""
    if site.description_selector:
        description = _text(container.select_one(site.description_selector))

    return ExtractedItem(
        title=title,
        link=absolutize(link, source_url),
        description=description,
        published_date=published_date,
    )


def is_valid_article(item: ExtractedItem, site: HTMLSiteConfig, seen_titles: set[str]) -> bool:
    """Apply the site's filters plus the in-run title dedup."""
    if not item.title or not item.link:
        return False
    filters = site.filters
    if not filters.min_title_length <= len(item.title) <= filters.max_title_length:
        return False
    lowered = item.title.lower()
    if any(excluded.lower() in lowered for excluded in filters.exclude_titles):
        return False
    return item.title not in seen_titles


def absolutize(link: str, source_url: str) -> str:
    """Resolve a scraped href against the source's origin."""
    link = (link or "").strip()
    if not link or link.startswith(NON_NAVIGABLE):
        return ""
    parsed = urlparse(source_url)
    origin = f"{parsed.scheme}://{parsed.netloc}/"
    return urljoin(origin, link)


def _text(el: Tag | None) -> str:
    if el is None:
        return ""
    return " ".join(el.get_text(" ", strip=True).split())


def _parse_date(datetime_attr: str | None, visible: str) -> datetime | None:
    """Parse the ``datetime`` attribute, or the visible text when it is absent.

    Visible text must name a month or a four-digit year; bare day numbers
    would otherwise be filled in from today's date.
    """
    try:
        if datetime_attr:
            parsed = date_parser.isoparse(datetime_attr)
        elif visible and MONTH_OR_YEAR.search(visible):
            noon = datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
            parsed = date_parser.parse(visible, default=noon.replace(tzinfo=None))
        else:
            return None
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _page_metadata(html: str) -> tuple[str | None, str | None]:
    try:
        meta = trafilatura.extract_metadata(html)
    except Exception:
        logger.debug("Page metadata extraction failed")
        return None, None
    if meta is None:
        return None, None
    return getattr(meta, "title", None), getattr(meta, "description", None)
