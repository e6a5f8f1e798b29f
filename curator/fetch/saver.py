"""Dedup and persist candidate articles."""

from __future__ import annotations

import logging
import sqlite3

from curator.db import find_duplicate_article, insert_article
from curator.models import Article, ParsedArticle, SaveResult, utcnow

logger = logging.getLogger(__name__)


def save_articles(
    conn: sqlite3.Connection,
    articles: list[ParsedArticle],
    source_id: int,
    source_name: str,
    job_id: str,
) -> SaveResult:
    """Insert the candidates not already stored, matched by link or guid.

    Each candidate is handled on its own: a duplicate is counted, a failed
    insert is recorded in ``errors`` and the rest of the batch continues.
    The check-then-insert is not atomic; a concurrent run inserting the
    same link first surfaces here as an IntegrityError on that article.
    """
    result = SaveResult(total_articles=len(articles))
    logger.info(
        "[%s] Saving %d articles from %s (source #%s)",
        job_id, len(articles), source_name, source_id,
    )
    if not articles:
        return result

    for candidate in articles:
        try:
            if find_duplicate_article(conn, candidate.link, candidate.guid) is not None:
                logger.debug("[%s] Skipping duplicate: %s", job_id, candidate.title)
                result.skipped_duplicates += 1
                continue

            insert_article(
                conn,
                Article(
                    title=candidate.title,
                    link=candidate.link,
                    source_name=source_name,
                    published_date=candidate.published_date,
                    meta_description=candidate.meta_description or "",
                    guid=candidate.guid,
                    fetched_at=utcnow(),
                ),
            )
            result.saved_articles += 1
        except Exception as exc:
            message = f'Failed to process article "{candidate.title}": {exc}'
            logger.error("[%s] %s", job_id, message)
            result.errors.append(message)

    logger.info(
        "[%s] %s: %d total, %d saved, %d duplicates, %d errors",
        job_id, source_name, result.total_articles, result.saved_articles,
        result.skipped_duplicates, len(result.errors),
    )
    return result


def article_exists(conn: sqlite3.Connection, link: str, guid: str | None = None) -> bool:
    return find_duplicate_article(conn, link, guid) is not None
