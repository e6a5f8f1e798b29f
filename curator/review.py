"""Human review of categorizations and analysis of reviewer corrections."""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from dataclasses import dataclass, field

from curator.categories import is_valid_news_category, is_valid_tech_category
from curator.db import (
    get_article,
    get_corrections,
    insert_correction,
    update_article_categorization,
)
from curator.models import (
    Article,
    Categorization,
    CategorizationState,
    CategoryCorrection,
    utcnow,
)

logger = logging.getLogger(__name__)

TOP_PATTERNS = 15
RECENT_CORRECTIONS = 10


class ArticleNotFoundError(LookupError):
    """A review named an article that does not exist."""


@dataclass
class ReviewOutcome:
    article: Article
    correction_logged: bool = False


@dataclass
class SourceCorrections:
    total_corrections: int = 0
    news_corrections: int = 0
    tech_corrections: int = 0
    examples: list[CategoryCorrection] = field(default_factory=list)


def review_article(
    conn: sqlite3.Connection,
    article_id: int,
    news_category: str | None = None,
    tech_category: str | None = None,
    rationale: str | None = None,
    is_training_data: bool | None = None,
) -> ReviewOutcome:
    """Apply a reviewer's categories to one article.

    A change to an article the model already categorized is also recorded
    as a CategoryCorrection so disagreements can be analyzed later.
    """
    if news_category and not is_valid_news_category(news_category):
        raise ValueError(f"Invalid news category: {news_category}")
    if tech_category and not is_valid_tech_category(tech_category):
        raise ValueError(f"Invalid tech category: {tech_category}")

    article = get_article(conn, article_id)
    if article is None:
        raise ArticleNotFoundError(f"Article not found: {article_id}")

    before = article.categorization
    after = Categorization(
        status=before.status,
        news_category=news_category or before.news_category,
        tech_category=tech_category or before.tech_category,
        rationale=before.rationale if rationale is None else rationale,
        categorized_at=before.categorized_at,
        is_training_data=(
            before.is_training_data if is_training_data is None else is_training_data
        ),
    )
    if news_category or tech_category:
        after.status = CategorizationState.COMPLETED
        after.categorized_at = utcnow()

    was_ai_categorized = before.status is CategorizationState.COMPLETED and bool(
        before.news_category or before.tech_category
    )
    changed = (
        after.news_category != before.news_category
        or after.tech_category != before.tech_category
    )
    logged = was_ai_categorized and changed

    update_article_categorization(conn, article.id, after)
    if logged:
        insert_correction(
            conn,
            CategoryCorrection(
                title=article.title,
                source=article.source_name,
                description=article.meta_description,
                ai_news=before.news_category,
                ai_tech=before.tech_category,
                ai_rationale=before.rationale,
                human_news=after.news_category,
                human_tech=after.tech_category,
                human_rationale=after.rationale,
            ),
        )
        logger.info("Logged correction for article #%d (%s)", article.id, article.title)

    article.categorization = after
    logger.info("Updated article categorization: %s", article.title)
    return ReviewOutcome(article=article, correction_logged=logged)


def analyze_corrections(conn: sqlite3.Connection) -> dict:
    """Summarize where reviewers disagree with the model."""
    corrections = get_corrections(conn)
    patterns: Counter[str] = Counter()
    by_source: dict[str, SourceCorrections] = {}

    for c in corrections:
        news_changed = c.ai_news != c.human_news
        tech_changed = c.ai_tech != c.human_tech
        if news_changed:
            patterns[f"News: {c.ai_news} -> {c.human_news}"] += 1
        if tech_changed:
            patterns[f"Tech: {c.ai_tech} -> {c.human_tech}"] += 1

        entry = by_source.setdefault(c.source, SourceCorrections())
        entry.total_corrections += 1
        entry.news_corrections += int(news_changed)
        entry.tech_corrections += int(tech_changed)
        entry.examples.append(c)

    most_corrected = max(
        by_source, key=lambda name: by_source[name].total_corrections, default=None,
    )
    return {
        "total_corrections": len(corrections),
        "last_correction_date": corrections[0].corrected_at if corrections else None,
        "recent_corrections": corrections[:RECENT_CORRECTIONS],
        "top_patterns": patterns.most_common(TOP_PATTERNS),
        "source_breakdown": by_source,
        "unique_sources": len(by_source),
        "most_corrected_source": most_corrected,
        "date_range": {
            "earliest": corrections[-1].corrected_at if corrections else None,
            "latest": corrections[0].corrected_at if corrections else None,
        },
    }
