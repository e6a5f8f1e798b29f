"""Batch LLM categorization of pending articles."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import time

from curator.categories import (
    NEWS_CATEGORIES,
    NEWS_CATEGORY_CRITERIA,
    TECH_CATEGORIES,
    TECH_CATEGORY_CRITERIA,
    empty_news_distribution,
    empty_tech_distribution,
    is_valid_news_category,
    is_valid_tech_category,
)
from curator.config import get_categorize_config
from curator.db import (
    fail_processing_articles,
    get_pending_articles,
    insert_categorization_log,
    save_categorization_log,
    set_categorization_status,
    update_article_categorization,
)
from curator.fetch.base import describe_error
from curator.limits import calculate_max_articles
from curator.llm import get_provider_for_task
from curator.llm.base import LLMResponse
from curator.llm.pricing import estimate_cost
from curator.llm.prompts import CATEGORIZE_BATCH, SYSTEM_CATEGORIZER
from curator.models import (
    Article,
    Categorization,
    CategorizationRunLog,
    CategorizationRunStatus,
    CategorizationState,
    CategoryResult,
    LLMUsage,
    utcnow,
)

logger = logging.getLogger(__name__)


def _normalize_quotes(text: str) -> str:
    """Replace smart/curly quotes with straight quotes for JSON parsing."""
    return (
        text
        .replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )


def _try_parse(text: str) -> dict | None:
    for candidate in (text, _normalize_quotes(text)):
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_json(text: str) -> dict | None:
    """Extract a JSON object from LLM output that may contain fences or extra text."""
    result = _try_parse(text)
    if result is not None:
        return result

    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fenced:
        result = _try_parse(fenced.group(1))
        if result is not None:
            return result

    brace = re.search(r"\{.*\}", text, re.DOTALL)
    if brace:
        return _try_parse(brace.group(0))
    return None


def build_batch_prompt(articles: list[Article]) -> str:
    news = "\n".join(f"- {name}: {NEWS_CATEGORY_CRITERIA[name]}" for name in NEWS_CATEGORIES)
    tech = "\n".join(f"- {name}: {TECH_CATEGORY_CRITERIA[name]}" for name in TECH_CATEGORIES)
    blocks = []
    for article in articles:
        description = (article.meta_description or "")[:500]
        blocks.append(
            f"[id: {article.id}]\n"
            f"Title: {article.title}\n"
            f"Description: {description}\n"
            f"Source: {article.source_name}"
        )
    return CATEGORIZE_BATCH.format(
        news_categories=news, tech_categories=tech, articles="\n\n".join(blocks),
    )


def parse_categorization_response(text: str) -> dict[str, dict]:
    """Map article id (as str) to its raw result entry."""
    data = extract_json(text)
    if data is None or not isinstance(data.get("articles"), list):
        raise ValueError("Failed to parse categorization response")
    return {
        str(item.get("id")): item
        for item in data["articles"]
        if isinstance(item, dict) and item.get("id") is not None
    }


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)


def _confidence(value) -> float:
    try:
        return max(0.0, min(100.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


def apply_results(
    conn: sqlite3.Connection, articles: list[Article], items: dict[str, dict],
) -> list[CategoryResult]:
    """Write each article's categories back, one article at a time."""
    results = []
    for article in articles:
        item = items.get(str(article.id))
        raw_news = item.get("newsCategory") if item else None
        raw_tech = item.get("techCategory") if item else None
        news = raw_news if isinstance(raw_news, str) else None
        tech = raw_tech if isinstance(raw_tech, str) else None
        rationale = _as_text(item.get("rationale")) if item else ""

        error = None
        if item is None:
            error = "No categorization returned for article"
        elif not is_valid_news_category(news) or not is_valid_tech_category(tech):
            error = f"Invalid categories: {raw_news!r} / {raw_tech!r}"

        if error is None:
            try:
                update_article_categorization(
                    conn,
                    article.id,
                    Categorization(
                        status=CategorizationState.COMPLETED,
                        news_category=news,
                        tech_category=tech,
                        rationale=rationale,
                        categorized_at=utcnow(),
                        is_training_data=article.categorization.is_training_data,
                    ),
                )
            except Exception as exc:
                error = f"Failed to save categorization: {describe_error(exc)}"

        if error is not None:
            logger.error("Article #%s (%s): %s", article.id, article.title, error)
            set_categorization_status(conn, [article.id], CategorizationState.FAILED.value)
            results.append(
                CategoryResult(
                    article_id=article.id,
                    title=article.title,
                    status="failed",
                    news_category=news,
                    tech_category=tech,
                    rationale=rationale,
                    error_message=error,
                )
            )
            continue

        results.append(
            CategoryResult(
                article_id=article.id,
                title=article.title,
                status="success",
                news_category=news,
                tech_category=tech,
                rationale=rationale,
                confidence=_confidence(item.get("confidence")),
            )
        )
    return results


def calculate_category_distributions(
    results: list[CategoryResult],
) -> tuple[dict[str, int], dict[str, int]]:
    news = empty_news_distribution()
    tech = empty_tech_distribution()
    for result in results:
        if result.status != "success":
            continue
        if result.news_category in news:
            news[result.news_category] += 1
        if result.tech_category in tech:
            tech[result.tech_category] += 1
    return news, tech


def usage_from_response(response: LLMResponse) -> LLMUsage:
    return LLMUsage(
        prompt_tokens=response.input_tokens,
        completion_tokens=response.output_tokens,
        total_tokens=response.input_tokens + response.output_tokens,
        estimated_cost_usd=estimate_cost(
            response.input_tokens, response.output_tokens, response.model,
        ),
        model_used=response.model,
    )


def add_article_results(run_log: CategorizationRunLog, results: list[CategoryResult]) -> None:
    run_log.article_results.extend(results)
    run_log.total_articles_successful += sum(1 for r in results if r.status == "success")
    run_log.total_articles_failed += sum(1 for r in results if r.status == "failed")


def finalize_run_log(run_log: CategorizationRunLog, started: float) -> None:
    run_log.end_time = utcnow()
    run_log.processing_time_ms = int((time.monotonic() - started) * 1000)
    run_log.news_category_distribution, run_log.tech_category_distribution = (
        calculate_category_distributions(run_log.article_results)
    )
    if run_log.total_articles_successful == 0:
        run_log.status = CategorizationRunStatus.FAILED
    elif run_log.total_articles_failed == 0:
        run_log.status = CategorizationRunStatus.COMPLETED
    else:
        run_log.status = CategorizationRunStatus.COMPLETED_WITH_ERRORS


def fail_batch(
    conn: sqlite3.Connection,
    run_log: CategorizationRunLog,
    articles: list[Article],
    exc: Exception,
) -> None:
    """Mark every article in a failed batch so none stay in processing."""
    message = describe_error(exc)
    set_categorization_status(
        conn,
        [a.id for a in articles],
        CategorizationState.FAILED.value,
        rationale=f"Categorization failed: {message}",
    )
    run_log.processing_errors.append(message)
    add_article_results(
        run_log,
        [
            CategoryResult(
                article_id=a.id, title=a.title, status="failed", error_message=message,
            )
            for a in articles
        ],
    )


async def categorize_articles(
    conn: sqlite3.Connection,
    config: dict,
    article_count: int | None = None,
    triggered_by: str = "manual",
) -> CategorizationRunLog:
    """Categorize up to ``article_count`` pending articles in one LLM call."""
    cfg = get_categorize_config(config)
    limit = calculate_max_articles(article_count, cfg["article_count"])
    provider = get_provider_for_task(config, "categorize")
    started = time.monotonic()

    run_log = CategorizationRunLog(
        article_limit=limit,
        batch_size=limit,
        triggered_by=triggered_by,
        news_category_distribution=empty_news_distribution(),
        tech_category_distribution=empty_tech_distribution(),
        model=provider.default_model,
    )
    run_log.id = insert_categorization_log(conn, run_log)
    logger.info("Categorization run #%d started (limit %d)", run_log.id, limit)

    articles: list[Article] = []
    try:
        articles = get_pending_articles(conn, limit)
        run_log.total_articles_attempted = len(articles)
        save_categorization_log(conn, run_log)

        if not articles:
            logger.info("No pending articles to categorize")
        else:
            set_categorization_status(
                conn, [a.id for a in articles], CategorizationState.PROCESSING.value,
            )
            try:
                response = await provider.complete(
                    build_batch_prompt(articles),
                    system=SYSTEM_CATEGORIZER,
                    temperature=cfg["temperature"],
                    max_tokens=cfg["max_tokens"],
                )
                items = parse_categorization_response(response.text)
            except Exception as exc:
                logger.exception("Categorization batch of %d failed", len(articles))
                fail_batch(conn, run_log, articles, exc)
            else:
                run_log.usage = usage_from_response(response)
                add_article_results(run_log, apply_results(conn, articles, items))

        finalize_run_log(run_log, started)
        save_categorization_log(conn, run_log)
        logger.info(
            "Categorization run #%d %s: %d/%d successful, %d tokens, $%.4f",
            run_log.id, run_log.status.value, run_log.total_articles_successful,
            run_log.total_articles_attempted, run_log.usage.total_tokens,
            run_log.usage.estimated_cost_usd,
        )
        return run_log

    except Exception as exc:
        logger.exception("Categorization run #%d failed", run_log.id)
        message = describe_error(exc)
        try:
            released = fail_processing_articles(
                conn, [a.id for a in articles], f"Categorization failed: {message}",
            )
        except sqlite3.Error:
            logger.exception("Could not release articles from run #%d", run_log.id)
        else:
            if released:
                logger.warning("Marked %d processing articles failed", released)
        run_log.status = CategorizationRunStatus.FAILED
        run_log.end_time = utcnow()
        run_log.processing_time_ms = int((time.monotonic() - started) * 1000)
        run_log.processing_errors.append(message)
        save_categorization_log(conn, run_log)
        raise
