"""Tests for the fetch orchestrator and run logs."""

from __future__ import annotations

import re
import sqlite3
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from curator.db import (
    get_fetch_log,
    get_source,
    insert_article,
    insert_source,
    list_fetch_logs,
    set_source_active,
)
from curator.fetch.report import derive_run_status, summarize_source_results
from curator.models import (
    Article,
    JobType,
    RunStatus,
    Source,
    SourceFetchState,
    SourceResult,
    SourceRunState,
)
from curator.orchestrator import (
    ArticleFetchOrchestrator,
    SourceNotFoundError,
    fetch_all_articles,
    fetch_articles_from_source,
    new_job_id,
)

FEED_A = "https://feeds.a.example/rss"
FEED_B = "https://feeds.b.example/rss"


def _feed(links: list[str]) -> str:
    items = "".join(
        f"<item><title>Story {i} about AI</title><link>{link}</link></item>"
        for i, link in enumerate(links)
    )
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>'
        f"{items}</channel></rss>"
    )


A_LINKS = [f"https://a.example/story-{i}" for i in range(4)]


@pytest.fixture
def two_sources(db_conn):
    a = Source(name="Source A", url=FEED_A, type="rss")
    a.id = insert_source(db_conn, a)
    b = Source(name="Source B", url=FEED_B, type="rss")
    b.id = insert_source(db_conn, b)
    # One of A's stories is already stored
    insert_article(db_conn, Article(title="Old", link=A_LINKS[3], source_name="Source A"))
    return a, b


async def _serve(url, config):
    if url == FEED_A:
        return _feed(A_LINKS)
    raise httpx.ConnectError("connection refused")


def test_job_id_format():
    assert re.fullmatch(r"job_\d+_[0-9a-f]{9}", new_job_id())


@pytest.mark.asyncio
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_bulk_fetch_isolates_failing_source(mock_fetch, db_conn, sample_config, two_sources):
    mock_fetch.side_effect = _serve
    a, b = two_sources

    result = await fetch_all_articles(db_conn, sample_config)

    assert result.total_sources == 2
    assert result.successful_sources == 1
    assert result.failed_sources == 1
    assert result.total_articles_found == 4
    assert result.total_articles_saved == 3
    by_name = {r.source_name: r for r in result.results}
    assert by_name["Source A"].skipped_duplicates == 1
    assert "connection refused" in by_name["Source B"].error

    status_a = get_source(db_conn, a.id).fetch_status
    assert status_a.last_fetch_status is SourceFetchState.SUCCESS
    assert status_a.last_fetch_message == "Found 4 articles, saved 3"
    assert status_a.last_fetch_saved_articles == 3

    status_b = get_source(db_conn, b.id).fetch_status
    assert status_b.last_fetch_status is SourceFetchState.ERROR
    assert "connection refused" in status_b.last_fetch_error

    log = get_fetch_log(db_conn, result.job_id)
    assert log.job_type is JobType.BULK
    assert log.status is RunStatus.PARTIAL
    assert log.end_time is not None
    assert [r.status for r in log.source_results] == [
        SourceRunState.SUCCESS, SourceRunState.FAILED,
    ]
    assert log.source_results[0].max_articles == 10
    assert log.summary.total_articles_saved == 3
    assert log.summary.total_duplicates_skipped == 1
    assert log.summary.total_articles_processed == 4
    assert log.summary.total_errors == 1
    assert log.job_errors[0].startswith("Source B: ")


@pytest.mark.asyncio
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_bulk_fetch_skips_inactive(mock_fetch, db_conn, sample_config, two_sources):
    mock_fetch.side_effect = _serve
    a, b = two_sources
    set_source_active(db_conn, b.id, False)

    result = await fetch_all_articles(db_conn, sample_config)

    assert [r.source_name for r in result.results] == ["Source A"]
    assert get_fetch_log(db_conn, result.job_id).status is RunStatus.COMPLETED
    assert get_source(db_conn, b.id).fetch_status.last_fetch_status is None


@pytest.mark.asyncio
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_user_limit_caps_each_source(mock_fetch, db_conn, sample_config, two_sources):
    mock_fetch.side_effect = _serve

    result = await fetch_all_articles(db_conn, sample_config, user_max=2)

    by_name = {r.source_name: r for r in result.results}
    assert by_name["Source A"].articles_processed == 2
    assert by_name["Source A"].articles_saved == 2
    log = get_fetch_log(db_conn, result.job_id)
    assert log.source_results[0].max_articles == 2


@pytest.mark.asyncio
async def test_no_active_sources_completes(db_conn, sample_config):
    result = await fetch_all_articles(db_conn, sample_config)

    assert result.total_sources == 0
    log = get_fetch_log(db_conn, result.job_id)
    assert log.status is RunStatus.COMPLETED
    assert log.total_sources == 0


@pytest.mark.asyncio
async def test_single_source_not_found_creates_no_log(db_conn, sample_config):
    with pytest.raises(SourceNotFoundError, match="Source not found: 999"):
        await fetch_articles_from_source(db_conn, sample_config, 999)
    assert list_fetch_logs(db_conn).total == 0


@pytest.mark.asyncio
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_single_fetch_runs_inactive_source(mock_fetch, db_conn, sample_config, two_sources):
    mock_fetch.side_effect = _serve
    a, _ = two_sources
    set_source_active(db_conn, a.id, False)

    result = await fetch_articles_from_source(db_conn, sample_config, a.id)

    assert result.total_sources == 1
    assert result.total_articles_saved == 3
    log = get_fetch_log(db_conn, result.job_id)
    assert log.job_type is JobType.SINGLE
    assert log.status is RunStatus.COMPLETED


@pytest.mark.asyncio
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_single_failing_source_marks_run_failed(mock_fetch, db_conn, sample_config, two_sources):
    mock_fetch.side_effect = _serve
    _, b = two_sources

    result = await fetch_articles_from_source(db_conn, sample_config, b.id)

    assert result.failed_sources == 1
    assert get_fetch_log(db_conn, result.job_id).status is RunStatus.FAILED


@pytest.mark.asyncio
async def test_unknown_source_type_fails_that_source(db_conn, sample_config):
    db_conn.execute(
        "INSERT INTO sources (name, url, type, is_active, created_at) VALUES (?, ?, ?, 1, ?)",
        ("Legacy", "https://legacy.example/atom", "atom", "2025-01-01T00:00:00+00:00"),
    )
    db_conn.commit()

    result = await fetch_all_articles(db_conn, sample_config)

    assert result.failed_sources == 1
    assert result.results[0].error == "Unknown source type: atom"
    assert get_fetch_log(db_conn, result.job_id).status is RunStatus.FAILED


@pytest.mark.asyncio
@patch("curator.orchestrator.update_source_status")
@patch("curator.fetch.rss.fetch_text", new_callable=AsyncMock)
async def test_infrastructure_error_marks_run_failed(
    mock_fetch, mock_update, db_conn, sample_config, two_sources,
):
    """Errors outside the per-source boundary fail the whole run and propagate."""
    mock_fetch.side_effect = _serve
    mock_update.side_effect = sqlite3.OperationalError("database is locked")
    orchestrator = ArticleFetchOrchestrator(db_conn, sample_config)

    with pytest.raises(sqlite3.OperationalError):
        await orchestrator.fetch_all_sources()

    log = get_fetch_log(db_conn, orchestrator.job_id)
    assert log.status is RunStatus.FAILED
    assert log.end_time is not None
    assert "database is locked" in log.job_errors[-1]


# --- Aggregation ---


def _source_result(status, saved=0, dups=0, errors=None):
    return SourceResult(
        source_id=1,
        source_name="S",
        status=status,
        total_articles=saved + dups,
        saved_articles=saved,
        skipped_duplicates=dups,
        execution_time_ms=10,
        errors=errors or [],
    )


def test_derive_run_status():
    ok = _source_result(SourceRunState.SUCCESS)
    bad = _source_result(SourceRunState.FAILED)
    assert derive_run_status([]) is RunStatus.COMPLETED
    assert derive_run_status([ok, ok]) is RunStatus.COMPLETED
    assert derive_run_status([ok, bad]) is RunStatus.PARTIAL
    assert derive_run_status([bad]) is RunStatus.FAILED


def test_summary_counts_every_error_message():
    results = [
        _source_result(SourceRunState.SUCCESS, saved=2, dups=1, errors=["item a", "item b"]),
        _source_result(SourceRunState.FAILED, errors=["timeout"]),
    ]
    summary = summarize_source_results(results, execution_time_ms=50)
    assert summary.total_articles_saved == 2
    assert summary.total_duplicates_skipped == 1
    assert summary.total_errors == 3
    assert summary.total_articles_processed == 3
    assert summary.execution_time_ms == 50
