"""Fetch orchestrator: processors, saver and run log for one invocation."""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid

from curator.config import get_fetch_config
from curator.db import (
    get_source,
    insert_fetch_log,
    list_sources,
    save_fetch_log,
    update_source_status,
)
from curator.fetch import get_processor
from curator.fetch.base import describe_error
from curator.fetch.report import (
    derive_run_status,
    generate_job_result,
    log_job_completion,
    summarize_source_results,
    to_source_result,
)
from curator.fetch.saver import save_articles
from curator.limits import FAILSAFE_MAX_ARTICLES, calculate_max_articles
from curator.models import (
    FetchJobResult,
    FetchResult,
    FetchRunLog,
    FetchStatus,
    JobType,
    RunStatus,
    Source,
    SourceFetchState,
    utcnow,
)

logger = logging.getLogger(__name__)


class SourceNotFoundError(LookupError):
    """A single-source fetch named a source that does not exist."""


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ArticleFetchOrchestrator:
    """Runs one fetch job, sequentially, over one or many sources.

    The connection is owned by the caller. Failures inside a source are
    recorded on that source's result; anything escaping the per-source
    boundary marks the run failed and is re-raised.
    """

    def __init__(self, conn: sqlite3.Connection, config: dict):
        self.conn = conn
        self.config = config
        self.job_id = new_job_id()
        self.start_time = utcnow()
        self._started = time.monotonic()
        self.results: list[FetchResult] = []
        self._processed: list[int] = []
        self.fetch_log: FetchRunLog | None = None

    def max_articles(self, user_max: int | None) -> int:
        default = get_fetch_config(self.config)["default_max_articles"]
        limit = calculate_max_articles(user_max, default)
        logger.info(
            "[%s] Article limit per source: %d (requested: %s, failsafe: %d)",
            self.job_id, limit, user_max or "default", FAILSAFE_MAX_ARTICLES,
        )
        return limit

    async def fetch_all_sources(self, user_max: int | None = None) -> FetchJobResult:
        """Fetch every active source."""
        max_articles = self.max_articles(user_max)
        logger.info("[%s] Starting bulk article fetch", self.job_id)

        try:
            sources = list_sources(self.conn, active_only=True)
            logger.info("[%s] Found %d active sources", self.job_id, len(sources))
            self._initialize_log(JobType.BULK, len(sources))

            if not sources:
                logger.warning("[%s] No active sources found", self.job_id)

            for source in sources:
                await self._process_source(source, max_articles)

            return self._finalize(JobType.BULK)
        except Exception as exc:
            self._mark_failed(exc)
            raise

    async def fetch_single_source(
        self, source_id: int, user_max: int | None = None,
    ) -> FetchJobResult:
        """Fetch one source by ID, whether or not it is active."""
        max_articles = self.max_articles(user_max)
        logger.info("[%s] Starting single source fetch for #%s", self.job_id, source_id)

        source = get_source(self.conn, source_id)
        if source is None:
            raise SourceNotFoundError(f"Source not found: {source_id}")

        try:
            self._initialize_log(JobType.SINGLE, 1)
            if not source.is_active:
                logger.warning("[%s] Source is inactive: %s", self.job_id, source.name)

            await self._process_source(source, max_articles)
            return self._finalize(JobType.SINGLE)
        except Exception as exc:
            self._mark_failed(exc)
            raise

    async def _process_source(self, source: Source, max_articles: int) -> None:
        started = time.monotonic()
        logger.info(
            "[%s] Processing source: %s (%s)", self.job_id, source.name, source.type,
        )
        try:
            result = await self._fetch_and_save(source, max_articles, started)
        except Exception as exc:
            logger.exception("[%s] %s failed", self.job_id, source.name)
            result = FetchResult(
                source_id=source.id,
                source_name=source.name,
                success=False,
                error=describe_error(exc),
                duration_ms=_elapsed_ms(started),
            )

        if result.success:
            logger.info(
                "[%s] %s: %d articles saved", self.job_id, source.name, result.articles_saved,
            )
        else:
            logger.error("[%s] %s failed: %s", self.job_id, source.name, result.error)

        self._update_source_status(source, result)
        self._record(result, max_articles)
        self.results.append(result)

    async def _fetch_and_save(
        self, source: Source, max_articles: int, started: float,
    ) -> FetchResult:
        processor = get_processor(source.type, self.config)
        fetched = await processor.fetch(source, self.job_id, max_articles)

        if not fetched.success:
            return FetchResult(
                source_id=source.id,
                source_name=source.name,
                success=False,
                error=fetched.error or f"{processor.name} fetch failed",
                duration_ms=_elapsed_ms(started),
            )

        saved = save_articles(
            self.conn, fetched.articles, source.id, source.name, self.job_id,
        )
        return FetchResult(
            source_id=source.id,
            source_name=source.name,
            success=True,
            articles_found=fetched.total_items,
            articles_processed=len(fetched.articles),
            articles_saved=saved.saved_articles,
            skipped_duplicates=saved.skipped_duplicates,
            errors=saved.errors,
            duration_ms=_elapsed_ms(started),
        )

    def _update_source_status(self, source: Source, result: FetchResult) -> None:
        if result.success:
            status = FetchStatus(
                last_fetched_at=utcnow(),
                last_fetch_status=SourceFetchState.SUCCESS,
                last_fetch_message=(
                    f"Found {result.articles_found} articles, saved {result.articles_saved}"
                ),
                last_fetch_saved_articles=result.articles_saved,
            )
        else:
            status = FetchStatus(
                last_fetched_at=utcnow(),
                last_fetch_status=SourceFetchState.ERROR,
                last_fetch_message=result.error,
                last_fetch_error=result.error,
                last_fetch_saved_articles=result.articles_saved,
            )
        update_source_status(self.conn, source.id, status)

    def _initialize_log(self, job_type: JobType, total_sources: int) -> None:
        self.fetch_log = FetchRunLog(
            job_id=self.job_id,
            job_type=job_type,
            total_sources=total_sources,
            start_time=self.start_time,
        )
        self.fetch_log.id = insert_fetch_log(self.conn, self.fetch_log)
        logger.info("[%s] Fetch log initialized for %s job", self.job_id, job_type.value)

    def _record(self, result: FetchResult, max_articles: int) -> None:
        log = self.fetch_log
        log.source_results.append(to_source_result(result, max_articles))
        self._processed.append(result.articles_processed)
        log.summary = summarize_source_results(
            log.source_results, self._processed, _elapsed_ms(self._started),
        )
        if not result.success:
            log.job_errors.append(f"{result.source_name}: {result.error}")
        save_fetch_log(self.conn, log)

    def _finalize(self, job_type: JobType) -> FetchJobResult:
        log = self.fetch_log
        log.end_time = utcnow()
        log.summary.execution_time_ms = _elapsed_ms(self._started)
        log.status = derive_run_status(log.source_results)
        save_fetch_log(self.conn, log)
        logger.info("[%s] Fetch log finalized with status: %s", self.job_id, log.status.value)

        job_result = generate_job_result(self.job_id, self.start_time, self.results)
        log_job_completion(job_result, job_type.value)
        return job_result

    def _mark_failed(self, exc: Exception) -> None:
        logger.error("[%s] Fetch job failed: %s", self.job_id, exc)
        log = self.fetch_log
        if log is None:
            return
        log.status = RunStatus.FAILED
        log.end_time = utcnow()
        log.summary.execution_time_ms = _elapsed_ms(self._started)
        log.job_errors.append(describe_error(exc))
        try:
            save_fetch_log(self.conn, log)
        except Exception:
            logger.exception("[%s] Could not persist failed status", self.job_id)


async def fetch_all_articles(
    conn: sqlite3.Connection, config: dict, user_max: int | None = None,
) -> FetchJobResult:
    return await ArticleFetchOrchestrator(conn, config).fetch_all_sources(user_max)


async def fetch_articles_from_source(
    conn: sqlite3.Connection,
    config: dict,
    source_id: int,
    user_max: int | None = None,
) -> FetchJobResult:
    return await ArticleFetchOrchestrator(conn, config).fetch_single_source(source_id, user_max)
