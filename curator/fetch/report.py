"""Fetch job results, run-log aggregation and console summaries."""

from __future__ import annotations

import logging
from datetime import datetime

from curator.models import (
    FetchJobResult,
    FetchResult,
    FetchRunSummary,
    RunStatus,
    SourceResult,
    SourceRunState,
    utcnow,
)

logger = logging.getLogger(__name__)


def to_source_result(result: FetchResult, max_articles: int | None = None) -> SourceResult:
    """Run-log entry for one source outcome."""
    errors = list(result.errors)
    if result.error:
        errors.insert(0, result.error)
    return SourceResult(
        source_id=result.source_id,
        source_name=result.source_name,
        status=SourceRunState.SUCCESS if result.success else SourceRunState.FAILED,
        max_articles=max_articles,
        total_articles=result.articles_found,
        saved_articles=result.articles_saved,
        skipped_duplicates=result.skipped_duplicates,
        errors=errors,
        execution_time_ms=result.duration_ms,
    )


def summarize_source_results(
    source_results: list[SourceResult],
    processed: list[int] | None = None,
    execution_time_ms: int = 0,
) -> FetchRunSummary:
    """Element-wise totals over the per-source entries.

    ``processed`` gives the post-cap article count per source; without it
    the found count stands in.
    """
    if processed is None:
        processed = [r.total_articles for r in source_results]
    return FetchRunSummary(
        total_articles_processed=sum(processed),
        total_articles_saved=sum(r.saved_articles for r in source_results),
        total_duplicates_skipped=sum(r.skipped_duplicates for r in source_results),
        total_errors=sum(len(r.errors) for r in source_results),
        execution_time_ms=execution_time_ms,
    )


def derive_run_status(source_results: list[SourceResult]) -> RunStatus:
    failed = sum(1 for r in source_results if r.status is SourceRunState.FAILED)
    succeeded = len(source_results) - failed
    if failed == 0:
        return RunStatus.COMPLETED
    if succeeded == 0:
        return RunStatus.FAILED
    return RunStatus.PARTIAL


def generate_job_result(
    job_id: str, start_time: datetime, results: list[FetchResult],
) -> FetchJobResult:
    end_time = utcnow()
    successful = [r for r in results if r.success]
    return FetchJobResult(
        job_id=job_id,
        start_time=start_time,
        end_time=end_time,
        total_sources=len(results),
        successful_sources=len(successful),
        failed_sources=len(results) - len(successful),
        total_articles_found=sum(r.articles_found for r in results),
        total_articles_saved=sum(r.articles_saved for r in results),
        duration_ms=int((end_time - start_time).total_seconds() * 1000),
        results=list(results),
    )


def format_job_summary(result: FetchJobResult) -> str:
    rate = (
        result.successful_sources / result.total_sources * 100
        if result.total_sources else 0.0
    )
    lines = [
        f"Job summary [{result.job_id}]",
        f"  Duration: {result.duration_ms / 1000:.2f}s",
        f"  Sources:  {result.successful_sources}/{result.total_sources} successful ({rate:.1f}%)",
        f"  Articles: {result.total_articles_saved} saved from {result.total_articles_found} found",
    ]
    if result.failed_sources:
        lines.append(f"  Failed sources: {result.failed_sources}")
    return "\n".join(lines)


def format_detailed_results(result: FetchJobResult) -> str:
    lines = [f"Detailed results for job [{result.job_id}]", "=" * 50]
    for i, r in enumerate(result.results, 1):
        mark = "OK  " if r.success else "FAIL"
        lines.append(f"{i}. {mark} {r.source_name}")
        lines.append(f"   Duration: {r.duration_ms / 1000:.2f}s")
        if r.success:
            lines.append(f"   Articles: {r.articles_saved} saved / {r.articles_found} found")
        else:
            lines.append(f"   Error: {r.error}")
    return "\n".join(lines)


def log_job_completion(result: FetchJobResult, job_type: str = "bulk") -> None:
    logger.info(
        "%s fetch job completed\n%s",
        "Bulk" if job_type == "bulk" else "Single",
        format_job_summary(result),
    )
    if result.total_sources > 1:
        logger.info("%s", format_detailed_results(result))
