"""CLI entrypoint: python -m curator <command> [options]."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import os
import sqlite3
import sys
from pathlib import Path

from curator.config import get_db_path, load_config
from curator.db import (
    LogFilter,
    delete_categorization_logs_older_than,
    delete_fetch_logs_older_than,
    delete_source,
    get_categorization_stats,
    get_connection,
    get_fetch_log_stats,
    get_source,
    init_db,
    insert_source,
    list_categorization_logs,
    list_fetch_logs,
    list_sources,
    set_source_active,
)
from curator.models import Source


def setup_logging(config: dict) -> None:
    """Configure logging with console + rotating file output."""
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    # Rotate at 5MB, keep 3 backups, next to the database
    log_dir = Path(get_db_path(config)).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        str(log_dir / "curator.log"), maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "trafilatura", "feedparser"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


logger = logging.getLogger("curator")


def _connect(config: dict) -> sqlite3.Connection:
    db_path = get_db_path(config)
    init_db(db_path)
    return get_connection(db_path)


def cmd_init_db(config: dict, args: argparse.Namespace) -> None:
    """Initialize the SQLite database."""
    db_path = get_db_path(config)
    init_db(db_path)
    print(f"Database initialized at {db_path}")


def cmd_sources(config: dict, args: argparse.Namespace) -> None:
    """List configured sources with their last fetch outcome."""
    conn = _connect(config)
    sources = list_sources(conn, active_only=args.active)
    conn.close()

    if not sources:
        print("No sources configured.")
        return

    print(f"{'ID':>4} {'Type':<5} {'Active':<7} {'Last status':<12} {'Saved':>5}  Name")
    print("-" * 70)
    for s in sources:
        status = s.fetch_status
        print(
            f"{s.id:>4} {s.type:<5} {'yes' if s.is_active else 'no':<7} "
            f"{status.last_fetch_status.value if status.last_fetch_status else '-':<12} "
            f"{status.last_fetch_saved_articles or 0:>5}  {s.name}"
        )


def cmd_add_source(config: dict, args: argparse.Namespace) -> None:
    conn = _connect(config)
    try:
        source_id = insert_source(
            conn, Source(name=args.name, url=args.url, type=args.type),
        )
    except sqlite3.IntegrityError:
        print("Error: a source with this name or URL already exists")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        conn.close()
    print(f"Added source #{source_id}: {args.name}")


def cmd_remove_source(config: dict, args: argparse.Namespace) -> None:
    conn = _connect(config)
    removed = delete_source(conn, args.source_id)
    conn.close()
    if not removed:
        print(f"Error: source #{args.source_id} not found")
        sys.exit(1)
    print(f"Removed source #{args.source_id} (its articles are kept)")


def cmd_toggle_source(config: dict, args: argparse.Namespace) -> None:
    conn = _connect(config)
    source = get_source(conn, args.source_id)
    if source is None:
        conn.close()
        print(f"Error: source #{args.source_id} not found")
        sys.exit(1)
    set_source_active(conn, source.id, not source.is_active)
    conn.close()
    print(f"Source #{source.id} is now {'inactive' if source.is_active else 'active'}")


async def cmd_fetch(config: dict, args: argparse.Namespace) -> None:
    """Fetch all active sources, or one source with --source."""
    from curator.fetch.report import format_job_summary
    from curator.orchestrator import (
        SourceNotFoundError,
        fetch_all_articles,
        fetch_articles_from_source,
    )

    conn = _connect(config)
    try:
        if args.source is not None:
            result = await fetch_articles_from_source(
                conn, config, args.source, args.max_articles,
            )
        else:
            result = await fetch_all_articles(conn, config, args.max_articles)
    except SourceNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        conn.close()

    print(format_job_summary(result))
    if result.total_sources and result.failed_sources == result.total_sources:
        sys.exit(1)


async def cmd_test_feed(config: dict, args: argparse.Namespace) -> None:
    """Check that a URL parses as a feed without saving anything."""
    from curator.fetch.rss import check_feed

    result = await check_feed(args.url, config)
    if not result["success"]:
        print(f"Feed test failed: {result['error']}")
        sys.exit(1)
    print(f"OK: {result['feed_title'] or '(untitled)'} ({result['item_count']} items)")


async def cmd_categorize(config: dict, args: argparse.Namespace) -> None:
    from curator.categorize import categorize_articles

    conn = _connect(config)
    try:
        run_log = await categorize_articles(
            conn, config, args.count, triggered_by=args.trigger,
        )
    finally:
        conn.close()

    print(
        f"Run #{run_log.id} {run_log.status.value}: "
        f"{run_log.total_articles_successful}/{run_log.total_articles_attempted} categorized, "
        f"{run_log.usage.total_tokens} tokens (${run_log.usage.estimated_cost_usd:.4f})"
    )
    for r in run_log.article_results:
        if r.status == "success":
            print(f"  #{r.article_id} {r.news_category} / {r.tech_category}  {r.title}")
        else:
            print(f"  #{r.article_id} FAILED: {r.error_message}")
    if run_log.total_articles_attempted and run_log.total_articles_successful == 0:
        sys.exit(1)


def cmd_review(config: dict, args: argparse.Namespace) -> None:
    """Apply reviewer categories to one article."""
    from curator.review import ArticleNotFoundError, review_article

    conn = _connect(config)
    try:
        outcome = review_article(
            conn,
            args.article_id,
            news_category=args.news,
            tech_category=args.tech,
            rationale=args.rationale,
            is_training_data=args.training,
        )
    except (ArticleNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        conn.close()

    cat = outcome.article.categorization
    print(f"Updated #{outcome.article.id}: {cat.news_category} / {cat.tech_category}")
    if outcome.correction_logged:
        print("Logged correction for analysis")


def cmd_corrections(config: dict, args: argparse.Namespace) -> None:
    from curator.review import analyze_corrections

    conn = _connect(config)
    analysis = analyze_corrections(conn)
    conn.close()

    if not analysis["total_corrections"]:
        print("No corrections recorded yet.")
        return

    print(f"Total corrections: {analysis['total_corrections']}")
    print(f"Most corrected source: {analysis['most_corrected_source']}")
    print("\nTop patterns:")
    for pattern, count in analysis["top_patterns"]:
        print(f"  {count:>4}  {pattern}")
    print("\nBy source:")
    for name, entry in analysis["source_breakdown"].items():
        print(
            f"  {name}: {entry.total_corrections} "
            f"(news {entry.news_corrections}, tech {entry.tech_corrections})"
        )


def cmd_logs(config: dict, args: argparse.Namespace) -> None:
    """Page through fetch or categorization run logs."""
    conn = _connect(config)
    log_filter = LogFilter(status=args.status, kind=args.kind, days=args.days)
    if args.categorization:
        page = list_categorization_logs(conn, log_filter, args.page, args.limit)
    else:
        page = list_fetch_logs(conn, log_filter, args.page, args.limit)
    conn.close()

    if not page.items:
        print("No logs found.")
        return

    for log in page.items:
        if args.categorization:
            print(
                f"#{log.id:<5} {log.status.value:<22} {log.triggered_by:<9} "
                f"{log.total_articles_successful}/{log.total_articles_attempted} "
                f"${log.usage.estimated_cost_usd:.4f}  {log.start_time:%Y-%m-%d %H:%M}"
            )
        else:
            print(
                f"{log.job_id:<32} {log.job_type.value:<6} {log.status.value:<10} "
                f"{log.summary.total_articles_saved:>4} saved "
                f"{log.summary.total_errors:>3} errors  {log.start_time:%Y-%m-%d %H:%M}"
            )
    print(f"\nPage {page.page}/{page.total_pages} ({page.total} total)")


def cmd_stats(config: dict, args: argparse.Namespace) -> None:
    """Show aggregate fetch and categorization stats."""
    conn = _connect(config)
    fetch = get_fetch_log_stats(conn, days=args.days or 7)
    cat = get_categorization_stats(conn, days=args.days or 30)
    conn.close()

    print(f"Fetch jobs (last {args.days or 7} days)")
    print(
        f"  {fetch['total_jobs']} jobs: {fetch['successful_jobs']} completed, "
        f"{fetch['partial_jobs']} partial, {fetch['failed_jobs']} failed "
        f"({fetch['success_rate']:.1f}% success)"
    )
    print(
        f"  {fetch['total_articles_saved']} saved, "
        f"{fetch['total_duplicates_skipped']} duplicates skipped, "
        f"avg {fetch['avg_execution_time_ms'] / 1000:.1f}s"
    )
    print(f"\nCategorization runs (last {args.days or 30} days)")
    print(
        f"  {cat['total_runs']} runs: {cat['total_articles_successful']}/"
        f"{cat['total_articles_attempted']} articles ({cat['success_rate']:.1f}%)"
    )
    print(f"  {cat['total_tokens']} tokens, ${cat['total_cost_usd']:.4f}")


def cmd_cleanup(config: dict, args: argparse.Namespace) -> None:
    conn = _connect(config)
    fetch_deleted = delete_fetch_logs_older_than(conn, args.days)
    cat_deleted = delete_categorization_logs_older_than(conn, args.days)
    conn.close()
    print(
        f"Deleted {fetch_deleted} fetch logs and {cat_deleted} categorization logs "
        f"older than {args.days} days"
    )


COMMANDS = {
    "init-db": cmd_init_db,
    "sources": cmd_sources,
    "add-source": cmd_add_source,
    "remove-source": cmd_remove_source,
    "toggle-source": cmd_toggle_source,
    "fetch": cmd_fetch,
    "test-feed": cmd_test_feed,
    "categorize": cmd_categorize,
    "review": cmd_review,
    "corrections": cmd_corrections,
    "logs": cmd_logs,
    "stats": cmd_stats,
    "cleanup": cmd_cleanup,
}


def _training_flag(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "y")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curator", description="Newsletter article curation pipeline",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database schema")

    p = sub.add_parser("sources", help="List sources")
    p.add_argument("--active", action="store_true", help="Only active sources")

    p = sub.add_parser("add-source", help="Register a source")
    p.add_argument("name")
    p.add_argument("url")
    p.add_argument("--type", choices=["rss", "html"], default="rss")

    p = sub.add_parser("remove-source", help="Delete a source")
    p.add_argument("source_id", type=int)

    p = sub.add_parser("toggle-source", help="Activate or deactivate a source")
    p.add_argument("source_id", type=int)

    p = sub.add_parser("fetch", help="Fetch articles")
    p.add_argument("--source", type=int, default=None, help="Fetch a single source by ID")
    p.add_argument("--max-articles", type=int, default=None)

    p = sub.add_parser("test-feed", help="Check that a URL parses as a feed")
    p.add_argument("url")

    p = sub.add_parser("categorize", help="Categorize pending articles")
    p.add_argument("--count", type=int, default=None)
    p.add_argument(
        "--trigger", choices=["manual", "scheduled", "api"], default="manual",
    )

    p = sub.add_parser("review", help="Set categories for an article")
    p.add_argument("article_id", type=int)
    p.add_argument("--news", default=None)
    p.add_argument("--tech", default=None)
    p.add_argument("--rationale", default=None)
    p.add_argument("--training", type=_training_flag, default=None)

    sub.add_parser("corrections", help="Analyze reviewer corrections")

    p = sub.add_parser("logs", help="List run logs")
    p.add_argument("--categorization", action="store_true")
    p.add_argument("--status", default=None)
    p.add_argument("--type", dest="kind", default=None, help="Job type or trigger")
    p.add_argument("--days", type=int, default=None)
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--limit", type=int, default=10)

    p = sub.add_parser("stats", help="Aggregate run stats")
    p.add_argument("--days", type=int, default=None)

    p = sub.add_parser("cleanup", help="Delete old run logs")
    p.add_argument("--days", type=int, default=30)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config(os.environ.get("CONFIG_PATH", "config.yaml"))
    setup_logging(config)
    handler = COMMANDS[args.command]

    try:
        if asyncio.iscoroutinefunction(handler):
            asyncio.run(handler(config, args))
        else:
            handler(config, args)
    except Exception:
        logger.exception("Command %s failed", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
