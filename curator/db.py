"""SQLite database schema and query helpers."""

from __future__ import annotations

import json
import math
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from curator.models import (
    SOURCE_TYPES,
    Article,
    Categorization,
    CategorizationRunLog,
    CategoryCorrection,
    CategoryResult,
    FetchRunLog,
    FetchRunSummary,
    FetchStatus,
    LLMUsage,
    Source,
    SourceResult,
    utcnow,
)

SCHEMA_VERSION = 1

MAX_PAGE_SIZE = 50

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS sources (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    url TEXT UNIQUE NOT NULL,
    type TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    last_fetched_at TEXT,
    last_fetch_status TEXT,
    last_fetch_message TEXT,
    last_fetch_error TEXT,
    last_fetch_saved_articles INTEGER,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    link TEXT UNIQUE NOT NULL,
    source_name TEXT NOT NULL,
    published_date TEXT,
    meta_description TEXT NOT NULL DEFAULT '',
    guid TEXT,
    fetched_at TEXT NOT NULL,
    categorization_status TEXT NOT NULL DEFAULT 'pending',
    news_category TEXT,
    tech_category TEXT,
    rationale TEXT,
    categorized_at TEXT,
    is_training_data INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS fetch_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT UNIQUE NOT NULL,
    job_type TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    status TEXT NOT NULL DEFAULT 'running',
    total_sources INTEGER NOT NULL DEFAULT 0,
    source_results TEXT NOT NULL DEFAULT '[]',
    total_articles_processed INTEGER NOT NULL DEFAULT 0,
    total_articles_saved INTEGER NOT NULL DEFAULT 0,
    total_duplicates_skipped INTEGER NOT NULL DEFAULT 0,
    total_errors INTEGER NOT NULL DEFAULT 0,
    execution_time_ms INTEGER NOT NULL DEFAULT 0,
    job_errors TEXT NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS categorization_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time TEXT NOT NULL,
    end_time TEXT,
    status TEXT NOT NULL DEFAULT 'in_progress',
    processing_time_ms INTEGER,
    triggered_by TEXT NOT NULL DEFAULT 'manual',
    article_limit INTEGER NOT NULL,
    batch_size INTEGER NOT NULL,
    total_articles_attempted INTEGER NOT NULL DEFAULT 0,
    total_articles_successful INTEGER NOT NULL DEFAULT 0,
    total_articles_failed INTEGER NOT NULL DEFAULT 0,
    news_category_distribution TEXT NOT NULL DEFAULT '{}',
    tech_category_distribution TEXT NOT NULL DEFAULT '{}',
    prompt_tokens INTEGER NOT NULL DEFAULT 0,
    completion_tokens INTEGER NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0,
    estimated_cost_usd REAL NOT NULL DEFAULT 0.0,
    model_used TEXT NOT NULL DEFAULT '',
    article_results TEXT NOT NULL DEFAULT '[]',
    processing_errors TEXT NOT NULL DEFAULT '[]',
    model TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS category_corrections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    source TEXT NOT NULL,
    description TEXT,
    ai_news TEXT,
    ai_tech TEXT,
    ai_rationale TEXT,
    human_news TEXT,
    human_tech TEXT,
    human_rationale TEXT,
    corrected_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_articles_guid ON articles(guid) WHERE guid IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(categorization_status);
CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_date);
CREATE INDEX IF NOT EXISTS idx_sources_active ON sources(is_active);
CREATE INDEX IF NOT EXISTS idx_fetch_logs_status ON fetch_logs(status, start_time);
CREATE INDEX IF NOT EXISTS idx_fetch_logs_type ON fetch_logs(job_type, start_time);
CREATE INDEX IF NOT EXISTS idx_categorization_logs_start ON categorization_logs(start_time);
CREATE INDEX IF NOT EXISTS idx_corrections_corrected_at ON category_corrections(corrected_at);
"""


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a SQLite connection with WAL mode enabled."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create all tables and set schema version."""
    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()
    finally:
        conn.close()


def _dt_str(dt: datetime | None) -> str | None:
    """Serialize as UTC ISO-8601 so stored values sort lexically."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_dt(s: str | None) -> datetime | None:
    if s is None:
        return None
    return datetime.fromisoformat(s)


def _cutoff(days: int) -> str:
    return _dt_str(utcnow() - timedelta(days=days))


# --- Query filters ---


@dataclass
class LogFilter:
    """Optional predicates for log listings.

    ``kind`` is the job type for fetch logs and the trigger for
    categorization logs.
    """

    status: str | None = None
    kind: str | None = None
    days: int | None = None

    def where(self, kind_column: str) -> tuple[str, list]:
        predicates = [
            _eq("status", self.status),
            _eq(kind_column, self.kind),
            _since("start_time", self.days),
        ]
        return _combine(predicates)


def _eq(column: str, value) -> tuple[str, list] | None:
    if value is None or value == "":
        return None
    return f"{column} = ?", [value]


def _since(column: str, days: int | None) -> tuple[str, list] | None:
    if not days:
        return None
    return f"{column} >= ?", [_cutoff(days)]


def _combine(predicates: list[tuple[str, list] | None]) -> tuple[str, list]:
    """AND together the predicates that are set."""
    active = [p for p in predicates if p is not None]
    if not active:
        return "", []
    clause = " WHERE " + " AND ".join(sql for sql, _ in active)
    params = [v for _, values in active for v in values]
    return clause, params


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def _paginate(
    conn: sqlite3.Connection,
    table: str,
    where: tuple[str, list],
    page: int,
    limit: int,
) -> tuple[list[sqlite3.Row], int, int, int]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    clause, params = where
    total = conn.execute(
        f"SELECT COUNT(*) FROM {table}{clause}", params,
    ).fetchone()[0]
    rows = conn.execute(
        f"SELECT * FROM {table}{clause} ORDER BY start_time DESC LIMIT ? OFFSET ?",
        [*params, limit, (page - 1) * limit],
    ).fetchall()
    return rows, total, page, limit


# --- Source helpers ---


def insert_source(conn: sqlite3.Connection, source: Source) -> int:
    """Insert a source, returning its ID.

    Raises ValueError for an unknown type and sqlite3.IntegrityError when the
    name or URL is already registered.
    """
    if source.type not in SOURCE_TYPES:
        raise ValueError(f"Invalid source type: {source.type}")
    if not source.name or not source.url:
        raise ValueError("Source name and url are required")
    cur = conn.execute(
        "INSERT INTO sources (name, url, type, is_active, created_at) VALUES (?, ?, ?, ?, ?)",
        (source.name.strip(), source.url.strip(), source.type, int(source.is_active), _dt_str(utcnow())),
    )
    conn.commit()
    return cur.lastrowid


def get_source(conn: sqlite3.Connection, source_id: int) -> Source | None:
    row = conn.execute("SELECT * FROM sources WHERE id = ?", (source_id,)).fetchone()
    return _row_to_source(row) if row else None


def list_sources(conn: sqlite3.Connection, active_only: bool = False) -> list[Source]:
    """Fetch sources in creation order."""
    sql = "SELECT * FROM sources"
    if active_only:
        sql += " WHERE is_active = 1"
    rows = conn.execute(sql + " ORDER BY id").fetchall()
    return [_row_to_source(row) for row in rows]


def update_source_status(conn: sqlite3.Connection, source_id: int, status: FetchStatus) -> None:
    """Overwrite the last-fetch fields of a source."""
    conn.execute(
        """UPDATE sources SET
           last_fetched_at = ?, last_fetch_status = ?, last_fetch_message = ?,
           last_fetch_error = ?, last_fetch_saved_articles = ?
           WHERE id = ?""",
        (
            _dt_str(status.last_fetched_at),
            status.last_fetch_status.value if status.last_fetch_status else None,
            status.last_fetch_message,
            status.last_fetch_error,
            status.last_fetch_saved_articles,
            source_id,
        ),
    )
    conn.commit()


def set_source_active(conn: sqlite3.Connection, source_id: int, active: bool) -> bool:
    cur = conn.execute(
        "UPDATE sources SET is_active = ? WHERE id = ?", (int(active), source_id),
    )
    conn.commit()
    return cur.rowcount > 0


def delete_source(conn: sqlite3.Connection, source_id: int) -> bool:
    """Delete a source. Its articles are kept."""
    cur = conn.execute("DELETE FROM sources WHERE id = ?", (source_id,))
    conn.commit()
    return cur.rowcount > 0


def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        type=row["type"],
        is_active=bool(row["is_active"]),
        fetch_status=FetchStatus(
            last_fetched_at=_parse_dt(row["last_fetched_at"]),
            last_fetch_status=row["last_fetch_status"],
            last_fetch_message=row["last_fetch_message"],
            last_fetch_error=row["last_fetch_error"],
            last_fetch_saved_articles=row["last_fetch_saved_articles"],
        ),
    )


# --- Article helpers ---


def find_duplicate_article(
    conn: sqlite3.Connection, link: str, guid: str | None = None,
) -> int | None:
    """Return the ID of an article matching the link (or guid, when given)."""
    if guid:
        row = conn.execute(
            "SELECT id FROM articles WHERE link = ? OR guid = ? LIMIT 1", (link, guid),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT id FROM articles WHERE link = ? LIMIT 1", (link,),
        ).fetchone()
    return row["id"] if row else None


def insert_article(conn: sqlite3.Connection, article: Article) -> int:
    """Insert an article, returning its ID.

    Unlike a silent upsert, a duplicate link or guid raises
    sqlite3.IntegrityError so callers can record it.
    """
    cat = article.categorization
    try:
        cur = conn.execute(
            """INSERT INTO articles
               (title, link, source_name, published_date, meta_description, guid,
                fetched_at, categorization_status, news_category, tech_category,
                rationale, categorized_at, is_training_data)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                article.title.strip(),
                article.link.strip(),
                article.source_name,
                _dt_str(article.published_date),
                (article.meta_description or "").strip(),
                article.guid,
                _dt_str(article.fetched_at),
                cat.status.value,
                cat.news_category,
                cat.tech_category,
                cat.rationale,
                _dt_str(cat.categorized_at),
                int(cat.is_training_data),
            ),
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return cur.lastrowid


def get_article(conn: sqlite3.Connection, article_id: int) -> Article | None:
    row = conn.execute("SELECT * FROM articles WHERE id = ?", (article_id,)).fetchone()
    return _row_to_article(row) if row else None


def get_articles_by_source(conn: sqlite3.Connection, source_name: str) -> list[Article]:
    rows = conn.execute(
        "SELECT * FROM articles WHERE source_name = ? ORDER BY id", (source_name,),
    ).fetchall()
    return [_row_to_article(row) for row in rows]


def get_pending_articles(conn: sqlite3.Connection, limit: int) -> list[Article]:
    """Pending articles, newest published first."""
    rows = conn.execute(
        """SELECT * FROM articles WHERE categorization_status = 'pending'
           ORDER BY published_date DESC, id DESC LIMIT ?""",
        (limit,),
    ).fetchall()
    return [_row_to_article(row) for row in rows]


def set_categorization_status(
    conn: sqlite3.Connection,
    article_ids: list[int],
    status: str,
    rationale: str | None = None,
) -> None:
    """Bulk status transition, optionally stamping a rationale."""
    if not article_ids:
        return
    placeholders = ",".join("?" for _ in article_ids)
    if rationale is None:
        conn.execute(
            f"UPDATE articles SET categorization_status = ? WHERE id IN ({placeholders})",
            [status, *article_ids],
        )
    else:
        conn.execute(
            f"""UPDATE articles SET categorization_status = ?, rationale = ?
                WHERE id IN ({placeholders})""",
            [status, rationale, *article_ids],
        )
    conn.commit()


def fail_processing_articles(
    conn: sqlite3.Connection, article_ids: list[int], rationale: str,
) -> int:
    """Mark whichever of ``article_ids`` are still processing as failed."""
    if not article_ids:
        return 0
    placeholders = ",".join("?" for _ in article_ids)
    cur = conn.execute(
        f"""UPDATE articles SET categorization_status = 'failed', rationale = ?
            WHERE categorization_status = 'processing' AND id IN ({placeholders})""",
        [rationale, *article_ids],
    )
    conn.commit()
    return cur.rowcount


def update_article_categorization(
    conn: sqlite3.Connection, article_id: int, categorization: Categorization,
) -> None:
    conn.execute(
        """UPDATE articles SET
           categorization_status = ?, news_category = ?, tech_category = ?,
           rationale = ?, categorized_at = ?, is_training_data = ?
           WHERE id = ?""",
        (
            categorization.status.value,
            categorization.news_category,
            categorization.tech_category,
            categorization.rationale,
            _dt_str(categorization.categorized_at),
            int(categorization.is_training_data),
            article_id,
        ),
    )
    conn.commit()


def _row_to_article(row: sqlite3.Row) -> Article:
    return Article(
        id=row["id"],
        title=row["title"],
        link=row["link"],
        source_name=row["source_name"],
        published_date=_parse_dt(row["published_date"]),
        meta_description=row["meta_description"],
        guid=row["guid"],
        fetched_at=_parse_dt(row["fetched_at"]),
        categorization=Categorization(
            status=row["categorization_status"],
            news_category=row["news_category"],
            tech_category=row["tech_category"],
            rationale=row["rationale"],
            categorized_at=_parse_dt(row["categorized_at"]),
            is_training_data=bool(row["is_training_data"]),
        ),
    )


# --- Fetch log helpers ---


def _source_result_dict(result: SourceResult) -> dict:
    return {
        "source_id": result.source_id,
        "source_name": result.source_name,
        "status": result.status.value,
        "max_articles": result.max_articles,
        "total_articles": result.total_articles,
        "saved_articles": result.saved_articles,
        "skipped_duplicates": result.skipped_duplicates,
        "errors": list(result.errors),
        "execution_time_ms": result.execution_time_ms,
    }


def insert_fetch_log(conn: sqlite3.Connection, log: FetchRunLog) -> int:
    cur = conn.execute(
        """INSERT INTO fetch_logs (job_id, job_type, start_time, status, total_sources)
           VALUES (?, ?, ?, ?, ?)""",
        (log.job_id, log.job_type.value, _dt_str(log.start_time), log.status.value, log.total_sources),
    )
    conn.commit()
    return cur.lastrowid


def save_fetch_log(conn: sqlite3.Connection, log: FetchRunLog) -> None:
    """Persist the current state of a fetch log."""
    summary = log.summary
    conn.execute(
        """UPDATE fetch_logs SET
           end_time = ?, status = ?, total_sources = ?, source_results = ?,
           total_articles_processed = ?, total_articles_saved = ?,
           total_duplicates_skipped = ?, total_errors = ?, execution_time_ms = ?,
           job_errors = ?
           WHERE job_id = ?""",
        (
            _dt_str(log.end_time),
            log.status.value,
            log.total_sources,
            json.dumps([_source_result_dict(r) for r in log.source_results]),
            summary.total_articles_processed,
            summary.total_articles_saved,
            summary.total_duplicates_skipped,
            summary.total_errors,
            summary.execution_time_ms,
            json.dumps(log.job_errors),
            log.job_id,
        ),
    )
    conn.commit()


def get_fetch_log(conn: sqlite3.Connection, job_id: str) -> FetchRunLog | None:
    row = conn.execute("SELECT * FROM fetch_logs WHERE job_id = ?", (job_id,)).fetchone()
    return _row_to_fetch_log(row) if row else None


def list_fetch_logs(
    conn: sqlite3.Connection,
    log_filter: LogFilter | None = None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    """Newest-first page of fetch logs."""
    log_filter = log_filter or LogFilter()
    rows, total, page, limit = _paginate(
        conn, "fetch_logs", log_filter.where("job_type"), page, limit,
    )
    return Page(items=[_row_to_fetch_log(r) for r in rows], total=total, page=page, limit=limit)


def get_fetch_log_stats(conn: sqlite3.Connection, days: int = 7) -> dict:
    """Aggregate fetch job stats over a trailing window."""
    row = conn.execute(
        """SELECT
             COUNT(*) AS total_jobs,
             COALESCE(SUM(status = 'completed'), 0) AS successful_jobs,
             COALESCE(SUM(status = 'failed'), 0) AS failed_jobs,
             COALESCE(SUM(status = 'partial'), 0) AS partial_jobs,
             COALESCE(SUM(total_articles_saved), 0) AS total_articles_saved,
             COALESCE(SUM(total_duplicates_skipped), 0) AS total_duplicates_skipped,
             COALESCE(AVG(execution_time_ms), 0) AS avg_execution_time_ms
           FROM fetch_logs WHERE start_time >= ?""",
        (_cutoff(days),),
    ).fetchone()
    stats = dict(row)
    total = stats["total_jobs"]
    stats["success_rate"] = (stats["successful_jobs"] / total * 100) if total else 0.0
    return stats


def delete_fetch_logs_older_than(conn: sqlite3.Connection, days: int = 30) -> int:
    cur = conn.execute("DELETE FROM fetch_logs WHERE start_time < ?", (_cutoff(days),))
    conn.commit()
    return cur.rowcount


def _row_to_fetch_log(row: sqlite3.Row) -> FetchRunLog:
    return FetchRunLog(
        id=row["id"],
        job_id=row["job_id"],
        job_type=row["job_type"],
        total_sources=row["total_sources"],
        start_time=_parse_dt(row["start_time"]),
        end_time=_parse_dt(row["end_time"]),
        status=row["status"],
        source_results=[SourceResult(**r) for r in json.loads(row["source_results"])],
        summary=FetchRunSummary(
            total_articles_processed=row["total_articles_processed"],
            total_articles_saved=row["total_articles_saved"],
            total_duplicates_skipped=row["total_duplicates_skipped"],
            total_errors=row["total_errors"],
            execution_time_ms=row["execution_time_ms"],
        ),
        job_errors=json.loads(row["job_errors"]),
    )


# --- Categorization log helpers ---


def insert_categorization_log(conn: sqlite3.Connection, log: CategorizationRunLog) -> int:
    cur = conn.execute(
        """INSERT INTO categorization_logs
           (start_time, status, triggered_by, article_limit, batch_size,
            news_category_distribution, tech_category_distribution, model)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            _dt_str(log.start_time),
            log.status.value,
            log.triggered_by,
            log.article_limit,
            log.batch_size,
            json.dumps(log.news_category_distribution),
            json.dumps(log.tech_category_distribution),
            log.model,
        ),
    )
    conn.commit()
    return cur.lastrowid


def save_categorization_log(conn: sqlite3.Connection, log: CategorizationRunLog) -> None:
    usage = log.usage
    conn.execute(
        """UPDATE categorization_logs SET
           end_time = ?, status = ?, processing_time_ms = ?,
           total_articles_attempted = ?, total_articles_successful = ?,
           total_articles_failed = ?, news_category_distribution = ?,
           tech_category_distribution = ?, prompt_tokens = ?, completion_tokens = ?,
           total_tokens = ?, estimated_cost_usd = ?, model_used = ?,
           article_results = ?, processing_errors = ?
           WHERE id = ?""",
        (
            _dt_str(log.end_time),
            log.status.value,
            log.processing_time_ms,
            log.total_articles_attempted,
            log.total_articles_successful,
            log.total_articles_failed,
            json.dumps(log.news_category_distribution),
            json.dumps(log.tech_category_distribution),
            usage.prompt_tokens,
            usage.completion_tokens,
            usage.total_tokens,
            usage.estimated_cost_usd,
            usage.model_used,
            json.dumps([vars(r) for r in log.article_results]),
            json.dumps(log.processing_errors),
            log.id,
        ),
    )
    conn.commit()


def get_categorization_log(conn: sqlite3.Connection, log_id: int) -> CategorizationRunLog | None:
    row = conn.execute("SELECT * FROM categorization_logs WHERE id = ?", (log_id,)).fetchone()
    return _row_to_categorization_log(row) if row else None


def list_categorization_logs(
    conn: sqlite3.Connection,
    log_filter: LogFilter | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    log_filter = log_filter or LogFilter()
    rows, total, page, limit = _paginate(
        conn, "categorization_logs", log_filter.where("triggered_by"), page, limit,
    )
    return Page(
        items=[_row_to_categorization_log(r) for r in rows], total=total, page=page, limit=limit,
    )


def get_categorization_stats(conn: sqlite3.Connection, days: int = 30) -> dict:
    row = conn.execute(
        """SELECT
             COUNT(*) AS total_runs,
             COALESCE(SUM(total_articles_attempted), 0) AS total_articles_attempted,
             COALESCE(SUM(total_articles_successful), 0) AS total_articles_successful,
             COALESCE(SUM(total_articles_failed), 0) AS total_articles_failed,
             COALESCE(SUM(total_tokens), 0) AS total_tokens,
             COALESCE(SUM(estimated_cost_usd), 0.0) AS total_cost_usd,
             COALESCE(AVG(processing_time_ms), 0) AS avg_processing_time_ms
           FROM categorization_logs WHERE start_time >= ?""",
        (_cutoff(days),),
    ).fetchone()
    stats = dict(row)
    attempted = stats["total_articles_attempted"]
    stats["success_rate"] = (
        stats["total_articles_successful"] / attempted * 100 if attempted else 0.0
    )
    return stats


def delete_categorization_logs_older_than(conn: sqlite3.Connection, days: int = 30) -> int:
    cur = conn.execute(
        "DELETE FROM categorization_logs WHERE start_time < ?", (_cutoff(days),),
    )
    conn.commit()
    return cur.rowcount


def _row_to_categorization_log(row: sqlite3.Row) -> CategorizationRunLog:
    return CategorizationRunLog(
        id=row["id"],
        start_time=_parse_dt(row["start_time"]),
        end_time=_parse_dt(row["end_time"]),
        status=row["status"],
        processing_time_ms=row["processing_time_ms"],
        triggered_by=row["triggered_by"],
        article_limit=row["article_limit"],
        batch_size=row["batch_size"],
        total_articles_attempted=row["total_articles_attempted"],
        total_articles_successful=row["total_articles_successful"],
        total_articles_failed=row["total_articles_failed"],
        news_category_distribution=json.loads(row["news_category_distribution"]),
        tech_category_distribution=json.loads(row["tech_category_distribution"]),
        usage=LLMUsage(
            prompt_tokens=row["prompt_tokens"],
            completion_tokens=row["completion_tokens"],
            total_tokens=row["total_tokens"],
            estimated_cost_usd=row["estimated_cost_usd"],
            model_used=row["model_used"],
        ),
        article_results=[CategoryResult(**r) for r in json.loads(row["article_results"])],
        processing_errors=json.loads(row["processing_errors"]),
        model=row["model"],
    )


# --- Correction helpers ---


def insert_correction(conn: sqlite3.Connection, correction: CategoryCorrection) -> int:
    cur = conn.execute(
        """INSERT INTO category_corrections
           (title, source, description, ai_news, ai_tech, ai_rationale,
            human_news, human_tech, human_rationale, corrected_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            correction.title,
            correction.source,
            correction.description,
            correction.ai_news,
            correction.ai_tech,
            correction.ai_rationale,
            correction.human_news,
            correction.human_tech,
            correction.human_rationale,
            _dt_str(correction.corrected_at),
        ),
    )
    conn.commit()
    return cur.lastrowid


def get_corrections(conn: sqlite3.Connection) -> list[CategoryCorrection]:
    """All corrections, most recent first."""
    rows = conn.execute(
        "SELECT * FROM category_corrections ORDER BY corrected_at DESC, id DESC",
    ).fetchall()
    return [
        CategoryCorrection(
            id=row["id"],
            title=row["title"],
            source=row["source"],
            description=row["description"],
            ai_news=row["ai_news"],
            ai_tech=row["ai_tech"],
            ai_rationale=row["ai_rationale"],
            human_news=row["human_news"],
            human_tech=row["human_tech"],
            human_rationale=row["human_rationale"],
            corrected_at=_parse_dt(row["corrected_at"]),
        )
        for row in rows
    ]
