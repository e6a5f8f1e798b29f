"""Core data models for the curator pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

SOURCE_TYPES = ("rss", "html")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceFetchState(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class CategorizationState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, Enum):
    SINGLE = "single"
    BULK = "bulk"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class SourceRunState(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class CategorizationRunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


TRIGGERS = ("manual", "scheduled", "api")


@dataclass
class FetchStatus:
    """Outcome of the most recent fetch attempt for a source."""

    last_fetched_at: datetime | None = None
    last_fetch_status: SourceFetchState | None = None
    last_fetch_message: str | None = None
    last_fetch_error: str | None = None
    last_fetch_saved_articles: int | None = None

    def __post_init__(self):
        if self.last_fetch_status is not None:
            self.last_fetch_status = SourceFetchState(self.last_fetch_status)


@dataclass
class Source:
    """A configured feed (RSS document or HTML listing page)."""

    name: str
    url: str
    type: str  # rss, html
    is_active: bool = True
    fetch_status: FetchStatus = field(default_factory=FetchStatus)
    id: int | None = None


@dataclass
class ParsedArticle:
    """Candidate article produced by a processor, not yet persisted."""

    title: str
    link: str
    published_date: datetime | None = None
    meta_description: str | None = None
    guid: str | None = None


@dataclass
class Categorization:
    status: CategorizationState = CategorizationState.PENDING
    news_category: str | None = None
    tech_category: str | None = None
    rationale: str | None = None
    categorized_at: datetime | None = None
    is_training_data: bool = False

    def __post_init__(self):
        self.status = CategorizationState(self.status)


@dataclass
class Article:
    """A persisted article."""

    title: str
    link: str
    source_name: str
    published_date: datetime | None = None
    meta_description: str = ""
    guid: str | None = None
    fetched_at: datetime = field(default_factory=utcnow)
    categorization: Categorization = field(default_factory=Categorization)
    id: int | None = None


@dataclass
class ProcessorResult:
    """What a processor returns for one source."""

    success: bool
    articles: list[ParsedArticle] = field(default_factory=list)
    total_items: int = 0
    feed_title: str | None = None
    feed_description: str | None = None
    error: str | None = None


@dataclass
class SaveResult:
    total_articles: int = 0
    saved_articles: int = 0
    skipped_duplicates: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class FetchResult:
    """Outcome of fetching and saving one source within a job."""

    source_id: int
    source_name: str
    success: bool
    articles_found: int = 0
    articles_processed: int = 0
    articles_saved: int = 0
    skipped_duplicates: int = 0
    errors: list[str] = field(default_factory=list)
    error: str | None = None
    duration_ms: int = 0


@dataclass
class SourceResult:
    """Per-source entry in a fetch run log."""

    source_id: int
    source_name: str
    status: SourceRunState
    total_articles: int
    saved_articles: int
    skipped_duplicates: int
    execution_time_ms: int
    max_articles: int | None = None
    errors: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.status = SourceRunState(self.status)


@dataclass
class FetchRunSummary:
    total_articles_processed: int = 0
    total_articles_saved: int = 0
    total_duplicates_skipped: int = 0
    total_errors: int = 0
    execution_time_ms: int = 0


@dataclass
class FetchRunLog:
    """Record of one orchestrator invocation."""

    job_id: str
    job_type: JobType
    total_sources: int
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    status: RunStatus = RunStatus.RUNNING
    source_results: list[SourceResult] = field(default_factory=list)
    summary: FetchRunSummary = field(default_factory=FetchRunSummary)
    job_errors: list[str] = field(default_factory=list)
    id: int | None = None

    def __post_init__(self):
        self.job_type = JobType(self.job_type)
        self.status = RunStatus(self.status)


@dataclass
class FetchJobResult:
    """Result handed back to whoever triggered a fetch."""

    job_id: str
    start_time: datetime
    end_time: datetime
    total_sources: int
    successful_sources: int
    failed_sources: int
    total_articles_found: int
    total_articles_saved: int
    duration_ms: int
    results: list[FetchResult] = field(default_factory=list)


@dataclass
class CategoryResult:
    """Per-article outcome of a categorization run."""

    article_id: int
    title: str
    status: str  # success, failed
    news_category: str | None = None
    tech_category: str | None = None
    rationale: str = ""
    confidence: float = 0.0
    error_message: str | None = None


@dataclass
class LLMUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    model_used: str = ""


@dataclass
class CategorizationRunLog:
    """Record of one categorization batch."""

    article_limit: int
    batch_size: int
    triggered_by: str = "manual"
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    status: CategorizationRunStatus = CategorizationRunStatus.IN_PROGRESS
    processing_time_ms: int | None = None
    total_articles_attempted: int = 0
    total_articles_successful: int = 0
    total_articles_failed: int = 0
    news_category_distribution: dict[str, int] = field(default_factory=dict)
    tech_category_distribution: dict[str, int] = field(default_factory=dict)
    usage: LLMUsage = field(default_factory=LLMUsage)
    article_results: list[CategoryResult] = field(default_factory=list)
    processing_errors: list[str] = field(default_factory=list)
    model: str = ""
    id: int | None = None

    def __post_init__(self):
        self.status = CategorizationRunStatus(self.status)
        if self.triggered_by not in TRIGGERS:
            raise ValueError(f"Invalid trigger: {self.triggered_by}")


@dataclass
class CategoryCorrection:
    """A reviewer's override of an AI categorization."""

    title: str
    source: str
    ai_news: str | None = None
    ai_tech: str | None = None
    ai_rationale: str | None = None
    human_news: str | None = None
    human_tech: str | None = None
    human_rationale: str | None = None
    description: str | None = None
    corrected_at: datetime = field(default_factory=utcnow)
    id: int | None = None
