"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from curator.config import load_config
from curator.db import get_connection, init_db, insert_article, insert_source
from curator.models import Article, ParsedArticle, Source


@pytest.fixture
def sample_config(tmp_path):
    """Minimal config for testing (no real API keys, no retry sleeps)."""
    config_text = """
llm:
  providers:
    mock:
      type: "openai_compatible"
      api_key: "test-key"
      base_url: "http://localhost:9999"
      default_model: "gpt-4o-mini"
      max_retries: 0
      json_mode: true
  tasks:
    categorize: { provider: "mock" }

fetch:
  default_max_articles: 10
  timeout: 5
  max_retries: 0

categorize:
  article_count: 10

database:
  path: "DB_PATH_PLACEHOLDER"
"""
    db_path = str(tmp_path / "test.db")
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(config_text.replace("DB_PATH_PLACEHOLDER", db_path))
    return load_config(str(cfg_path))


@pytest.fixture
def db_conn(sample_config):
    """Initialized test database connection."""
    db_path = sample_config["database"]["path"]
    init_db(db_path)
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def rss_source(db_conn):
    source = Source(name="AI Weekly", url="https://example.com/feed.xml", type="rss")
    source.id = insert_source(db_conn, source)
    return source


@pytest.fixture
def html_source(db_conn):
    source = Source(name="Anthropic News", url="https://www.anthropic.com/news", type="html")
    source.id = insert_source(db_conn, source)
    return source


@pytest.fixture
def parsed_articles():
    """Candidate articles as a processor would return them."""
    return [
        ParsedArticle(
            title="Open weights model tops coding benchmark",
            link="https://example.com/open-weights",
            published_date=datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc),
            meta_description="A new open weights model leads the leaderboard.",
            guid="urn:example:1",
        ),
        ParsedArticle(
            title="GPU maker announces inference accelerator",
            link="https://example.com/gpu-accelerator",
            published_date=datetime(2025, 3, 2, 9, 0, tzinfo=timezone.utc),
            meta_description="The chip targets low-latency serving.",
            guid="urn:example:2",
        ),
        ParsedArticle(
            title="Agent framework adds tool sandboxing",
            link="https://example.com/agent-sandbox",
            published_date=datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc),
            meta_description="",
            guid=None,
        ),
    ]


@pytest.fixture
def pending_articles(db_conn):
    """Three stored articles awaiting categorization, oldest first."""
    articles = []
    for day, title in enumerate(
        [
            "Lab releases reasoning model",
            "SDK ships streaming tool calls",
            "Startup raises $80M for robotics",
        ],
        start=1,
    ):
        article = Article(
            title=title,
            link=f"https://example.com/pending-{day}",
            source_name="AI Weekly",
            published_date=datetime(2025, 4, day, tzinfo=timezone.utc),
            meta_description=f"Description for {title}",
        )
        article.id = insert_article(db_conn, article)
        articles.append(article)
    return articles
