"""Tests for HTML listing-page scraping."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from bs4 import BeautifulSoup

from curator.fetch.html import HTMLProcessor, absolutize, extract_article_data
from curator.fetch.sites import (
    HTMLSiteConfig,
    UnsupportedDomainError,
    get_site_config,
    get_supported_domains,
    is_domain_supported,
    require_site_config,
    site_config_from_dict,
)
from curator.models import Source

EXAMPLE_SITE = {
    "domain": "example.com",
    "container_selector": "article",
    "title_selector": "h2",
    "description_selector": "p.summary",
    "date_selector": "time",
    "link_selector": "a",
    "filters": {"min_title_length": 10, "exclude_titles": ["Subscribe"]},
}

LISTING_HTML = """
<html>
<head><title>Example Blog</title><script>var x = "<article>";</script></head>
<body>
  <article>
    <h2>First real headline here</h2>
    <a href="/posts/first">Read more</a>
    <time datetime="2025-02-01T08:00:00Z">Feb 1</time>
    <p class="summary">Summary one</p>
  </article>
  <article><h2>Short</h2><a href="/posts/short">x</a></article>
  <article><h2>Subscribe to our newsletter</h2><a href="/subscribe">x</a></article>
  <article><h2>First real headline here</h2><a href="/posts/first-again">x</a></article>
  <article><h2>Headline without a link</h2><a href="#">x</a></article>
  <article><h2>Second real headline</h2><a href="https://other.org/abs">x</a></article>
</body>
</html>
"""


@pytest.fixture
def html_config(sample_config):
    sample_config["fetch"]["html_sites"] = [EXAMPLE_SITE]
    return sample_config


@pytest.fixture
def blog_source():
    return Source(id=7, name="Example Blog", url="https://blog.example.com/posts", type="html")


# --- Site table ---


def test_site_lookup_matches_subdomains():
    assert get_site_config("https://www.anthropic.com/news").domain == "anthropic.com"
    assert get_site_config("https://docs.anthropic.com/x").domain == "anthropic.com"


def test_site_lookup_does_not_match_lookalike():
    assert get_site_config("https://notanthropic.com/news") is None
    assert not is_domain_supported("https://notanthropic.com/news")


def test_configured_sites_shadow_builtin():
    override = site_config_from_dict(
        {"domain": "anthropic.com", "container_selector": "article.custom"},
    )
    site = get_site_config("https://www.anthropic.com/news", [override])
    assert site.container_selector == "article.custom"
    assert get_supported_domains([override])[0] == "anthropic.com"


def test_require_site_config_names_hostname():
    with pytest.raises(UnsupportedDomainError) as exc_info:
        require_site_config("https://www.unknown.org/blog")
    assert exc_info.value.hostname == "unknown.org"
    assert "No HTML configuration found for unknown.org" in str(exc_info.value)


def test_site_config_from_dict_defaults():
    site = site_config_from_dict({"domain": "Example.COM", "container_selector": "li"})
    assert site.domain == "example.com"
    assert site.title_selector is None
    assert site.filters.min_title_length == 10
    assert site.filters.max_title_length == 200


# --- Extraction helpers ---


@pytest.mark.parametrize(
    "link, expected",
    [
        ("/news/post", "https://www.anthropic.com/news/post"),
        ("news/post", "https://www.anthropic.com/news/post"),
        ("https://cdn.example.com/a", "https://cdn.example.com/a"),
        ("#", ""),
        ("javascript:void(0)", ""),
        ("mailto:press@example.com", ""),
        ("", ""),
    ],
)
def test_absolutize(link, expected):
    assert absolutize(link, "https://www.anthropic.com/news") == expected


def test_extract_card_without_title_selector():
    """Whole-card links: date text and section label are removed from the title."""
    html = (
        '<a class="PostCard_post-card__z_Sqq" href="/news/tool-use">'
        "<span>Announcements</span><h3>Claude gets a tool use API</h3>"
        '<div class="PostCard_post-timestamp__etH9K">Mar 5, 2025</div></a>'
    )
    container = BeautifulSoup(html, "html.parser").a
    site = get_site_config("https://www.anthropic.com/news")

    item = extract_article_data(container, site, "https://www.anthropic.com/news")

    assert item.title == "Claude gets a tool use API"
    assert item.link == "https://www.anthropic.com/news/tool-use"
    assert item.published_date == datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


def test_extract_prefers_datetime_attribute():
    html = (
        '<article><h2>Some headline text</h2><a href="/p">x</a>'
        '<time datetime="2025-01-02T03:04:05Z">yesterday-ish</time></article>'
    )
    container = BeautifulSoup(html, "html.parser").article
    site = site_config_from_dict(EXAMPLE_SITE)

    item = extract_article_data(container, site, "https://example.com/")

    assert item.published_date == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_extract_unparseable_date_is_none():
    html = '<article><h2>Some headline text</h2><a href="/p">x</a><time>soon</time></article>'
    container = BeautifulSoup(html, "html.parser").article
    item = extract_article_data(container, site_config_from_dict(EXAMPLE_SITE), "https://example.com/")
    assert item.published_date is None


def test_extract_ignores_bare_day_number():
    html = '<article><h2>Some headline text</h2><a href="/p">x</a><time>12</time></article>'
    container = BeautifulSoup(html, "html.parser").article
    item = extract_article_data(container, site_config_from_dict(EXAMPLE_SITE), "https://example.com/")
    assert item.published_date is None
    assert item.title == "Some headline text"


def test_extract_bad_datetime_attribute_does_not_fall_back():
    html = (
        '<article><h2>Some headline text</h2><a href="/p">x</a>'
        '<time datetime="not-a-date">Jan 9, 2025</time></article>'
    )
    container = BeautifulSoup(html, "html.parser").article
    item = extract_article_data(container, site_config_from_dict(EXAMPLE_SITE), "https://example.com/")
    assert item.published_date is None


# --- Processor ---


def test_parse_page_filters_and_dedups(html_config, blog_source):
    processor = HTMLProcessor(html_config)
    site = processor.site_configs()[0]

    result = processor.parse_page(LISTING_HTML, blog_source, site, "job_test", 10)

    assert result.success is True
    assert result.total_items == 6
    assert [a.title for a in result.articles] == [
        "First real headline here",
        "Second real headline",
    ]
    first = result.articles[0]
    assert first.link == "https://blog.example.com/posts/first"
    assert first.guid == first.link
    assert first.meta_description == "Summary one"
    assert first.published_date == datetime(2025, 2, 1, 8, 0, tzinfo=timezone.utc)
    assert result.articles[1].link == "https://other.org/abs"
    assert result.feed_title


def test_parse_page_caps_before_filtering(html_config, blog_source):
    processor = HTMLProcessor(html_config)
    site = processor.site_configs()[0]

    result = processor.parse_page(LISTING_HTML, blog_source, site, "job_test", 2)

    assert [a.title for a in result.articles] == ["First real headline here"]
    assert result.total_items == 6


def test_parse_page_no_containers(html_config, blog_source):
    processor = HTMLProcessor(html_config)
    site = HTMLSiteConfig(domain="example.com", container_selector="li.missing")

    result = processor.parse_page("<html><body></body></html>", blog_source, site, "job_test", 10)

    assert result.success is True
    assert result.articles == []
    assert result.total_items == 0


@pytest.mark.asyncio
@patch("curator.fetch.html.fetch_text", new_callable=AsyncMock)
async def test_fetch_scrapes_configured_site(mock_fetch, html_config, blog_source):
    mock_fetch.return_value = LISTING_HTML

    result = await HTMLProcessor(html_config).fetch(blog_source, "job_test", 10)

    assert result.success is True
    assert len(result.articles) == 2
    mock_fetch.assert_awaited_once_with(blog_source.url, html_config)


@pytest.mark.asyncio
@patch("curator.fetch.html.fetch_text", new_callable=AsyncMock)
async def test_unsupported_domain_skips_network(mock_fetch, sample_config):
    source = Source(id=3, name="Unknown", url="https://unknown.org/blog", type="html")

    result = await HTMLProcessor(sample_config).fetch(source, "job_test", 10)

    assert result.success is False
    assert "No HTML configuration found for unknown.org" in result.error
    mock_fetch.assert_not_awaited()


@pytest.mark.asyncio
@patch("curator.fetch.html.fetch_text", new_callable=AsyncMock)
async def test_fetch_error_is_failure_result(mock_fetch, html_config, blog_source):
    mock_fetch.side_effect = TimeoutError("page timed out")

    result = await HTMLProcessor(html_config).fetch(blog_source, "job_test", 10)

    assert result.success is False
    assert result.error == "page timed out"
