"""Per-domain selectors and filters for HTML scraping.

Each entry describes one listing page layout. Adding a site is a data
change: either append to ``HTML_SITE_CONFIGURATIONS`` or declare it under
``fetch.html_sites`` in config.yaml::

    fetch:
      html_sites:
        - domain: example.com
          container_selector: "article"
          title_selector: "h2"
          link_selector: "a"
          filters: { min_title_length: 10, exclude_titles: ["Blog"] }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlparse


class UnsupportedDomainError(ValueError):
    """No scraping configuration exists for a hostname."""

    def __init__(self, hostname: str):
        self.hostname = hostname
        super().__init__(
            f"No HTML configuration found for {hostname}. "
            "Add an entry to fetch.html_sites in config.yaml"
        )


@dataclass
class SiteFilters:
    min_title_length: int = 10
    max_title_length: int = 200
    exclude_titles: list[str] = field(default_factory=list)


@dataclass
class HTMLSiteConfig:
    domain: str
    container_selector: str
    title_selector: str | None = None  # None: use the container text
    description_selector: str | None = None
    date_selector: str | None = None
    link_selector: str | None = None  # None: container href or first <a>
    filters: SiteFilters = field(default_factory=SiteFilters)


HTML_SITE_CONFIGURATIONS: list[HTMLSiteConfig] = [
    HTMLSiteConfig(
        domain="anthropic.com",
        container_selector=".PostCard_post-card__z_Sqq",
        description_selector='p, [class*="excerpt"]',
        date_selector=".PostCard_post-timestamp__etH9K",
        filters=SiteFilters(
            exclude_titles=["Newsroom", "News", "Announcements", "Featured"],
        ),
    ),
    HTMLSiteConfig(
        domain="elevenlabs.io",
        container_selector="article",
        title_selector="h2",
        description_selector="p",
        date_selector="time",
        link_selector='a[href*="/blog/"]',
        filters=SiteFilters(exclude_titles=["Blog", "Resources"]),
    ),
]


def site_config_from_dict(data: dict) -> HTMLSiteConfig:
    """Build a site entry from a config mapping."""
    filters = data.get("filters") or {}
    return HTMLSiteConfig(
        domain=data["domain"].lower(),
        container_selector=data["container_selector"],
        title_selector=data.get("title_selector") or None,
        description_selector=data.get("description_selector") or None,
        date_selector=data.get("date_selector") or None,
        link_selector=data.get("link_selector") or None,
        filters=SiteFilters(
            min_title_length=filters.get("min_title_length", 10),
            max_title_length=filters.get("max_title_length", 200),
            exclude_titles=list(filters.get("exclude_titles", [])),
        ),
    )


def _hostname(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def _all_sites(extra: list[HTMLSiteConfig] | None) -> list[HTMLSiteConfig]:
    # Configured entries shadow the built-in ones
    return [*(extra or []), *HTML_SITE_CONFIGURATIONS]


def get_site_config(
    url: str, extra: list[HTMLSiteConfig] | None = None,
) -> HTMLSiteConfig | None:
    """Find the entry whose domain is the URL's hostname or a parent of it."""
    host = _hostname(url)
    if not host:
        return None
    for site in _all_sites(extra):
        if host == site.domain or host.endswith("." + site.domain):
            return site
    return None


def require_site_config(
    url: str, extra: list[HTMLSiteConfig] | None = None,
) -> HTMLSiteConfig:
    site = get_site_config(url, extra)
    if site is None:
        raise UnsupportedDomainError(_hostname(url) or url)
    return site


def get_supported_domains(extra: list[HTMLSiteConfig] | None = None) -> list[str]:
    return [site.domain for site in _all_sites(extra)]


def is_domain_supported(url: str, extra: list[HTMLSiteConfig] | None = None) -> bool:
    return get_site_config(url, extra) is not None
