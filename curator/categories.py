"""Category taxonomy for newsletter triage."""

from __future__ import annotations

NEWS_CATEGORIES = (
    "Top Story Candidate",
    "Solid News",
    "Interesting but Lower Priority",
    "Not Relevant",
)

TECH_CATEGORIES = (
    "Products and Updates",
    "Developer Tools",
    "Research and Innovation",
    "Industry Trends",
    "Startups and Funding",
    "Not Relevant",
)

NEWS_CATEGORY_CRITERIA = {
    "Top Story Candidate": (
        "Major, impactful news. High signal, low noise. New AI products, significant "
        "model versions, major research breakthroughs, acquisitions, funding of $50M+, "
        "new GPU/hardware, major open source releases."
    ),
    "Solid News": (
        "Important and factual updates that are not headline material: updates to "
        "existing tools, noteworthy features, case studies with concrete results, "
        "well-supported industry reports."
    ),
    "Interesting but Lower Priority": (
        "Niche or less broadly impactful: small tool releases, tutorials, community "
        "news, smaller research findings, thoughtful perspectives."
    ),
    "Not Relevant": (
        "Not direct news, overly speculative or opinion-based, or unrelated to AI: "
        "opinion pieces, basic explainers, marketing, generic trend pieces, event "
        "promotion, product lists."
    ),
}

TECH_CATEGORY_CRITERIA = {
    "Products and Updates": "New AI products, major feature releases, model launches, hardware announcements",
    "Developer Tools": "APIs, frameworks, coding tools, SDKs, development platforms, technical utilities",
    "Research and Innovation": "Research papers, academic breakthroughs, novel techniques, experimental findings",
    "Industry Trends": "Market analysis, adoption studies, industry reports, strategic insights, company shifts",
    "Startups and Funding": "Investment news, startup announcements, funding rounds, acquisitions",
    "Not Relevant": "Non-tech content, general news, opinion without technical substance, promotional material",
}


def is_valid_news_category(category: str | None) -> bool:
    return category in NEWS_CATEGORIES


def is_valid_tech_category(category: str | None) -> bool:
    return category in TECH_CATEGORIES


def empty_news_distribution() -> dict[str, int]:
    return {cat: 0 for cat in NEWS_CATEGORIES}


def empty_tech_distribution() -> dict[str, int]:
    return {cat: 0 for cat in TECH_CATEGORIES}
