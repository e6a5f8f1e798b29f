"""Prompt templates for LLM tasks."""

SYSTEM_CATEGORIZER = (
    "You are an expert article categorization assistant for an AI and technology "
    "newsletter. Return only valid JSON."
)

CATEGORIZE_BATCH = """\
Categorize each article below for newsletter triage. Every article gets exactly \
one news category and exactly one tech category, chosen verbatim from the lists.

NEWS CATEGORIES:
{news_categories}

TECH CATEGORIES:
{tech_categories}

ARTICLES:
{articles}

Respond in EXACTLY this JSON format (no markdown, no extra text):
{{
    "articles": [
        {{
            "id": "the article id as given",
            "newsCategory": "one of the news categories",
            "techCategory": "one of the tech categories",
            "rationale": "One or two sentences explaining the choice",
            "confidence": 0-100
        }}
    ]
}}"""
