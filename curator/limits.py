"""Per-source article limits for fetch jobs.

Three tiers decide how many articles a single source may contribute:

1. ``DEFAULT_MAX_ARTICLES`` when the caller gives no limit (or a non-positive one).
2. The caller's requested limit otherwise.
3. ``FAILSAFE_MAX_ARTICLES`` caps both of the above and cannot be overridden.
"""

from __future__ import annotations

DEFAULT_MAX_ARTICLES = 10
FAILSAFE_MAX_ARTICLES = 50


def calculate_max_articles(
    user_input: int | None = None,
    default: int | None = None,
) -> int:
    """Return the effective per-source cap for a requested limit."""
    if default is None or default <= 0:
        default = DEFAULT_MAX_ARTICLES
    if user_input is None or user_input <= 0:
        return min(default, FAILSAFE_MAX_ARTICLES)
    return min(user_input, FAILSAFE_MAX_ARTICLES)
