"""Feed processor registry, keyed by source type."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from curator.fetch.base import BaseProcessor

PROCESSORS: dict[str, type[BaseProcessor]] = {}


def register_processor(source_type: str):
    """Decorator to register a processor for a source type."""

    def decorator(cls):
        PROCESSORS[source_type] = cls
        return cls

    return decorator


def get_processor(source_type: str, config: dict) -> BaseProcessor:
    """Instantiate the processor for a source type."""
    if source_type not in PROCESSORS:
        raise ValueError(f"Unknown source type: {source_type}")
    return PROCESSORS[source_type](config)


# Import implementations to trigger registration
from curator.fetch.html import HTMLProcessor  # noqa: E402, F401
from curator.fetch.rss import RSSProcessor  # noqa: E402, F401
