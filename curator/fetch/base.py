"""Abstract base class for feed processors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from curator.models import ProcessorResult, Source


class BaseProcessor(ABC):
    """Fetch one source and normalize its entries into candidate articles."""

    def __init__(self, config: dict):
        self.config = config

    @abstractmethod
    async def fetch(self, source: Source, job_id: str, max_articles: int) -> ProcessorResult:
        """Fetch up to ``max_articles`` candidates.

        Transport and parse failures are reported through
        ``ProcessorResult.error`` rather than raised.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Source type handled by this processor."""
        ...


def describe_error(exc: BaseException) -> str:
    """Readable message for an exception whose str() may be empty."""
    return str(exc) or type(exc).__name__
