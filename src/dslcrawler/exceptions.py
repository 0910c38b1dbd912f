"""Exception types raised while fetching and extracting dsl.sk pages."""

from __future__ import annotations

from typing import Any


class CrawlerError(Exception):
    """Base class for failures local to a single crawl task."""


class FetchFailure(CrawlerError):
    """Raised when a page cannot be downloaded or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class MissingField(CrawlerError):
    """Raised when a required node or text pattern is absent from a page.

    Extractors never guess a value: a page whose layout does not match the
    expected markup raises this instead, naming the field and whatever context
    helps to locate the problem (the text that failed to match, a node count).
    """

    def __init__(self, field: str, context: dict[str, Any] | None = None) -> None:
        self.field = field
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Missing field: {self.field}"]
        for key, value in self.context.items():
            parts.append(f"  {key}: {value!r}")
        return "\n".join(parts)


__all__ = ["CrawlerError", "FetchFailure", "MissingField"]
