"""Service layer entry points for the dsl.sk crawler."""

from __future__ import annotations

from .crawler import CrawlPool, DslCrawler  # noqa: F401
from .fetch import PageFetcher  # noqa: F401
from .users import fold_comments, merge_comments  # noqa: F401

__all__ = ["CrawlPool", "DslCrawler", "PageFetcher", "fold_comments", "merge_comments"]
