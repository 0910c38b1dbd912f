"""Domain models used across the application."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

DERIVED_ARTICLE_FIELDS = (
    "comment_count",
    "first_comment_date",
    "last_comment_date",
    "total_comment_length",
)


class CommentRecord(BaseModel):
    """One comment as extracted from an article page."""

    user: str
    registered: bool
    time: datetime
    rank: Optional[float] = None
    text: str
    first: bool = False


class ArticleStats(BaseModel):
    """Everything extracted from a single article page."""

    num: int
    title: str
    date: datetime
    comments: List[CommentRecord] = Field(default_factory=list)
    comment_count: int = 0
    first_comment_date: Optional[datetime] = None
    last_comment_date: Optional[datetime] = None
    total_comment_length: int = 0

    def article_fields(self) -> dict:
        """Return the payload used when the article is stored for the first time."""

        return self.model_dump(exclude={"comments"})

    def derived_fields(self) -> dict:
        """Return the statistics that are refreshed when an article is reprocessed."""

        return self.model_dump(include=set(DERIVED_ARTICLE_FIELDS))


class Article(BaseModel):
    """Persisted per-article statistics, keyed by ``num``."""

    id: Optional[int] = None
    num: int
    title: str
    date: datetime
    comment_count: int = 0
    first_comment_date: Optional[datetime] = None
    last_comment_date: Optional[datetime] = None
    total_comment_length: int = 0


class User(BaseModel):
    """Persisted running aggregate for one ``(name, registered)`` identity."""

    id: Optional[int] = None
    name: str
    registered: bool
    commented_article_count: int = 0
    comment_count: int = 0
    ranked_comment_count: int = 0
    first_comment_time: Optional[datetime] = None
    last_comment_time: Optional[datetime] = None
    first_comment_count: int = 0
    total_comment_rank: float = 0.0
    total_comment_length: int = 0
    most_commented_article_comment_count: int = 0
    most_commented_article_num: Optional[int] = None

    @property
    def identity(self) -> tuple[str, bool]:
        return self.name, self.registered


class CrawlReport(BaseModel):
    """Outcome of crawling a range of article numbers."""

    start: int
    end: int
    processed: List[int] = Field(default_factory=list)
    skipped: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.skipped) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


__all__ = [
    "Article",
    "ArticleStats",
    "CommentRecord",
    "CrawlReport",
    "DERIVED_ARTICLE_FIELDS",
    "User",
]
