"""Field extractors for dsl.sk article pages.

Every extractor either returns a typed value or raises
:class:`~dslcrawler.exceptions.MissingField`; none of them falls back to a
default. The only optional field is the comment rank, which is ``None`` when a
comment carries no rank widget.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable, List

from bs4 import Tag

from dslcrawler.exceptions import MissingField
from dslcrawler.models import ArticleStats, CommentRecord
from dslcrawler.tree import (
    attribute_value,
    by_attribute,
    by_class,
    by_id,
    by_tag,
    first,
    text_content,
)

logger = logging.getLogger(__name__)

PAGE_TITLE_CLASS = "page_title"
ARTICLE_SUMMARY_CLASS = "article_perex"
BOX_TITLE_CLASS = "box_title"

DATE_PATTERN = re.compile(r"\d{1,2}\.\d{1,2}\.\d{4}")
DATE_FORMAT = "%d.%m.%Y"
DATETIME_PATTERN = re.compile(r"\d{1,2}\.\d{1,2}\.\d{4} \d{1,2}:\d{1,2}")
DATETIME_FORMAT = "%d.%m.%Y %H:%M"
NUMBER_PATTERN = re.compile(r"\d+")
RANK_PATTERN = re.compile(r"-?\d{1,2}\.?\d?")

# The byline pads the author name with fixed runs of spaces; the padding is the
# only reliable boundary between the name and the timestamp that follows it.
USER_PATTERN = re.compile(r" {8}Od: (.*) {17}| {8}Od reg\.: (.*) {17}")
REGISTERED_PATTERN = re.compile(r" {8}Od: (.*) {9}| {8}Od reg\.: (.*) {9}")


def strip_newlines(text: str) -> str:
    """Return ``text`` with every newline removed."""

    return text.replace("\n", "")


def _search(pattern: re.Pattern[str], text: str, field: str) -> re.Match[str]:
    match = pattern.search(text)
    if match is None:
        raise MissingField(field, {"pattern": pattern.pattern, "text": text})
    return match


def _parse_datetime(value: str, fmt: str, field: str) -> datetime:
    try:
        return datetime.strptime(value, fmt)
    except ValueError as exc:
        raise MissingField(field, {"value": value}) from exc


# === page level ===========================================================


def is_article(tree: Tag) -> bool:
    """Return whether ``tree`` is a single article rather than a listing page."""

    return not by_class(tree, BOX_TITLE_CLASS)


def article_title(tree: Tag) -> str:
    return text_content(first(by_class(tree, PAGE_TITLE_CLASS), "title"))


def article_date(tree: Tag) -> datetime:
    """Return the publish date printed in the article summary box."""

    summary = text_content(first(by_class(tree, ARTICLE_SUMMARY_CLASS), "date"))
    date_str = _search(DATE_PATTERN, summary, "date").group(0)
    return _parse_datetime(date_str, DATE_FORMAT, "date")


def article_num(tree: Tag) -> int:
    """Return the article number taken from the canonical ``og:url`` meta tag."""

    meta = first(by_attribute(tree, "property", "og:url"), "num")
    url = attribute_value(meta, "content")
    if url is None:
        raise MissingField("num", {"reason": "og:url meta tag has no content"})
    return int(_search(NUMBER_PATTERN, url, "num").group(0))


def comment_nodes(tree: Tag) -> List[Tag]:
    """Return the per-comment container nodes in page order."""

    tables = by_attribute(by_id(tree, "body"), "cellspacing", "10")
    return by_attribute(tables, "bgcolor", "#ffffff")


def last_article_num(feed: Tag) -> int:
    """Return the most recent article number announced by the RSS feed."""

    item = first(by_tag(feed, "item"), "feed item")
    links = by_tag(item, "link")
    # HTML parsers treat <link> as a void element and leave it empty.
    source = text_content(links[0]).strip() if links else ""
    if not source:
        source = text_content(item).strip()
    return int(_search(NUMBER_PATTERN, source, "feed item").group(0))


# === comment level ========================================================


def comment_info(comment: Tag) -> str:
    """Return the byline: author, registration marker and timestamp."""

    return text_content(first(by_tag(by_tag(comment, "div"), "font"), "comment info"))


def _user_match(comment: Tag, pattern: re.Pattern[str], field: str) -> re.Match[str]:
    return _search(pattern, strip_newlines(comment_info(comment)), field)


def comment_user(comment: Tag) -> str:
    anonymous, registered = _user_match(comment, USER_PATTERN, "user").groups()
    return anonymous if anonymous is not None else registered


def user_registered(comment: Tag) -> bool:
    return _user_match(comment, REGISTERED_PATTERN, "registered").group(2) is not None


def comment_time(comment: Tag) -> datetime:
    time_str = _search(DATETIME_PATTERN, comment_info(comment), "time").group(0)
    return _parse_datetime(time_str, DATETIME_FORMAT, "time")


def _rank_fonts(comment: Tag) -> List[Tag]:
    return by_tag(by_tag(comment, "span"), "font")


def has_rank(comment: Tag) -> bool:
    """A comment is ranked when its span holds exactly two font nodes."""

    return len(_rank_fonts(comment)) == 2


def comment_rank(comment: Tag) -> float | None:
    fonts = _rank_fonts(comment)
    if len(fonts) != 2:
        return None
    return float(_search(RANK_PATTERN, text_content(fonts[0]), "rank").group(0))


def comment_text(comment: Tag) -> str:
    return text_content(comment).strip()


# === aggregation ==========================================================


def parse_comment(comment: Tag, index: int) -> CommentRecord:
    return CommentRecord(
        user=comment_user(comment),
        registered=user_registered(comment),
        time=comment_time(comment),
        rank=comment_rank(comment),
        text=comment_text(comment),
        first=index == 0,
    )


def parse_comments(comments: Iterable[Tag]) -> List[CommentRecord]:
    """Turn raw comment containers into records; ``first`` follows page order."""

    return [parse_comment(comment, index) for index, comment in enumerate(comments)]


def total_text_length(comments: Iterable[CommentRecord]) -> int:
    return len(strip_newlines("".join(comment.text for comment in comments)))


def parse_article(tree: Tag) -> ArticleStats:
    """Extract the article metadata and derived comment statistics from ``tree``."""

    comments = parse_comments(comment_nodes(tree))
    times = [comment.time for comment in comments]
    stats = ArticleStats(
        num=article_num(tree),
        title=article_title(tree),
        date=article_date(tree),
        comments=comments,
        comment_count=len(comments),
        first_comment_date=min(times) if times else None,
        last_comment_date=max(times) if times else None,
        total_comment_length=total_text_length(comments),
    )
    logger.debug("Parsed article %d with %d comments", stats.num, stats.comment_count)
    return stats


__all__ = [
    "article_date",
    "article_num",
    "article_title",
    "comment_info",
    "comment_nodes",
    "comment_rank",
    "comment_text",
    "comment_time",
    "comment_user",
    "has_rank",
    "is_article",
    "last_article_num",
    "parse_article",
    "parse_comment",
    "parse_comments",
    "strip_newlines",
    "total_text_length",
    "user_registered",
]
