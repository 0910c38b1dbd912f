"""Shared fixtures that build synthetic dsl.sk markup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import pytest
from bs4 import BeautifulSoup

ARTICLE_URL = "http://www.dsl.sk/article.php?article={num}"
FEED_URL = "http://www.dsl.sk/export/rss_articles.php"


@dataclass
class Comment:
    user: str
    when: str
    body: str
    registered: bool = False
    rank: Optional[str] = None


def build_byline(user: str, when: str, registered: bool = False) -> str:
    marker = "Od reg.:" if registered else "Od:"
    return f"{' ' * 8}{marker} {user}{' ' * 17}{when}"


def build_comment(comment: Comment) -> str:
    if comment.rank is not None:
        widget = f"<span><font>{comment.rank}</font><font>hodnotenie</font></span>"
    else:
        widget = "<span><font>reagovat</font></span>"
    return (
        '<tr><td bgcolor="#ffffff">'
        f"<div><font>{build_byline(comment.user, comment.when, comment.registered)}</font></div>"
        f"{widget}"
        f"<p>{comment.body}</p>"
        "</td></tr>"
    )


def build_article(
    num: int,
    title: str = "Title",
    date: str = "01.02.2013",
    comments: Iterable[Comment] = (),
    listing: bool = False,
) -> str:
    rows = "".join(build_comment(comment) for comment in comments)
    box = '<div class="box_title">Najnovsie clanky</div>' if listing else ""
    return (
        "<html><head>"
        f'<meta property="og:url" content="{ARTICLE_URL.format(num=num)}"/>'
        "</head><body>"
        f'<div class="page_title">{title}</div>'
        f'<div class="article_perex">{date} 09:15 | redakcia</div>'
        f'<div id="body"><table cellspacing="10">{rows}</table></div>'
        f"{box}"
        "</body></html>"
    )


def build_feed(*nums: int) -> str:
    items = "".join(
        f"<item><title>Clanok 2013 c. {num}</title>"
        f"<link>{ARTICLE_URL.format(num=num)}</link></item>"
        for num in nums
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel>{items}</channel></rss>'


@pytest.fixture
def comment() -> type[Comment]:
    """Factory for one comment row: user, time, body, registration and rank."""
    return Comment


@pytest.fixture
def byline() -> Callable[..., str]:
    """The padded ``Od:`` / ``Od reg.:`` byline printed above each comment."""
    return build_byline


@pytest.fixture
def article_page() -> Callable[..., str]:
    """Render a full article page, or a listing page with ``listing=True``."""
    return build_article


@pytest.fixture
def feed_page() -> Callable[..., str]:
    """Render an RSS feed announcing the given article numbers, newest first."""
    return build_feed


@pytest.fixture
def soup() -> Callable[..., BeautifulSoup]:
    def parse(markup: str, features: str = "lxml") -> BeautifulSoup:
        return BeautifulSoup(markup, features)

    return parse


@pytest.fixture
def article_url() -> Callable[[int], str]:
    return lambda num: ARTICLE_URL.format(num=num)


@pytest.fixture
def feed_url() -> str:
    return FEED_URL
