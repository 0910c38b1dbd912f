"""API routes exposing the stored statistics and the crawl driver."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Body, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from dslcrawler.exceptions import CrawlerError
from dslcrawler.models import Article, CrawlReport, User
from dslcrawler.services.crawler import DslCrawler
from dslcrawler.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()

USER_ORDER_FIELDS = (
    "commented_article_count",
    "comment_count",
    "ranked_comment_count",
    "first_comment_count",
    "total_comment_rank",
    "total_comment_length",
    "most_commented_article_comment_count",
)


class ArticlesResponse(BaseModel):
    articles: List[Article] = Field(default_factory=list)


class UsersResponse(BaseModel):
    order_by: str
    users: List[User] = Field(default_factory=list)


class CrawlRequest(BaseModel):
    start: int = Field(default=1, ge=1)
    end: int | None = Field(default=None, ge=1)
    sequential: bool = False


def _store(request: Request) -> RecordStore:
    return request.app.state.store


def _crawler(request: Request) -> DslCrawler:
    return request.app.state.crawler


@router.get("/articles", response_model=ArticlesResponse)
async def list_articles(request: Request) -> ArticlesResponse:
    """Return every stored article ordered by article number."""

    articles = sorted(_store(request).articles.all(), key=lambda article: article.num)
    return ArticlesResponse(articles=articles)


@router.get("/articles/{num}", response_model=Article)
async def retrieve_article(num: int, request: Request) -> Article:
    article = _store(request).articles.find_record({"num": num})
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article {num} has not been crawled.")
    return article


@router.get("/users", response_model=UsersResponse)
async def list_users(
    request: Request,
    order_by: str = "comment_count",
    limit: int = Query(default=50, ge=1, le=1000),
    registered: bool | None = None,
) -> UsersResponse:
    """Return the top commenters ranked by one of the numeric aggregates."""

    if order_by not in USER_ORDER_FIELDS:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot order by '{order_by}'. Choose one of: {', '.join(USER_ORDER_FIELDS)}",
        )

    users = _store(request).users.all()
    if registered is not None:
        users = [user for user in users if user.registered == registered]
    users.sort(key=lambda user: getattr(user, order_by), reverse=True)
    return UsersResponse(order_by=order_by, users=users[:limit])


@router.get("/users/{name}", response_model=User)
async def retrieve_user(name: str, request: Request, registered: bool = False) -> User:
    user = _store(request).users.find_record({"name": name, "registered": registered})
    if user is None:
        kind = "registered" if registered else "anonymous"
        raise HTTPException(status_code=404, detail=f"No {kind} user named '{name}'.")
    return user


@router.post("/crawl", response_model=CrawlReport)
async def trigger_crawler(
    request: Request, payload: CrawlRequest | None = Body(default=None)
) -> CrawlReport:
    """Crawl a range of articles and return the per-number outcome."""

    crawl_request = payload or CrawlRequest()
    if crawl_request.end is not None and crawl_request.end < crawl_request.start:
        raise HTTPException(status_code=400, detail="'end' must not be smaller than 'start'.")

    try:
        return await run_in_threadpool(
            _crawler(request).process_range,
            crawl_request.start,
            crawl_request.end,
            parallel=not crawl_request.sequential,
        )
    except CrawlerError as exc:
        logger.exception("Crawl of %d-%s failed", crawl_request.start, crawl_request.end)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
