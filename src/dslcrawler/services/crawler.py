"""Crawl driver: fetch, extract and persist a range of dsl.sk articles."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, Tuple

import requests

from dslcrawler import extract
from dslcrawler.config import CrawlerConfig
from dslcrawler.exceptions import CrawlerError
from dslcrawler.models import Article, ArticleStats, CrawlReport
from dslcrawler.services.fetch import PageFetcher
from dslcrawler.services.users import fold_comments
from dslcrawler.store import RecordStore

__all__ = ["CrawlPool", "DslCrawler", "FAILED", "PROCESSED", "SKIPPED"]

logger = logging.getLogger(__name__)

PROCESSED = "processed"
SKIPPED = "skipped"
FAILED = "failed"


class CrawlPool:
    """Fixed-size worker pool that keeps submitted/active/completed counters.

    Use it as a context manager so the worker threads are released on every
    exit path. :meth:`wait` blocks on the futures returned by :meth:`submit`;
    the counters are only used for progress reporting and :meth:`ended`.
    """

    def __init__(self, size: int = 8, *, progress_interval: float = 2.0) -> None:
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self.size = size
        self.progress_interval = progress_interval
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix="dslcrawler")
        self._lock = threading.Lock()
        self.submitted = 0
        self.active = 0
        self.completed = 0

    def __enter__(self) -> "CrawlPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"CrawlPool(size={self.size}, submitted={self.submitted}, "
            f"active={self.active}, completed={self.completed})"
        )

    def _run(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> Any:
        with self._lock:
            self.active += 1
        try:
            return fn(*args)
        finally:
            with self._lock:
                self.active -= 1
                self.completed += 1

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        with self._lock:
            self.submitted += 1
        return self._executor.submit(self._run, fn, args)

    def ended(self) -> bool:
        """Return whether every submitted task has finished."""

        with self._lock:
            return self.active == 0 and self.submitted == self.completed

    def wait(self, futures: Iterable[Future]) -> None:
        """Block until all ``futures`` are done, logging progress periodically."""

        pending = set(futures)
        while pending:
            _, pending = concurrent.futures.wait(pending, timeout=self.progress_interval)
            if pending:
                logger.info("%s", self)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)


class DslCrawler:
    """Process dsl.sk articles into the article and user record tables."""

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        store: RecordStore | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        self.config = config or CrawlerConfig()
        self.store = store if store is not None else RecordStore(self.config.store_root)
        self.fetcher = fetcher or PageFetcher(timeout=self.config.request_timeout)

    def last_article_num(self) -> int:
        """Return the newest article number announced by the feed (single attempt)."""

        feed = self.fetcher.parse(self.config.feed_url, features="xml")
        num = extract.last_article_num(feed)
        logger.info("Latest article according to %s is %d", self.config.feed_url, num)
        return num

    def store_article(self, stats: ArticleStats) -> Article:
        """Create the article record, or refresh only its derived statistics."""

        articles = self.store.articles
        with articles.locked((stats.num,)):
            existing = articles.find_record({"num": stats.num})
            if existing is None:
                return articles.create(stats.article_fields())
            return articles.update({**stats.derived_fields(), "id": existing.id})

    def process_article(self, num: int) -> str:
        """Run the full pipeline for article ``num``.

        Returns :data:`SKIPPED` for listing pages and :data:`PROCESSED` otherwise.
        Fetch and extraction errors propagate to the caller.
        """

        tree = self.fetcher.parse(self.config.url_for(num))
        if not extract.is_article(tree):
            logger.debug("Page %d is not an article, skipping", num)
            return SKIPPED

        stats = extract.parse_article(tree)
        self.store_article(stats)
        fold_comments(stats.comments, stats.num, self.store.users)
        self.store.flush()
        logger.info("Stored article %d (%d comments)", stats.num, stats.comment_count)
        return PROCESSED

    def _crawl_one(self, num: int) -> str:
        try:
            return self.process_article(num)
        except (CrawlerError, requests.RequestException) as exc:
            logger.warning("Article %d failed: %s", num, exc)
        except Exception:  # noqa: BLE001 - one broken page must not stop the range
            logger.exception("Article %d failed unexpectedly", num)
        return FAILED

    def process_range(
        self,
        start: int = 1,
        end: int | None = None,
        *,
        parallel: bool = True,
        pool_size: int | None = None,
    ) -> CrawlReport:
        """Process every article number in ``[start, end]``.

        When ``end`` is ``None`` the newest article number is read from the feed.
        A failing article is logged and reported; the rest of the range still runs.
        """

        if end is None:
            end = self.last_article_num()

        nums = range(start, end + 1)
        if not parallel:
            outcomes: List[Tuple[int, str]] = [(num, self._crawl_one(num)) for num in nums]
        else:
            size = pool_size or self.config.pool_size
            with CrawlPool(size, progress_interval=self.config.progress_interval) as pool:
                futures = {pool.submit(self._crawl_one, num): num for num in nums}
                pool.wait(futures)
                outcomes = [(num, future.result()) for future, num in futures.items()]

        self.store.flush()
        report = CrawlReport(start=start, end=end)
        for num, outcome in outcomes:
            getattr(report, outcome).append(num)

        logger.info(
            "Crawled %d-%d: %d processed, %d skipped, %d failed",
            start,
            end,
            len(report.processed),
            len(report.skipped),
            len(report.failed),
        )
        if report.failed:
            logger.warning("Failed article numbers: %s", ", ".join(map(str, report.failed)))
        return report
