"""FastAPI application entrypoint."""

from __future__ import annotations

from fastapi import FastAPI

from dslcrawler.api.routes import router
from dslcrawler.config import CrawlerConfig
from dslcrawler.services.crawler import DslCrawler
from dslcrawler.store import RecordStore


def create_app(
    config: CrawlerConfig | None = None,
    store: RecordStore | None = None,
    crawler: DslCrawler | None = None,
) -> FastAPI:
    config = config or CrawlerConfig()
    store = store if store is not None else RecordStore(config.store_root)

    app = FastAPI(title="dsl.sk crawler", description="Article and commenter statistics API")
    app.state.store = store
    app.state.crawler = crawler or DslCrawler(config, store=store)
    app.include_router(router, prefix="/api")
    return app


app = create_app()
