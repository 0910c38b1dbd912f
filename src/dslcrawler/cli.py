"""Command line entry point for crawling a range of dsl.sk articles."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from dslcrawler.config import CrawlerConfig
from dslcrawler.exceptions import CrawlerError
from dslcrawler.services.crawler import DslCrawler
from dslcrawler.store import RecordStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Collect article and commenter statistics from dsl.sk."
    )
    parser.add_argument("start", nargs="?", type=int, default=1, help="first article number")
    parser.add_argument(
        "end",
        nargs="?",
        type=int,
        default=None,
        help="last article number (default: newest article from the RSS feed)",
    )
    parser.add_argument(
        "--sequential", action="store_true", help="process articles one by one without a pool"
    )
    parser.add_argument("--workers", type=int, default=None, help="worker pool size")
    parser.add_argument("--config", default=None, help="path to a crawler JSON config")
    parser.add_argument("--store", default=None, help="directory for articles.json/users.json")
    return parser


def load_config(path: str | None) -> CrawlerConfig:
    """Load the configuration, falling back to defaults when no file exists."""

    try:
        return CrawlerConfig.from_file(path)
    except FileNotFoundError as exc:
        if path:
            raise
        logger.info("%s; using default settings", exc)
        return CrawlerConfig()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the crawler and print the JSON report. Returns the exit status."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Could not load crawler configuration: %s", exc)
        return 1

    if args.store:
        config = config.model_copy(update={"store_root": Path(args.store)})
    if args.workers is not None and args.workers < 1:
        logger.error("--workers must be at least 1")
        return 1

    crawler = DslCrawler(config, store=RecordStore(config.store_root))
    logger.info("running...")
    try:
        report = crawler.process_range(
            args.start, args.end, parallel=not args.sequential, pool_size=args.workers
        )
    except CrawlerError as exc:
        logger.error("Crawl failed: %s", exc)
        return 1

    print(report.model_dump_json(indent=2))
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
