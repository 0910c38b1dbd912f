"""HTTP fetch and parse step for dsl.sk pages."""

from __future__ import annotations

import logging

import requests
from bs4 import BeautifulSoup

from dslcrawler.exceptions import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/129.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "sk,en-US;q=0.8,en;q=0.6",
}


class PageFetcher:
    """Download a URL and return its parsed markup tree."""

    def __init__(self, session: requests.Session | None = None, timeout: float = 30.0) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)
        self.timeout = timeout

    def parse(self, url: str, features: str = "lxml") -> BeautifulSoup:
        """Return the page at ``url`` parsed with the given BeautifulSoup ``features``.

        The raw response bytes are handed to BeautifulSoup so the document's own
        charset declaration decides the decoding.
        """

        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchFailure(url, str(exc)) from exc

        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return BeautifulSoup(response.content, features)


__all__ = ["DEFAULT_HEADERS", "PageFetcher"]
