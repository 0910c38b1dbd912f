"""Configuration model and helpers for the dsl.sk crawler."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

__all__ = [
    "CrawlerConfig",
    "CONFIG_ENV_VAR",
    "DEFAULT_ARTICLE_URL",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FEED_URL",
    "DEFAULT_STORE_ROOT",
]

CONFIG_ENV_VAR = "DSLCRAWLER_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "crawler.json"
DEFAULT_STORE_ROOT = Path(__file__).resolve().parent / "data"

DEFAULT_ARTICLE_URL = "http://www.dsl.sk/article.php?article={num}"
DEFAULT_FEED_URL = "http://www.dsl.sk/export/rss_articles.php"


class CrawlerConfig(BaseModel):
    """Settings shared by the command line, the API and the crawl driver."""

    article_url: str = Field(
        default=DEFAULT_ARTICLE_URL,
        description="Article URL template; ``{num}`` is replaced by the article number",
    )
    feed_url: str = Field(
        default=DEFAULT_FEED_URL,
        description="RSS feed whose first item names the most recent article",
    )
    pool_size: int = Field(default=8, ge=1, description="Number of crawl worker threads")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    store_root: Path = Field(
        default=DEFAULT_STORE_ROOT,
        description="Directory holding ``articles.json`` and ``users.json``",
    )
    progress_interval: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between progress log lines while a parallel crawl drains",
    )

    @field_validator("article_url")
    @classmethod
    def _require_placeholder(cls, value: str) -> str:
        if "{num}" not in value:
            raise ValueError("article_url must contain a '{num}' placeholder")
        return value

    def url_for(self, num: int) -> str:
        """Return the article URL for ``num``."""

        return self.article_url.format(num=num)

    @staticmethod
    def default_path() -> Path:
        """Return the configuration path, honouring ``DSLCRAWLER_CONFIG``."""

        env_path = os.environ.get(CONFIG_ENV_VAR)
        return Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "CrawlerConfig":
        """Load configuration data from a JSON file."""

        config_path = Path(path) if path else cls.default_path()
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = Path(path) if path else self.default_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
