from pathlib import Path

import pytest

pytest.importorskip("pydantic")

from dslcrawler import _load_local_env
from dslcrawler.cli import build_parser, load_config
from dslcrawler.config import CONFIG_ENV_VAR, CrawlerConfig


def test_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "crawler.json"
    config = CrawlerConfig(pool_size=3, store_root=tmp_path / "records")
    config.dump(config_path)

    loaded = CrawlerConfig.from_file(config_path)
    assert loaded.pool_size == 3
    assert loaded.store_root == tmp_path / "records"
    assert loaded.url_for(12974) == "http://www.dsl.sk/article.php?article=12974"


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        CrawlerConfig.from_file(tmp_path / "absent.json")


def test_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "crawler.json"
    config_path.write_text("{", encoding="utf-8")

    with pytest.raises(ValueError):
        CrawlerConfig.from_file(config_path)


def test_invalid_values(tmp_path: Path) -> None:
    config_path = tmp_path / "crawler.json"
    config_path.write_text('{"pool_size": 0}', encoding="utf-8")

    with pytest.raises(ValueError):
        CrawlerConfig.from_file(config_path)


def test_article_url_needs_placeholder() -> None:
    with pytest.raises(ValueError):
        CrawlerConfig(article_url="http://www.dsl.sk/article.php")


def test_environment_variable_selects_file(tmp_path: Path, monkeypatch) -> None:
    config_path = tmp_path / "env.json"
    CrawlerConfig(pool_size=5).dump(config_path)
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_path))

    assert CrawlerConfig.from_file().pool_size == 5


def test_load_config_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "absent.json"))

    assert load_config(None) == CrawlerConfig()
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "absent.json"))


def test_cli_arguments() -> None:
    args = build_parser().parse_args(["10", "20", "--sequential", "--workers", "4"])

    assert (args.start, args.end, args.sequential, args.workers) == (10, 20, True, 4)

    defaults = build_parser().parse_args([])
    assert (defaults.start, defaults.end, defaults.sequential) == (1, None, False)


def test_env_file_selects_default_config(tmp_path: Path, monkeypatch) -> None:
    config_path = tmp_path / "from-env.json"
    env_path = tmp_path / ".env"
    env_path.write_text(
        f"# local overrides\n{CONFIG_ENV_VAR}=\"{config_path}\"\nIGNORED LINE\n", encoding="utf-8"
    )
    # setenv first so teardown also drops the value loaded from the file.
    monkeypatch.setenv(CONFIG_ENV_VAR, "")
    monkeypatch.delenv(CONFIG_ENV_VAR)

    _load_local_env(env_path)

    assert CrawlerConfig.default_path() == config_path


def test_env_file_does_not_override_environment(tmp_path: Path, monkeypatch) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(f"{CONFIG_ENV_VAR}={tmp_path / 'from-env.json'}\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "explicit.json"))

    _load_local_env(env_path)

    assert CrawlerConfig.default_path() == tmp_path / "explicit.json"
