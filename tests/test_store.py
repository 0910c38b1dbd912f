from __future__ import annotations

import json
import threading
import time
from datetime import datetime
from pathlib import Path

import pytest

from dslcrawler.models import Article, User
from dslcrawler.store import RecordStore, RecordTable


def _article_fields(num: int = 1, **overrides) -> dict:
    fields = {
        "num": num,
        "title": f"Article {num}",
        "date": datetime(2013, 2, 1),
        "comment_count": 0,
    }
    fields.update(overrides)
    return fields


def test_create_assigns_ids_and_find_by_key() -> None:
    table = RecordTable(Article, ("num",))

    first = table.create(_article_fields(1))
    second = table.create(_article_fields(2))

    assert (first.id, second.id) == (1, 2)
    assert table.find_record({"num": 2}).title == "Article 2"
    assert table.find_record({"num": 3}) is None
    assert len(table) == 2


def test_create_rejects_duplicate_key() -> None:
    table = RecordTable(User, ("name", "registered"))
    table.create({"name": "janko", "registered": False})
    table.create({"name": "janko", "registered": True})

    with pytest.raises(ValueError):
        table.create({"name": "janko", "registered": False})


def test_update_overwrites_only_given_fields() -> None:
    table = RecordTable(Article, ("num",))
    created = table.create(_article_fields(100, comment_count=3))

    updated = table.update({"id": created.id, "comment_count": 5, "total_comment_length": 40})

    assert updated.comment_count == 5
    assert updated.total_comment_length == 40
    assert updated.title == "Article 100"
    assert table.find_record({"num": 100}).comment_count == 5


def test_update_unknown_id() -> None:
    table = RecordTable(Article, ("num",))

    with pytest.raises(KeyError):
        table.update({"id": 3, "comment_count": 1})


def test_returned_records_are_copies() -> None:
    table = RecordTable(Article, ("num",))
    created = table.create(_article_fields(1))

    created.comment_count = 99

    assert table.find_record({"num": 1}).comment_count == 0


def test_store_persists_and_reloads(tmp_path: Path) -> None:
    store = RecordStore(tmp_path)
    store.articles.create(_article_fields(5))
    store.users.create({"name": "marienka", "registered": True, "comment_count": 2})

    assert not (tmp_path / "users.json").exists()
    store.flush()

    payload = json.loads((tmp_path / "users.json").read_text(encoding="utf-8"))
    assert payload["records"][0]["name"] == "marienka"

    reloaded = RecordStore(tmp_path)
    assert reloaded.articles.find_record({"num": 5}).date == datetime(2013, 2, 1)
    assert reloaded.users.find_record({"name": "marienka", "registered": True}).comment_count == 2

    created = reloaded.articles.create(_article_fields(6))
    assert created.id == 2


def test_invalid_record_file(tmp_path: Path) -> None:
    (tmp_path / "articles.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        RecordStore(tmp_path)


@pytest.mark.parametrize(
    "records",
    [
        [{"name": "janko", "registered": False}],
        [{"id": 1, "name": "janko", "registered": False}, {"id": 1, "name": "hrasko", "registered": False}],
        [{"id": 1, "name": "janko", "registered": False}, {"id": 2, "name": "janko", "registered": False}],
    ],
)
def test_record_file_rows_need_unique_ids_and_keys(tmp_path: Path, records) -> None:
    (tmp_path / "users.json").write_text(json.dumps({"records": records}), encoding="utf-8")

    with pytest.raises(ValueError, match="Record file is invalid"):
        RecordStore(tmp_path)


def test_flush_writes_only_pending_changes(tmp_path: Path) -> None:
    table = RecordTable(Article, ("num",), tmp_path / "articles.json")

    assert not table.flush()
    table.create(_article_fields(1))
    assert table.flush()
    assert not table.flush()

    table.update({"id": 1, "comment_count": 4})
    assert table.flush()
    assert RecordTable(Article, ("num",), tmp_path / "articles.json").find_record({"num": 1}).comment_count == 4


def test_key_lookup_follows_updated_key() -> None:
    table = RecordTable(User, ("name", "registered"))
    created = table.create({"name": "janko", "registered": False, "comment_count": 1})

    table.update({"id": created.id, "name": "hrasko"})

    assert table.find_record({"name": "janko", "registered": False}) is None
    assert table.find_record({"registered": False, "name": "hrasko"}).comment_count == 1
    assert table.find_record({"comment_count": 1}).name == "hrasko"
    table.create({"name": "janko", "registered": False})
    with pytest.raises(ValueError):
        table.update({"id": created.id, "name": "janko"})


def test_memory_store_writes_nothing(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    store = RecordStore.memory()
    store.articles.create(_article_fields(1))
    store.flush()

    assert list(tmp_path.iterdir()) == []


def test_locked_serialises_same_key() -> None:
    table = RecordTable(User, ("name", "registered"))
    table.create({"name": "janko", "registered": False})
    key = ("janko", False)

    def increment() -> None:
        with table.locked(key):
            current = table.find_record({"name": "janko", "registered": False})
            time.sleep(0.001)
            table.update({"id": current.id, "comment_count": current.comment_count + 1})

    threads = [threading.Thread(target=increment) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert table.find_record({"name": "janko", "registered": False}).comment_count == 20
