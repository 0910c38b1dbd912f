"""JSON-file backed record store for articles and user aggregates.

Each table keeps its rows in memory, indexed by id and by key, and writes its
JSON file only when :meth:`RecordTable.flush` is called, the same way crawl
artefacts are written elsewhere in the project: UTF-8, ``ensure_ascii=False``,
indented. Concurrent crawl tasks share one store; :meth:`RecordTable.locked`
serialises read-modify-write sequences on a single key while unrelated keys
proceed in parallel.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generic, Hashable, Iterator, List, Mapping, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from dslcrawler.config import DEFAULT_STORE_ROOT
from dslcrawler.models import Article, User

logger = logging.getLogger(__name__)

ARTICLES_FILENAME = "articles.json"
USERS_FILENAME = "users.json"

RecordT = TypeVar("RecordT", bound=BaseModel)


def store_json(path: Path, payload: Any) -> None:
    """Persist *payload* to *path* in UTF-8 encoded JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as fp:
        json.dump(payload, fp, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


class RecordTable(Generic[RecordT]):
    """A keyed collection of pydantic records with ``find``/``create``/``update``."""

    def __init__(
        self,
        model: Type[RecordT],
        key_fields: Sequence[str],
        path: Path | str | None = None,
    ) -> None:
        self.model = model
        self.key_fields = tuple(key_fields)
        self.path = Path(path) if path is not None else None
        self._rows: Dict[int, RecordT] = {}
        self._ids_by_key: Dict[tuple, int] = {}
        self._next_id = 1
        self._dirty = False
        self._lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self._key_locks: Dict[Hashable, threading.Lock] = {}
        if self.path is not None and self.path.exists():
            self._load()

    def _load(self) -> None:
        assert self.path is not None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in record file: {self.path}") from exc

        rows = data.get("records", []) if isinstance(data, dict) else data
        try:
            records = [self.model.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise ValueError(f"Record file is invalid: {self.path}\n{exc}") from exc

        for record in records:
            if record.id is None:
                raise ValueError(f"Record file is invalid: {self.path}\nrecord without id")
            key = self.key_of(record.model_dump())
            if record.id in self._rows or key in self._ids_by_key:
                raise ValueError(
                    f"Record file is invalid: {self.path}\nduplicate id or key {key}"
                )
            self._rows[record.id] = record
            self._ids_by_key[key] = record.id
        self._next_id = max(self._rows, default=0) + 1
        logger.info("Loaded %d records from %s", len(self._rows), self.path)

    def key_of(self, fields: Mapping[str, Any]) -> tuple:
        return tuple(fields[name] for name in self.key_fields)

    @contextmanager
    def locked(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` around a read-modify-write sequence."""

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        with key_lock:
            yield

    def find_record(self, criteria: Mapping[str, Any]) -> RecordT | None:
        """Return the first record whose fields equal every item of ``criteria``.

        Criteria naming exactly the key fields are answered from the key index.
        """

        with self._lock:
            if set(criteria) == set(self.key_fields):
                record_id = self._ids_by_key.get(self.key_of(criteria))
                if record_id is None:
                    return None
                return self._rows[record_id].model_copy()

            for row in self._rows.values():
                if all(getattr(row, name) == value for name, value in criteria.items()):
                    return row.model_copy()
        return None

    def create(self, fields: Mapping[str, Any]) -> RecordT:
        """Insert a new record and return it with its assigned ``id``."""

        with self._lock:
            key = self.key_of(fields)
            if key in self._ids_by_key:
                raise ValueError(f"{self.model.__name__} with key {key} already exists")
            payload = {name: value for name, value in fields.items() if name != "id"}
            record = self.model.model_validate({**payload, "id": self._next_id})
            self._rows[record.id] = record
            self._ids_by_key[key] = record.id
            self._next_id += 1
            self._dirty = True
            return record.model_copy()

    def update(self, fields: Mapping[str, Any]) -> RecordT:
        """Overwrite the given fields of the record identified by ``fields["id"]``."""

        record_id = fields.get("id")
        with self._lock:
            if record_id not in self._rows:
                raise KeyError(f"No {self.model.__name__} with id {record_id}")
            current = self._rows[record_id].model_dump()
            old_key = self.key_of(current)
            current.update(fields)
            new_key = self.key_of(current)
            if new_key != old_key and new_key in self._ids_by_key:
                raise ValueError(f"{self.model.__name__} with key {new_key} already exists")
            record = self.model.model_validate(current)
            self._rows[record_id] = record
            del self._ids_by_key[old_key]
            self._ids_by_key[new_key] = record_id
            self._dirty = True
            return record.model_copy()

    def flush(self) -> bool:
        """Write pending changes to the table's file; return whether it was written."""

        with self._flush_lock:
            with self._lock:
                if self.path is None or not self._dirty:
                    return False
                payload = {
                    "records": [row.model_dump(mode="json") for row in self._rows.values()]
                }
                self._dirty = False
            store_json(self.path, payload)
            return True

    def all(self) -> List[RecordT]:
        with self._lock:
            return [row.model_copy() for row in self._rows.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class RecordStore:
    """The article and user tables persisted under one directory."""

    def __init__(self, root: Path | str | None = DEFAULT_STORE_ROOT) -> None:
        self.root = Path(root) if root is not None else None
        self.articles: RecordTable[Article] = RecordTable(
            Article, ("num",), self._path(ARTICLES_FILENAME)
        )
        self.users: RecordTable[User] = RecordTable(
            User, ("name", "registered"), self._path(USERS_FILENAME)
        )

    def _path(self, filename: str) -> Path | None:
        return self.root / filename if self.root is not None else None

    @classmethod
    def memory(cls) -> "RecordStore":
        """Return a store that never touches the filesystem."""

        return cls(root=None)

    def flush(self) -> None:
        """Write both tables' pending changes to disk."""

        self.articles.flush()
        self.users.flush()


__all__ = ["RecordStore", "RecordTable", "store_json"]
