"""In-process document store with optional JSON-file persistence."""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any

from agentbuilders.errors import NotFoundError
from agentbuilders.storage.base import INDEXES, TABLES, Document, DocumentStore, Predicate

logger = logging.getLogger(__name__)


def _sort_value(value: Any) -> tuple[bool, Any]:
    # None sorts before any value
    return (value is not None, value if value is not None else 0)


class MemoryStore(DocumentStore):
    """Thread-safe dict-backed store.

    Usage:
        store = MemoryStore()
        category_id = store.insert("categories", {"name": "Full-code"})
        store.query("categories", "by_name", eq={"name": "Full-code"})
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[str, dict[str, Document]] = {table: {} for table in TABLES}
        self._seq: dict[str, int] = {}
        self._counter = 0

    def _table(self, table: str) -> dict[str, Document]:
        if table not in self._tables:
            raise ValueError(f"Unknown table: {table}")
        return self._tables[table]

    def get(self, table: str, doc_id: str) -> Document | None:
        with self._lock:
            doc = self._table(table).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, table: str, doc: Document) -> str:
        with self._lock:
            rows = self._table(table)
            doc_id = doc.get("id") or f"{table}_{uuid.uuid4().hex[:12]}"
            if doc_id in rows:
                raise ValueError(f"Duplicate id in {table}: {doc_id}")
            stored = copy.deepcopy(doc)
            stored["id"] = doc_id
            rows[doc_id] = stored
            self._counter += 1
            self._seq[doc_id] = self._counter
            self._on_write()
            return doc_id

    def patch(self, table: str, doc_id: str, fields: Document) -> Document:
        with self._lock:
            rows = self._table(table)
            if doc_id not in rows:
                raise NotFoundError(table, doc_id)
            update = {k: copy.deepcopy(v) for k, v in fields.items() if k != "id"}
            rows[doc_id].update(update)
            self._on_write()
            return copy.deepcopy(rows[doc_id])

    def query(
        self,
        table: str,
        index: str,
        *,
        eq: Document | None = None,
        gte: Any = None,
        lte: Any = None,
        order: str = "asc",
        limit: int | None = None,
        where: Predicate | None = None,
    ) -> list[Document]:
        fields = INDEXES.get(table, {}).get(index)
        if fields is None:
            raise ValueError(f"Unknown index {index!r} on table {table!r}")
        eq = eq or {}
        if tuple(eq) != fields[: len(eq)]:
            raise ValueError(f"Equality fields {tuple(eq)} are not a prefix of {index} {fields}")
        range_field = fields[len(eq)] if len(eq) < len(fields) else None
        if range_field is None and (gte is not None or lte is not None):
            raise ValueError(f"Index {index} has no field left for a range constraint")
        if order not in ("asc", "desc"):
            raise ValueError(f"Invalid order: {order}")

        with self._lock:
            rows = [
                doc for doc in self._table(table).values()
                if all(doc.get(k) == v for k, v in eq.items())
            ]
            if range_field is not None:
                if gte is not None:
                    rows = [d for d in rows if d.get(range_field) is not None and d[range_field] >= gte]
                if lte is not None:
                    rows = [d for d in rows if d.get(range_field) is not None and d[range_field] <= lte]

            rows.sort(
                key=lambda d: (*(_sort_value(d.get(f)) for f in fields), self._seq[d["id"]]),
                reverse=order == "desc",
            )

            results = []
            for doc in rows:
                if where is not None and not where(doc):
                    continue
                results.append(copy.deepcopy(doc))
                if limit is not None and len(results) >= limit:
                    break
            return results

    def all(self, table: str, where: Predicate | None = None) -> list[Document]:
        with self._lock:
            rows = sorted(self._table(table).values(), key=lambda d: self._seq[d["id"]])
            return [copy.deepcopy(d) for d in rows if where is None or where(d)]

    def _on_write(self) -> None:
        """Hook called with the lock held after every write."""

    def dump(self) -> dict[str, list[Document]]:
        """Return every table as a list of documents in insertion order."""
        with self._lock:
            return {table: self.all(table) for table in TABLES}


class JsonFileStore(MemoryStore):
    """MemoryStore that rewrites a JSON file after every write.

    Suitable for local runs and the CLI; production deployments plug a managed
    document database in behind the same DocumentStore interface.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        self._loading = False
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        data = json.loads(self.path.read_text())
        self._loading = True
        try:
            for table, docs in data.items():
                if table not in self._tables:
                    logger.warning(f"Ignoring unknown table {table} in {self.path}")
                    continue
                for doc in docs:
                    self.insert(table, doc)
        finally:
            self._loading = False
        logger.debug(f"Loaded store from {self.path}")

    def _on_write(self) -> None:
        if self._loading:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self.dump(), indent=2))
        tmp.replace(self.path)
