"""
In-process backend with the same semantics as the Supabase one.

Used when ``STORE_BACKEND=memory`` (local development without a Supabase
project) and by the test-suite.
"""
import copy
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from minglr.core.errors import StoreError
from minglr.core.store import (ArrayRemove, ArrayUnion, DocumentStore, Filter, Increment,
                               Insert, Query, Row, Update, Write)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: Row, condition: Filter) -> bool:
    value = row.get(condition.field)
    if condition.op == "eq":
        return value == condition.value
    if condition.op == "neq":
        return value != condition.value
    if condition.op == "contains":
        return isinstance(value, list) and all(item in value for item in condition.value)
    if condition.op == "gte":
        return value is not None and value >= condition.value
    if condition.op == "lte":
        return value is not None and value <= condition.value
    if condition.op == "in":
        return value in condition.value
    if condition.op == "not_null":
        return value is not None
    raise ValueError(f"Unsupported filter: {condition.op}")


class MemoryStore(DocumentStore):
    def __init__(self):
        self._tables: Dict[str, Dict[str, Row]] = defaultdict(dict)
        self._listeners: Dict[str, List[Callable[[], None]]] = defaultdict(list)

    # --- reads ---

    async def get(self, table: str, row_id: str) -> Optional[Row]:
        row = self._tables[table].get(row_id)
        return copy.deepcopy(row) if row is not None else None

    async def fetch(self, query: Query) -> List[Row]:
        rows = [row for row in self._tables[query.table].values()
                if all(_matches(row, f) for f in query.filters)]
        for column, desc in reversed(query.ordering):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if query.max_rows is not None:
            rows = rows[:query.max_rows]
        return copy.deepcopy(rows)

    # --- writes ---

    async def insert(self, table: str, row: Row) -> Row:
        stored = self._insert(table, row, ignore_existing=False)
        self._emit(table)
        return copy.deepcopy(stored)

    async def update(self, table: str, row_id: str, values: Row, expect: Optional[Row] = None) -> Optional[Row]:
        row = self._tables[table].get(row_id)
        if row is None:
            return None
        if expect and any(row.get(k) != v for k, v in expect.items()):
            return None
        row.update(copy.deepcopy(values))
        self._emit(table)
        return copy.deepcopy(row)

    async def update_where(self, query: Query, values: Row) -> int:
        rows = [row for row in self._tables[query.table].values()
                if all(_matches(row, f) for f in query.filters)]
        for row in rows:
            row.update(copy.deepcopy(values))
        if rows:
            self._emit(query.table)
        return len(rows)

    async def apply(self, writes: Sequence[Write]) -> None:
        saved = copy.deepcopy(self._tables)
        try:
            for write in writes:
                self._apply_one(write)
        except Exception as e:
            self._tables = saved
            raise StoreError() from e
        for table in dict.fromkeys(w.table for w in writes):
            self._emit(table)

    def _insert(self, table: str, row: Row, ignore_existing: bool) -> Row:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        if stored.get("created_at") is None:
            stored["created_at"] = _now()
        existing = self._tables[table].get(stored["id"])
        if existing is not None:
            if ignore_existing:
                return existing
            raise StoreError(f"Duplicate id {stored['id']} in {table}")
        self._tables[table][stored["id"]] = stored
        return stored

    def _apply_one(self, write: Write) -> None:
        if isinstance(write, Insert):
            self._insert(write.table, write.row, ignore_existing=True)
            return
        row = self._tables[write.table].get(write.id)
        if row is None:
            return
        if isinstance(write, Update):
            row.update(copy.deepcopy(write.values))
        elif isinstance(write, ArrayUnion):
            current = list(row.get(write.column) or [])
            current.extend(v for v in write.values if v not in current)
            row[write.column] = current
            if write.count_column:
                row[write.count_column] = len(current)
        elif isinstance(write, ArrayRemove):
            row[write.column] = [v for v in row.get(write.column) or [] if v not in write.values]
            if write.count_column:
                row[write.count_column] = len(row[write.column])
        elif isinstance(write, Increment):
            row[write.column] = max(0, (row.get(write.column) or 0) + write.delta)
        else:
            raise TypeError(f"Unknown write: {write!r}")

    # --- change feed ---

    def _emit(self, table: str) -> None:
        for notify in list(self._listeners[table]):
            notify()

    async def _listen(self, query: Query, notify: Callable[[], None]) -> Any:
        self._listeners[query.table].append(notify)
        return (query.table, notify)

    async def _unlisten(self, handle: Any) -> None:
        table, notify = handle
        if notify in self._listeners[table]:
            self._listeners[table].remove(notify)

    def listener_count(self, table: str) -> int:
        return len(self._listeners[table])


class MemoryBlobStore:
    """Keeps uploaded objects in a dict and hands out ``memory://`` URLs."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.objects[f"{bucket}/{path}"] = data
        return f"memory://{bucket}/{path}"
