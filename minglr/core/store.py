"""
Document store adapter.

Services talk to the backend only through ``DocumentStore``: one-shot reads
(``get``, ``get_many``, ``fetch``), single writes, atomic write batches
(``apply``) and live queries (``watch``). Rows are plain JSON-compatible dicts
keyed by column name; every row has a text ``id``.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Backend limit on the number of values in one "in" filter.
IN_QUERY_LIMIT = 30

Row = Dict[str, Any]


@dataclass
class Filter:
    field: str
    op: str
    value: Any = None


@dataclass
class Query:
    """A single-table query built with chained filters, mirroring PostgREST."""
    table: str
    filters: List[Filter] = field(default_factory=list)
    ordering: List[Tuple[str, bool]] = field(default_factory=list)
    max_rows: Optional[int] = None

    def _add(self, field_name: str, op: str, value: Any = None) -> "Query":
        self.filters.append(Filter(field_name, op, value))
        return self

    def eq(self, field_name: str, value: Any) -> "Query":
        return self._add(field_name, "eq", value)

    def neq(self, field_name: str, value: Any) -> "Query":
        return self._add(field_name, "neq", value)

    def contains(self, field_name: str, values: Sequence[Any]) -> "Query":
        return self._add(field_name, "contains", list(values))

    def gte(self, field_name: str, value: Any) -> "Query":
        return self._add(field_name, "gte", value)

    def lte(self, field_name: str, value: Any) -> "Query":
        return self._add(field_name, "lte", value)

    def in_(self, field_name: str, values: Sequence[Any]) -> "Query":
        return self._add(field_name, "in", list(values))

    def not_null(self, field_name: str) -> "Query":
        return self._add(field_name, "not_null")

    def order(self, field_name: str, desc: bool = False) -> "Query":
        self.ordering.append((field_name, desc))
        return self

    def limit(self, count: int) -> "Query":
        self.max_rows = count
        return self

    def first_eq(self) -> Optional[Filter]:
        return next((f for f in self.filters if f.op == "eq"), None)


# --- batched writes ---

@dataclass
class Insert:
    """Insert a row; a row whose id already exists is left untouched."""
    table: str
    row: Row

    def to_payload(self) -> Row:
        return {"kind": "insert", "table": self.table, "row": self.row}


@dataclass
class Update:
    table: str
    id: str
    values: Row

    def to_payload(self) -> Row:
        return {"kind": "update", "table": self.table, "id": self.id, "values": self.values}


@dataclass
class ArrayUnion:
    """Append the values not already present. ``count_column``, when set, is kept equal to the array length."""
    table: str
    id: str
    column: str
    values: List[Any]
    count_column: Optional[str] = None

    def to_payload(self) -> Row:
        return {"kind": "array_union", "table": self.table, "id": self.id,
                "column": self.column, "values": self.values, "count_column": self.count_column}


@dataclass
class ArrayRemove:
    table: str
    id: str
    column: str
    values: List[Any]
    count_column: Optional[str] = None

    def to_payload(self) -> Row:
        return {"kind": "array_remove", "table": self.table, "id": self.id,
                "column": self.column, "values": self.values, "count_column": self.count_column}


@dataclass
class Increment:
    """Add ``delta`` to a numeric column, clamped at zero."""
    table: str
    id: str
    column: str
    delta: int

    def to_payload(self) -> Row:
        return {"kind": "increment", "table": self.table, "id": self.id,
                "column": self.column, "delta": self.delta}


Write = Insert | Update | ArrayUnion | ArrayRemove | Increment


class SnapshotFeed:
    """
    Async iterator over successive results of one query.

    The first ``__anext__`` returns the current result. Later calls wait for a
    change notification and then reload; notifications that pile up while the
    consumer is busy collapse into a single reload.
    """

    def __init__(self, load: Callable[[], Awaitable[List[Row]]], shape: Optional[Callable[[List[Row]], Any]] = None):
        self._load = load
        self._shape = shape
        self._changes: asyncio.Queue = asyncio.Queue()
        self._primed = False
        self._closed = False

    def notify(self) -> None:
        if not self._closed:
            self._changes.put_nowait(None)

    def close(self) -> None:
        self._closed = True
        self._changes.put_nowait(None)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "SnapshotFeed":
        return self

    async def __anext__(self) -> Any:
        if self._primed:
            await self._changes.get()
            while not self._changes.empty():
                self._changes.get_nowait()
        self._primed = True
        if self._closed:
            raise StopAsyncIteration
        rows = await self._load()
        return self._shape(rows) if self._shape else rows


class DocumentStore:
    """Backend-neutral document store. Subclasses provide the primitives."""

    async def get(self, table: str, row_id: str) -> Optional[Row]:
        raise NotImplementedError

    async def fetch(self, query: Query) -> List[Row]:
        raise NotImplementedError

    async def insert(self, table: str, row: Row) -> Row:
        raise NotImplementedError

    async def update(self, table: str, row_id: str, values: Row, expect: Optional[Row] = None) -> Optional[Row]:
        raise NotImplementedError

    async def update_where(self, query: Query, values: Row) -> int:
        raise NotImplementedError

    async def apply(self, writes: Sequence[Write]) -> None:
        raise NotImplementedError

    async def _listen(self, query: Query, notify: Callable[[], None]) -> Any:
        raise NotImplementedError

    async def _unlisten(self, handle: Any) -> None:
        raise NotImplementedError

    async def get_many(self, table: str, ids: Sequence[str]) -> List[Row]:
        """Fetch rows by id, chunking the "in" filter to the backend limit."""
        unique_ids = list(dict.fromkeys(ids))
        rows: List[Row] = []
        for start in range(0, len(unique_ids), IN_QUERY_LIMIT):
            chunk = unique_ids[start:start + IN_QUERY_LIMIT]
            rows.extend(await self.fetch(Query(table).in_("id", chunk)))
        return rows

    @asynccontextmanager
    async def watch(self, query: Query, shape: Optional[Callable[[List[Row]], Any]] = None) -> AsyncIterator[SnapshotFeed]:
        """
        Subscribe to a query for the duration of the ``async with`` block.

        Args:
            query (Query): The query whose result set is watched.
            shape (Optional[Callable]): Applied to every snapshot before it is yielded.

        Yields:
            SnapshotFeed: Async iterator of snapshots, starting with the current one.
        """
        feed = SnapshotFeed(lambda: self.fetch(query), shape)
        handle = await self._listen(query, feed.notify)
        logger.debug("Listening on %s", query.table)
        try:
            yield feed
        finally:
            feed.close()
            await self._unlisten(handle)
            logger.debug("Stopped listening on %s", query.table)
