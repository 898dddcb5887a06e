import logging
from typing import Any, Callable, List, NoReturn, Optional, Sequence

from postgrest.exceptions import APIError
from storage3.utils import StorageException
from supabase import AsyncClient, acreate_client

from minglr.core.config import settings
from minglr.core.errors import ConfigurationError, PermissionDenied, StoreError
from minglr.core.memory import MemoryBlobStore, MemoryStore
from minglr.core.store import DocumentStore, Query, Row, Write

logger = logging.getLogger(__name__)

# Postgres "insufficient_privilege", returned when row level security refuses a write
PERMISSION_DENIED_CODE = "42501"


async def get_supabase_client() -> AsyncClient:
    """Get Supabase client instance"""
    if not settings.supabase_url or not settings.supabase_key:
        raise ConfigurationError("Missing Supabase configuration")
    return await acreate_client(settings.supabase_url, settings.supabase_key)


async def get_supabase_admin_client() -> AsyncClient:
    """Get Supabase admin client with service role key"""
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ConfigurationError("Missing Supabase configuration")
    return await acreate_client(settings.supabase_url, settings.supabase_service_key)


def _raise_for(error: APIError, action: str) -> NoReturn:
    logger.error("Supabase %s failed: %s", action, error.message)
    if error.code == PERMISSION_DENIED_CODE:
        raise PermissionDenied("You do not have permission to do that") from error
    raise StoreError() from error


class SupabaseStore(DocumentStore):
    """``DocumentStore`` backed by PostgREST and the realtime change feed."""

    def __init__(self, client: AsyncClient):
        self.client = client

    def _filtered(self, builder: Any, query: Query) -> Any:
        for f in query.filters:
            if f.op == "eq":
                builder = builder.eq(f.field, f.value)
            elif f.op == "neq":
                builder = builder.neq(f.field, f.value)
            elif f.op == "contains":
                builder = builder.contains(f.field, f.value)
            elif f.op == "gte":
                builder = builder.gte(f.field, f.value)
            elif f.op == "lte":
                builder = builder.lte(f.field, f.value)
            elif f.op == "in":
                builder = builder.in_(f.field, f.value)
            elif f.op == "not_null":
                builder = builder.not_.is_(f.field, "null")
            else:
                raise ValueError(f"Unsupported filter: {f.op}")
        return builder

    async def get(self, table: str, row_id: str) -> Optional[Row]:
        try:
            response = await self.client.table(table).select("*").eq("id", row_id).limit(1).execute()
        except APIError as e:
            _raise_for(e, f"read of {table}")
        return response.data[0] if response.data else None

    async def fetch(self, query: Query) -> List[Row]:
        builder = self._filtered(self.client.table(query.table).select("*"), query)
        for column, desc in query.ordering:
            builder = builder.order(column, desc=desc)
        if query.max_rows is not None:
            builder = builder.limit(query.max_rows)
        try:
            response = await builder.execute()
        except APIError as e:
            _raise_for(e, f"query of {query.table}")
        return response.data or []

    async def insert(self, table: str, row: Row) -> Row:
        try:
            response = await self.client.table(table).insert(row).execute()
        except APIError as e:
            _raise_for(e, f"insert into {table}")
        if not response.data:
            raise StoreError()
        return response.data[0]

    async def update(self, table: str, row_id: str, values: Row, expect: Optional[Row] = None) -> Optional[Row]:
        builder = self.client.table(table).update(values).eq("id", row_id)
        for column, value in (expect or {}).items():
            builder = builder.eq(column, value)
        try:
            response = await builder.execute()
        except APIError as e:
            _raise_for(e, f"update of {table}")
        return response.data[0] if response.data else None

    async def update_where(self, query: Query, values: Row) -> int:
        builder = self._filtered(self.client.table(query.table).update(values), query)
        try:
            response = await builder.execute()
        except APIError as e:
            _raise_for(e, f"update of {query.table}")
        return len(response.data or [])

    async def apply(self, writes: Sequence[Write]) -> None:
        """Run the writes in one transaction via the ``apply_batch`` database function."""
        payload = [write.to_payload() for write in writes]
        try:
            await self.client.rpc("apply_batch", {"ops": payload}).execute()
        except APIError as e:
            _raise_for(e, "batch write")

    async def _listen(self, query: Query, notify: Callable[[], None]) -> Any:
        channel = self.client.channel(f"{query.table}-changes-{id(notify)}")
        options = {"table": query.table, "schema": "public"}
        first = query.first_eq()
        if first is not None:
            options["filter"] = f"{first.field}=eq.{first.value}"
        channel.on_postgres_changes("*", callback=lambda payload: notify(), **options)
        await channel.subscribe()
        return channel

    async def _unlisten(self, handle: Any) -> None:
        await self.client.remove_channel(handle)


class SupabaseBlobStore:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        bucket_api = self.client.storage.from_(bucket)
        try:
            await bucket_api.upload(path, data, {"content-type": content_type})
            return await bucket_api.get_public_url(path)
        except StorageException as e:
            message = str(e)
            logger.error("Upload to %s/%s failed: %s", bucket, path, message)
            if "403" in message or "nauthorized" in message or "row-level security" in message:
                raise PermissionDenied("Permission denied. Please check your storage rules.") from e
            raise StoreError(message or "Upload failed") from e


# Process-wide instances, created on first use
_admin_client: Optional[AsyncClient] = None
_auth_client: Optional[AsyncClient] = None
_store: Optional[DocumentStore] = None
_blob_store: Any = None


async def get_admin_client() -> AsyncClient:
    global _admin_client
    if _admin_client is None:
        _admin_client = await get_supabase_admin_client()
    return _admin_client


async def get_auth_client() -> AsyncClient:
    """Client reserved for sign-in calls, which replace its credentials with the user's."""
    global _auth_client
    if _auth_client is None:
        _auth_client = await get_supabase_client()
    return _auth_client


async def get_store() -> DocumentStore:
    """FastAPI dependency returning the configured document store."""
    global _store
    if _store is None:
        if settings.store_backend == "memory":
            _store = MemoryStore()
        else:
            _store = SupabaseStore(await get_admin_client())
    return _store


async def get_blob_store() -> Any:
    """FastAPI dependency returning the configured blob store."""
    global _blob_store
    if _blob_store is None:
        if settings.store_backend == "memory":
            _blob_store = MemoryBlobStore()
        else:
            _blob_store = SupabaseBlobStore(await get_admin_client())
    return _blob_store
