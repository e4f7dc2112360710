from supabase import create_async_client, AsyncClient
import httpx
import logging
from typing import Any, Dict, List, Optional

from salonbook.core.config import settings
from salonbook.core.errors import StorageError
from salonbook.services.record_store import RecordStore

logger = logging.getLogger("salonbook")


def _storage_error(action: str, collection: str, e: Exception) -> StorageError:
    transient = isinstance(e, (httpx.TransportError, ConnectionError, TimeoutError))
    logger.error(f"❌ DB Error ({action} {collection}): {e}")
    return StorageError(f"{action} on {collection} failed: {e}", transient=transient)


class SupabaseRecordStore(RecordStore):
    """Record Store backed by Supabase tables (one table per collection)."""

    def __init__(self, url: str = None, key: str = None):
        self.url = url if url is not None else settings.SUPABASE_URL
        self.key = key if key is not None else settings.SUPABASE_KEY
        self._client: Optional[AsyncClient] = None

    async def get_client(self) -> AsyncClient:
        if not self._client:
            if not (self.url and self.key):
                logger.warning("⚠️ Supabase credentials missing")
                raise StorageError("Supabase credentials missing")
            try:
                self._client = await create_async_client(self.url, self.key)
                logger.info("✅ Supabase Async client initialized")
            except Exception as e:
                raise _storage_error("connect", "supabase", e)
        return self._client

    async def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        client = await self.get_client()
        try:
            response = await client.table(collection).insert(record).execute()
        except Exception as e:
            raise _storage_error("insert", collection, e)
        if not response.data:
            raise StorageError(f"insert on {collection} returned no data")
        return response.data[0]

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        client = await self.get_client()
        try:
            request = client.table(collection).select("*")
            for column, value in (filters or {}).items():
                request = request.eq(column, value)
            if order_by:
                request = request.order(order_by, desc=descending)
            response = await request.execute()
            return response.data or []
        except Exception as e:
            raise _storage_error("query", collection, e)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        client = await self.get_client()
        try:
            request = client.table(collection).update(fields).eq("id", record_id)
            for column, value in (expected or {}).items():
                request = request.eq(column, value)
            response = await request.execute()
        except Exception as e:
            raise _storage_error("update", collection, e)
        if response.data:
            return response.data[0]
        return None

    async def delete(self, collection: str, record_id: str) -> None:
        client = await self.get_client()
        try:
            await client.table(collection).delete().eq("id", record_id).execute()
            logger.info(f"🗑️ {collection} {record_id} deleted from DB.")
        except Exception as e:
            raise _storage_error("delete", collection, e)
