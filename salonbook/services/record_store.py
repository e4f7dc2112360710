import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from salonbook.core.errors import StorageError

SERVICES = "services"
WORKERS = "workers"
BOOKINGS = "bookings"
BOOKING_DETAILS = "booking_details"
BOOKING_MEMBERS = "booking_members"

COLLECTIONS = (SERVICES, WORKERS, BOOKINGS, BOOKING_DETAILS, BOOKING_MEMBERS)


class RecordStore(ABC):
    """
    Persistence collaborator. Every method raises StorageError on failure.
    Records are plain JSON-compatible dicts keyed by a string "id".
    """

    @abstractmethod
    async def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Update one record. `expected` adds equality guards (compare-and-set).
        Returns the stored record, or None when no row matched.
        """

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        ...


def _matches(record: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    return all(record.get(k) == v for k, v in (filters or {}).items())


class InMemoryRecordStore(RecordStore):
    """Dict-backed store for tests and offline runs."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {c: {} for c in COLLECTIONS}

    def _table(self, collection: str) -> Dict[str, Dict[str, Any]]:
        if collection not in self.tables:
            raise StorageError(f"Unknown collection '{collection}'")
        return self.tables[collection]

    async def insert(self, collection, record):
        table = self._table(collection)
        if record.get("id") in table:
            raise StorageError(f"Duplicate id '{record['id']}' in {collection}")
        table[record["id"]] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def query(self, collection, filters=None, order_by=None, descending=False):
        rows = [copy.deepcopy(r) for r in self._table(collection).values() if _matches(r, filters)]
        if order_by:
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        return rows

    async def update(self, collection, record_id, fields, expected=None):
        table = self._table(collection)
        current = table.get(record_id)
        if current is None or not _matches(current, expected):
            return None
        current.update(copy.deepcopy(fields))
        return copy.deepcopy(current)

    async def delete(self, collection, record_id):
        self._table(collection).pop(record_id, None)
