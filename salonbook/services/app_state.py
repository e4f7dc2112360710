import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Tuple, Type, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ValidationError as PydanticValidationError

from salonbook.core.config import settings
from salonbook.core.config_loader import load_business_config, get_default_services, get_default_workers
from salonbook.core.errors import StorageError
from salonbook.core.logger import logger
from salonbook.models.domain import Booking, BookingDetails, BookingMember, Service, Worker
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services import reconciliation
from salonbook.services.local_cache import LocalCache
from salonbook.services.record_store import (
    BOOKING_DETAILS, BOOKING_MEMBERS, BOOKINGS, SERVICES, WORKERS, RecordStore,
)

M = TypeVar("M", bound=BaseModel)

CACHE_SERVICES = "salonbook_services"
CACHE_WORKERS = "salonbook_workers"
CACHE_BOOKINGS = "salonbook_bookings"
CACHE_DETAILS = "salonbook_booking_details"


class Persisted(NamedTuple):
    outcome: WriteOutcome
    record: Optional[Dict[str, Any]]
    error: Optional[StorageError]

    @property
    def failed(self) -> bool:
        return self.outcome == WriteOutcome.FAILED

    def to_result(self, data: Any = None) -> WriteResult:
        return WriteResult(outcome=self.outcome, data=None if self.failed else data, error=self.error)


def _parse_rows(model: Type[M], rows: Optional[List[Dict[str, Any]]], collection: str) -> List[M]:
    parsed = []
    for row in rows or []:
        try:
            parsed.append(model.model_validate(row))
        except PydanticValidationError as e:
            logger.warning(f"⚠️ Skipping malformed {collection} record {row.get('id')}: {e}")
    return parsed


class AppState:
    """
    In-memory view of the business, shared by every manager.

    Records are immutable snapshots: mutations build a new model and swap it in,
    so a reader sees either the old or the new record, never a partial one.
    Mutations are serialized through `lock`.
    """

    def __init__(
        self,
        store: RecordStore,
        cache: LocalCache,
        business_config: Optional[Dict[str, Any]] = None,
        timezone: str = None,
        allow_local_only: bool = None,
        create_retries: int = None,
    ):
        self.store = store
        self.cache = cache
        self.business_config = business_config
        self.tz = ZoneInfo(timezone or settings.TIMEZONE)
        self.allow_local_only = settings.ALLOW_LOCAL_ONLY_WRITES if allow_local_only is None else allow_local_only
        retries = settings.CREATE_RETRY_ATTEMPTS if create_retries is None else create_retries
        self.create_retries = max(0, min(retries, 1))

        self.services: List[Service] = []
        self.workers: List[Worker] = []
        self.bookings: List[Booking] = []
        self.details: Dict[str, BookingDetails] = {}
        self.source: Optional[str] = None
        self.lock = asyncio.Lock()

    # --- Lookups ---

    def find_service(self, service_id: str) -> Optional[Service]:
        return next((s for s in self.services if s.id == service_id), None)

    def find_worker(self, worker_id: str) -> Optional[Worker]:
        return next((w for w in self.workers if w.id == worker_id), None)

    def find_booking(self, booking_id: str) -> Optional[Booking]:
        return next((b for b in self.bookings if b.id == booking_id), None)

    def find_member(self, member_id: str) -> Tuple[Optional[Booking], Optional[BookingMember]]:
        for booking in self.bookings:
            for member in booking.members:
                if member.id == member_id:
                    return booking, member
        return None, None

    # --- Snapshot swaps ---

    @staticmethod
    def _swap(items: List[M], new: M) -> None:
        for i, item in enumerate(items):
            if item.id == new.id:
                items[i] = new
                return
        items.append(new)

    def put_service(self, service: Service) -> None:
        self._swap(self.services, service)
        self.mirror(CACHE_SERVICES)

    def put_worker(self, worker: Worker) -> None:
        self._swap(self.workers, worker)
        self.mirror(CACHE_WORKERS)

    def put_booking(self, booking: Booking) -> None:
        self._swap(self.bookings, booking)
        self.mirror(CACHE_BOOKINGS)

    def drop_booking(self, booking_id: str) -> None:
        self.bookings = [b for b in self.bookings if b.id != booking_id]
        self.details.pop(booking_id, None)
        self.mirror(CACHE_BOOKINGS, CACHE_DETAILS)

    def put_details(self, details: BookingDetails) -> None:
        self.details[details.booking_id] = details
        self.mirror(CACHE_DETAILS)

    def drop_details(self, booking_id: str) -> None:
        self.details.pop(booking_id, None)
        self.mirror(CACHE_DETAILS)

    # --- Persistence ---

    async def persist(
        self,
        action: Callable[[], Awaitable[Optional[Dict[str, Any]]]],
        *,
        create: bool = False,
        allow_local_only: Optional[bool] = None,
        description: str = "write",
    ) -> Persisted:
        """
        Run a Record Store call and decide the outcome.

        Create operations get at most one retry on transient failures.
        When the store fails, the write is accepted locally only if the policy allows it.
        """
        attempts = 1 + (self.create_retries if create else 0)
        error = None
        for attempt in range(attempts):
            try:
                record = await action()
                return Persisted(WriteOutcome.REMOTE, record, None)
            except StorageError as e:
                error = e
                if e.transient and attempt + 1 < attempts:
                    logger.warning(f"🔁 Transient failure on {description}, retrying: {e}")
                    continue
                break

        allow = self.allow_local_only if allow_local_only is None else allow_local_only
        if allow:
            logger.warning(f"💾 {description} kept local only: {error}")
            return Persisted(WriteOutcome.LOCAL_ONLY, None, error)
        logger.error(f"❌ {description} failed, state unchanged: {error}")
        return Persisted(WriteOutcome.FAILED, None, error)

    async def store_update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Plain update; a record missing from the store counts as a storage failure."""
        record = await self.store.update(collection, record_id, fields)
        if record is None:
            raise StorageError(f"{collection} {record_id} missing from Record Store")
        return record

    # --- Local cache mirroring ---

    def mirror(self, *keys: str) -> None:
        snapshot = {
            CACHE_SERVICES: lambda: [s.model_dump(mode="json") for s in self.services],
            CACHE_WORKERS: lambda: [w.model_dump(mode="json") for w in self.workers],
            CACHE_BOOKINGS: lambda: [b.model_dump(mode="json") for b in self.bookings],
            CACHE_DETAILS: lambda: [d.model_dump(mode="json") for d in self.details.values()],
        }
        for key in keys or snapshot.keys():
            self.cache.set(key, snapshot[key]())

    # --- Startup ---

    async def load(self) -> str:
        """
        Load state from the Record Store, falling back to the cached snapshot.
        Returns the source used: "remote", "cache" or "seed".
        """
        try:
            await self._load_remote()
            self.source = "remote"
            logger.info(f"✅ Loaded {len(self.bookings)} bookings from Record Store")
            self._report_unsynced()
        except StorageError as e:
            logger.warning(f"⚠️ Record Store unavailable, using local cache: {e}")
            self.source = "cache" if self._load_cache() else None

        if not self.services and not self.workers:
            await self._seed_catalog()
            self.source = self.source or "seed"

        await self._ensure_single_owner()
        self._resync_totals()
        self.mirror()
        return self.source

    async def _load_remote(self) -> None:
        services = await self.store.query(SERVICES, order_by="created_at")
        workers = await self.store.query(WORKERS, order_by="created_at")
        bookings = await self.store.query(BOOKINGS, order_by="created_at")
        members = await self.store.query(BOOKING_MEMBERS, order_by="created_at")
        details = await self.store.query(BOOKING_DETAILS)

        self.services = _parse_rows(Service, services, SERVICES)
        self.workers = _parse_rows(Worker, workers, WORKERS)
        parsed_bookings = _parse_rows(Booking, bookings, BOOKINGS)
        parsed_members = _parse_rows(BookingMember, members, BOOKING_MEMBERS)

        by_booking: Dict[str, List[BookingMember]] = {}
        for member in parsed_members:
            by_booking.setdefault(member.booking_id, []).append(member)
        self.bookings = [
            b.model_copy(update={"members": by_booking.get(b.id, [])}) for b in parsed_bookings
        ]
        self.details = {d.booking_id: d for d in _parse_rows(BookingDetails, details, BOOKING_DETAILS)}

    def unsynced_cache_ids(self) -> Dict[str, List[str]]:
        """Ids in the cached snapshot that the loaded state does not have, per collection."""
        cached_bookings = self.cache.get(CACHE_BOOKINGS) or []
        cached = {
            SERVICES: self.cache.get(CACHE_SERVICES) or [],
            WORKERS: self.cache.get(CACHE_WORKERS) or [],
            BOOKINGS: cached_bookings,
            BOOKING_MEMBERS: [m for b in cached_bookings for m in b.get("members") or []],
        }
        loaded = {
            SERVICES: {s.id for s in self.services},
            WORKERS: {w.id for w in self.workers},
            BOOKINGS: {b.id for b in self.bookings},
            BOOKING_MEMBERS: {m.id for b in self.bookings for m in b.members},
        }

        missing = {}
        for collection, rows in cached.items():
            ids = [str(row.get("id")) for row in rows if row.get("id") not in loaded[collection]]
            if ids:
                missing[collection] = ids
        return missing

    def _report_unsynced(self) -> None:
        for collection, ids in self.unsynced_cache_ids().items():
            logger.warning(
                f"⚠️ {len(ids)} cached {collection} record(s) never reached the Record Store "
                f"and will be dropped: {', '.join(ids)}"
            )

    def _load_cache(self) -> bool:
        services = self.cache.get(CACHE_SERVICES)
        workers = self.cache.get(CACHE_WORKERS)
        bookings = self.cache.get(CACHE_BOOKINGS)
        details = self.cache.get(CACHE_DETAILS)
        if services is None and workers is None and bookings is None:
            logger.warning("⚠️ Local cache is empty")
            return False

        self.services = _parse_rows(Service, services, SERVICES)
        self.workers = _parse_rows(Worker, workers, WORKERS)
        self.bookings = _parse_rows(Booking, bookings, BOOKINGS)
        self.details = {d.booking_id: d for d in _parse_rows(BookingDetails, details, BOOKING_DETAILS)}
        logger.info(f"📦 Loaded {len(self.bookings)} bookings from local cache")
        return True

    def _config(self) -> Dict[str, Any]:
        if self.business_config is None:
            self.business_config = load_business_config()
        return self.business_config

    async def _seed_catalog(self) -> None:
        config = self._config()
        for raw in get_default_services(config):
            service = Service(**raw)
            await self.persist(lambda: self.store.insert(SERVICES, service.model_dump(mode="json")),
                               create=True, allow_local_only=True, description="seed service")
            self.services.append(service)
        for raw in get_default_workers(config):
            worker = Worker(**raw)
            await self.persist(lambda: self.store.insert(WORKERS, worker.model_dump(mode="json")),
                               create=True, allow_local_only=True, description="seed worker")
            self.workers.append(worker)
        logger.info(f"🌱 Seeded catalog: {len(self.services)} services, {len(self.workers)} workers")

    async def _ensure_single_owner(self) -> None:
        owners = [w for w in self.workers if w.is_owner]
        if len(owners) > 1:
            keep = owners[0]
            logger.warning(f"⚠️ {len(owners)} owners found, keeping '{keep.name}'")
            for extra in owners[1:]:
                await self.persist(lambda: self.store.update(WORKERS, extra.id, {"is_owner": False}),
                                   allow_local_only=True, description=f"demote owner {extra.id}")
            self.workers = [
                w.model_copy(update={"is_owner": False}) if w.is_owner and w.id != keep.id else w
                for w in self.workers
            ]
        elif not owners:
            seed = next((w for w in get_default_workers(self._config()) if w.get("is_owner")), None)
            owner = Worker(**(seed or {"name": "Owner", "role": "Owner"}))
            owner = owner.model_copy(update={"is_owner": True, "payment_rate": Decimal(0)})
            logger.warning(f"⚠️ No owner worker found, creating '{owner.name}'")
            await self.persist(lambda: self.store.insert(WORKERS, owner.model_dump(mode="json")),
                               create=True, allow_local_only=True, description="seed owner")
            self.workers.insert(0, owner)

    def _resync_totals(self) -> None:
        self.bookings = [
            b.model_copy(update={"total_amount": reconciliation.compute_booking_total(b.members)})
            if b.members else b
            for b in self.bookings
        ]
