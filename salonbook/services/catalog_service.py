from decimal import Decimal
from typing import Any, Dict, List, Optional

from salonbook.core.errors import NotFoundError, ProtectedEntityError, ValidationError
from salonbook.core.logger import logger
from salonbook.models.domain import Service, Worker, validate_model
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services.app_state import AppState
from salonbook.services.record_store import SERVICES, WORKERS

SERVICE_FIELDS = {"name", "client_price", "description"}
WORKER_FIELDS = {"name", "role", "payment_rate", "is_owner"}


def _check_fields(fields: Dict[str, Any], allowed: set, entity: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Cannot edit {entity} fields: {', '.join(sorted(unknown))}")


class CatalogStore:
    """
    Services and workers. Both are soft-deleted so past bookings keep valid references.
    Exactly one worker is the owner; the owner cannot be deleted, renamed or demoted.
    """

    def __init__(self, state: AppState):
        self.state = state

    # --- Services ---

    def list_services(self, include_inactive: bool = False) -> List[Service]:
        return [s for s in self.state.services if include_inactive or s.is_active]

    def get_service(self, service_id: str) -> Service:
        service = self.state.find_service(service_id)
        if not service:
            raise NotFoundError("Service", service_id)
        return service

    async def add_service(
        self,
        name: str,
        client_price: Decimal,
        description: Optional[str] = None,
        allow_local_only: Optional[bool] = None,
    ) -> WriteResult:
        service = validate_model(Service, {"name": name, "client_price": client_price, "description": description})

        async with self.state.lock:
            persisted = await self.state.persist(
                lambda: self.state.store.insert(SERVICES, service.model_dump(mode="json")),
                create=True, allow_local_only=allow_local_only, description=f"add service '{service.name}'",
            )
            if not persisted.failed:
                self.state.put_service(service)
                logger.info(f"💄 Service added: {service.name} ({service.client_price})")
            return persisted.to_result(service)

    async def update_service(
        self, service_id: str, fields: Dict[str, Any], allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        _check_fields(fields, SERVICE_FIELDS, "service")

        async with self.state.lock:
            current = self.get_service(service_id)
            updated = validate_model(Service, {**current.model_dump(), **fields})
            changes = updated.model_dump(mode="json", include=set(fields))

            persisted = await self.state.persist(
                lambda: self.state.store_update(SERVICES, service_id, changes),
                allow_local_only=allow_local_only, description=f"update service {service_id}",
            )
            if not persisted.failed:
                self.state.put_service(updated)
                logger.info(f"✏️ Service updated: {updated.name}")
            return persisted.to_result(updated)

    async def remove_service(self, service_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        """Soft delete. Removing an inactive service is a no-op."""
        async with self.state.lock:
            current = self.get_service(service_id)
            if not current.is_active:
                return WriteResult(outcome=WriteOutcome.UNCHANGED, data=current)

            persisted = await self.state.persist(
                lambda: self.state.store_update(SERVICES, service_id, {"is_active": False}),
                allow_local_only=allow_local_only, description=f"remove service {service_id}",
            )
            updated = current.model_copy(update={"is_active": False})
            if not persisted.failed:
                self.state.put_service(updated)
                logger.info(f"🗑️ Service deactivated: {current.name}")
            return persisted.to_result(updated)

    # --- Workers ---

    def list_workers(self, include_inactive: bool = False) -> List[Worker]:
        """Owner first, then creation order."""
        workers = [w for w in self.state.workers if include_inactive or w.is_active]
        return sorted(workers, key=lambda w: not w.is_owner)

    def get_worker(self, worker_id: str) -> Worker:
        worker = self.state.find_worker(worker_id)
        if not worker:
            raise NotFoundError("Worker", worker_id)
        return worker

    def get_owner(self) -> Optional[Worker]:
        return next((w for w in self.state.workers if w.is_owner), None)

    async def add_worker(
        self,
        name: str,
        role: str,
        payment_rate: Decimal,
        allow_local_only: Optional[bool] = None,
    ) -> WriteResult:
        worker = validate_model(Worker, {"name": name, "role": role or "", "payment_rate": payment_rate, "is_owner": False})

        async with self.state.lock:
            persisted = await self.state.persist(
                lambda: self.state.store.insert(WORKERS, worker.model_dump(mode="json")),
                create=True, allow_local_only=allow_local_only, description=f"add worker '{worker.name}'",
            )
            if not persisted.failed:
                self.state.put_worker(worker)
                logger.info(f"👥 Worker added: {worker.name} ({worker.payment_rate} per service)")
            return persisted.to_result(worker)

    async def update_worker(
        self, worker_id: str, fields: Dict[str, Any], allow_local_only: Optional[bool] = None
    ) -> WriteResult:
        _check_fields(fields, WORKER_FIELDS, "worker")

        async with self.state.lock:
            current = self.get_worker(worker_id)
            if current.is_owner:
                if "name" in fields and (fields["name"] or "").strip() != current.name:
                    raise ProtectedEntityError("The owner's name cannot be changed")
                if "is_owner" in fields and not fields["is_owner"]:
                    raise ProtectedEntityError("The owner cannot be demoted")
                if fields.get("payment_rate"):
                    raise ProtectedEntityError("The owner draws no per-service rate")
            elif fields.get("is_owner"):
                raise ValidationError("There is already an owner; workers cannot be promoted")

            updated = validate_model(Worker, {**current.model_dump(), **fields})
            changes = updated.model_dump(mode="json", include=set(fields))

            persisted = await self.state.persist(
                lambda: self.state.store_update(WORKERS, worker_id, changes),
                allow_local_only=allow_local_only, description=f"update worker {worker_id}",
            )
            if not persisted.failed:
                self.state.put_worker(updated)
                logger.info(f"✏️ Worker updated: {updated.name}")
            return persisted.to_result(updated)

    async def remove_worker(self, worker_id: str, allow_local_only: Optional[bool] = None) -> WriteResult:
        """Soft delete. The owner is refused; removing an inactive worker is a no-op."""
        async with self.state.lock:
            current = self.get_worker(worker_id)
            if current.is_owner:
                raise ProtectedEntityError("The owner cannot be removed")
            if not current.is_active:
                return WriteResult(outcome=WriteOutcome.UNCHANGED, data=current)

            persisted = await self.state.persist(
                lambda: self.state.store_update(WORKERS, worker_id, {"is_active": False}),
                allow_local_only=allow_local_only, description=f"remove worker {worker_id}",
            )
            updated = current.model_copy(update={"is_active": False})
            if not persisted.failed:
                self.state.put_worker(updated)
                logger.info(f"🗑️ Worker deactivated: {current.name}")
            return persisted.to_result(updated)
