from typing import List

from fastapi import APIRouter, Depends

from salonbook.api.deps import get_salon, write_response
from salonbook.models.api_models import ServiceCreate, ServiceUpdate, WorkerCreate, WorkerUpdate, WriteResponse
from salonbook.models.domain import Service, Worker
from salonbook.services.salon import Salon

router = APIRouter()

@router.get("/services", response_model=List[Service])
async def list_services(include_inactive: bool = False, salon: Salon = Depends(get_salon)):
    return salon.catalog.list_services(include_inactive)

@router.post("/services", response_model=WriteResponse)
async def add_service(req: ServiceCreate, salon: Salon = Depends(get_salon)):
    result = await salon.catalog.add_service(req.name, req.client_price, req.description)
    return write_response(result)

@router.patch("/services/{service_id}", response_model=WriteResponse)
async def update_service(service_id: str, req: ServiceUpdate, salon: Salon = Depends(get_salon)):
    result = await salon.catalog.update_service(service_id, req.model_dump(exclude_unset=True))
    return write_response(result)

@router.delete("/services/{service_id}", response_model=WriteResponse)
async def remove_service(service_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.catalog.remove_service(service_id))

@router.get("/workers", response_model=List[Worker])
async def list_workers(include_inactive: bool = False, salon: Salon = Depends(get_salon)):
    return salon.catalog.list_workers(include_inactive)

@router.post("/workers", response_model=WriteResponse)
async def add_worker(req: WorkerCreate, salon: Salon = Depends(get_salon)):
    result = await salon.catalog.add_worker(req.name, req.role, req.payment_rate)
    return write_response(result)

@router.patch("/workers/{worker_id}", response_model=WriteResponse)
async def update_worker(worker_id: str, req: WorkerUpdate, salon: Salon = Depends(get_salon)):
    result = await salon.catalog.update_worker(worker_id, req.model_dump(exclude_unset=True))
    return write_response(result)

@router.delete("/workers/{worker_id}", response_model=WriteResponse)
async def remove_worker(worker_id: str, salon: Salon = Depends(get_salon)):
    return write_response(await salon.catalog.remove_worker(worker_id))
