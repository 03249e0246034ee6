from typing import List, Optional

from fastapi import APIRouter, Response

import store
from db import SessionDep
from models import ServiceCategory, ServiceRequest, ServiceRequestStatus
from schemas import (
    PinBody,
    ServiceRequestCreate,
    ServiceRequestPatch,
    ServiceRequestRead,
)
from services.pins import authorized_delete, authorized_update, hash_pin
from services.registry import OWNER, RegistryDep, save_registry

router = APIRouter(tags=["service-requests"])

COLLECTION = "service_requests"


@router.post("/", response_model=ServiceRequestRead, status_code=201)
def create_service_request(
    data: ServiceRequestCreate,
    session: SessionDep,
    registry: RegistryDep,
    response: Response,
):
    """
    Ask for rescue, medical help, evacuation or cleanup.
    """
    request = ServiceRequest(**data.model_dump(exclude={"pin"}))
    request.secret_pin_hash = hash_pin(data.pin)
    request = store.create_document(session, COLLECTION, request)

    registry.record(store.post_key(COLLECTION, request.id), OWNER)
    save_registry(response, registry)
    return ServiceRequestRead.model_validate(request)


@router.get("/", response_model=List[ServiceRequestRead])
def list_service_requests(
    session: SessionDep,
    category: Optional[ServiceCategory] = None,
    status: Optional[ServiceRequestStatus] = None,
    district: Optional[str] = None,
):
    where = []
    if category is not None:
        where.append(ServiceRequest.category == category)
    if status is not None:
        where.append(ServiceRequest.status == status)
    if district is not None:
        where.append(ServiceRequest.district == district)
    requests = store.list_documents(session, COLLECTION, *where)
    return [ServiceRequestRead.model_validate(r) for r in requests]


@router.get("/{request_id}", response_model=ServiceRequestRead)
def get_service_request(request_id: int, session: SessionDep):
    request = store.get_document(session, COLLECTION, request_id)
    return ServiceRequestRead.model_validate(request)


@router.patch("/{request_id}", response_model=ServiceRequestRead)
def update_service_request(request_id: int, data: ServiceRequestPatch, session: SessionDep):
    """
    Edit the request or move it along (PENDING -> IN_PROGRESS -> COMPLETED).
    """
    changes = data.changes.model_dump(exclude_unset=True)
    request = authorized_update(session, COLLECTION, request_id, data.pin, changes)
    return ServiceRequestRead.model_validate(request)


@router.post("/{request_id}/delete", status_code=204)
def delete_service_request(
    request_id: int,
    data: PinBody,
    session: SessionDep,
    registry: RegistryDep,
):
    response = Response(status_code=204)
    authorized_delete(session, COLLECTION, request_id, data.pin, registry)
    save_registry(response, registry)
    return response
