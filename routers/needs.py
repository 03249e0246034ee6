from typing import List, Optional

from fastapi import APIRouter, Response

import store
from db import SessionDep
from models import Need, NeedStatus
from schemas import (
    NeedCreate,
    NeedPatch,
    NeedRead,
    PinBody,
    PledgeCreate,
    PledgeLookup,
    PledgeRead,
    ReceiveCreate,
)
from services import needs as engine
from services.pins import authorized_delete, authorized_update
from services.registry import OWNER, PLEDGER, RegistryDep, save_registry

router = APIRouter(tags=["needs"])

COLLECTION = "needs"


def _read(need: Need) -> NeedRead:
    return NeedRead.model_validate(need)


@router.post("/", response_model=NeedRead, status_code=201)
def create_need(
    data: NeedCreate,
    session: SessionDep,
    registry: RegistryDep,
    response: Response,
):
    """
    Post a new need. The PIN is required later to edit, close or delete it.
    """
    need = Need(**data.model_dump(exclude={"pin"}))
    need = engine.create_need(session, need, data.pin, registry)
    save_registry(response, registry)
    return _read(need)


@router.get("/", response_model=List[NeedRead])
def list_needs(
    session: SessionDep,
    registry: RegistryDep,
    status: Optional[NeedStatus] = None,
    district: Optional[str] = None,
    category: Optional[str] = None,
    mine: bool = False,
    pledged: bool = False,
):
    """
    List needs, newest first.
    `mine` / `pledged` keep only needs this browser posted / pledged to.
    """
    where = []
    if district is not None:
        where.append(Need.district == district)
    if category is not None:
        where.append(Need.category == category)

    results = [_read(n) for n in store.list_documents(session, COLLECTION, *where)]

    if status is not None:
        results = [n for n in results if n.status == status]
    if mine:
        results = [n for n in results if registry.contains(store.post_key(COLLECTION, n.id), OWNER)]
    if pledged:
        results = [n for n in results if registry.contains(store.post_key(COLLECTION, n.id), PLEDGER)]
    return results


@router.get("/{need_id}", response_model=NeedRead)
def get_need(need_id: int, session: SessionDep):
    return _read(store.get_document(session, COLLECTION, need_id))


@router.get("/{need_id}/pledges", response_model=List[PledgeRead])
def list_pledges(need_id: int, session: SessionDep):
    """
    Active pledges on a need, oldest first.
    """
    return [PledgeRead.model_validate(e) for e in engine.active_pledges(session, need_id)]


@router.post("/{need_id}/pledges/lookup", response_model=List[PledgeRead])
def lookup_my_pledges(need_id: int, data: PledgeLookup, session: SessionDep):
    """
    Pledges on this need made with the given PIN.
    """
    entries = engine.pledges_for_pin(session, need_id, data.pin)
    return [PledgeRead.model_validate(e) for e in entries]


@router.post("/{need_id}/pledge", response_model=NeedRead)
def pledge(
    need_id: int,
    data: PledgeCreate,
    session: SessionDep,
    registry: RegistryDep,
    response: Response,
):
    need = engine.pledge(session, need_id, data.amount, data.pin, registry)
    save_registry(response, registry)
    return _read(need)


@router.post("/{need_id}/receive", response_model=NeedRead)
def receive(need_id: int, data: ReceiveCreate, session: SessionDep):
    """
    Owner confirms delivery and closes the need.
    """
    return _read(engine.receive(session, need_id, data.amount, data.pin))


@router.post("/{need_id}/reopen", response_model=NeedRead)
def reopen(need_id: int, data: PinBody, session: SessionDep):
    return _read(engine.reopen(session, need_id, data.pin))


@router.patch("/{need_id}", response_model=NeedRead)
def update_need(need_id: int, data: NeedPatch, session: SessionDep):
    changes = data.changes.model_dump(exclude_unset=True)
    return _read(authorized_update(session, COLLECTION, need_id, data.pin, changes))


@router.post("/{need_id}/delete", status_code=204)
def delete_need(
    need_id: int,
    data: PinBody,
    session: SessionDep,
    registry: RegistryDep,
):
    response = Response(status_code=204)
    authorized_delete(session, COLLECTION, need_id, data.pin, registry)
    save_registry(response, registry)
    return response
