from typing import List, Optional

from fastapi import APIRouter, Response

import store
from db import SessionDep
from models import Volunteer, VolunteerSkill, VolunteerStatus
from schemas import PinBody, VolunteerCreate, VolunteerPatch, VolunteerRead
from services.pins import authorized_delete, authorized_update, hash_pin
from services.registry import OWNER, RegistryDep, save_registry

router = APIRouter(tags=["volunteers"])

COLLECTION = "volunteers"


@router.post("/", response_model=VolunteerRead, status_code=201)
def register_volunteer(
    data: VolunteerCreate,
    session: SessionDep,
    registry: RegistryDep,
    response: Response,
):
    volunteer = Volunteer(**data.model_dump(exclude={"pin"}))
    volunteer.secret_pin_hash = hash_pin(data.pin)
    volunteer = store.create_document(session, COLLECTION, volunteer)

    registry.record(store.post_key(COLLECTION, volunteer.id), OWNER)
    save_registry(response, registry)
    return VolunteerRead.model_validate(volunteer)


@router.get("/", response_model=List[VolunteerRead])
def list_volunteers(
    session: SessionDep,
    district: Optional[str] = None,
    status: Optional[VolunteerStatus] = None,
    skill: Optional[VolunteerSkill] = None,
):
    """
    List volunteers, optionally filtered by district, availability and skill.
    """
    where = []
    if district is not None:
        where.append(Volunteer.district == district)
    if status is not None:
        where.append(Volunteer.status == status)

    volunteers = store.list_documents(session, COLLECTION, *where)
    # skills is a JSON list, filtered here to stay portable across databases
    if skill is not None:
        volunteers = [v for v in volunteers if skill in (v.skills or [])]
    return [VolunteerRead.model_validate(v) for v in volunteers]


@router.get("/{volunteer_id}", response_model=VolunteerRead)
def get_volunteer(volunteer_id: int, session: SessionDep):
    return VolunteerRead.model_validate(store.get_document(session, COLLECTION, volunteer_id))


@router.patch("/{volunteer_id}", response_model=VolunteerRead)
def update_volunteer(volunteer_id: int, data: VolunteerPatch, session: SessionDep):
    changes = data.changes.model_dump(exclude_unset=True)
    volunteer = authorized_update(session, COLLECTION, volunteer_id, data.pin, changes)
    return VolunteerRead.model_validate(volunteer)


@router.post("/{volunteer_id}/delete", status_code=204)
def delete_volunteer(
    volunteer_id: int,
    data: PinBody,
    session: SessionDep,
    registry: RegistryDep,
):
    response = Response(status_code=204)
    authorized_delete(session, COLLECTION, volunteer_id, data.pin, registry)
    save_registry(response, registry)
    return response
