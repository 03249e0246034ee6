from typing import List, Optional

from fastapi import APIRouter, Response
from sqlalchemy import func, or_

import store
from db import SessionDep
from models import Person, PersonStatus
from schemas import PersonCreate, PersonPatch, PersonRead, PinBody
from services.pins import authorized_delete, authorized_update, hash_pin
from services.registry import OWNER, RegistryDep, save_registry

router = APIRouter(tags=["people"])

COLLECTION = "people"


@router.post("/", response_model=PersonRead, status_code=201)
def report_person(
    data: PersonCreate,
    session: SessionDep,
    registry: RegistryDep,
    response: Response,
):
    """
    Report a missing person, or mark someone as safe.
    """
    person = Person(**data.model_dump(exclude={"pin"}))
    person.secret_pin_hash = hash_pin(data.pin)
    person = store.create_document(session, COLLECTION, person)

    registry.record(store.post_key(COLLECTION, person.id), OWNER)
    save_registry(response, registry)
    return PersonRead.model_validate(person)


@router.get("/", response_model=List[PersonRead])
def list_people(
    session: SessionDep,
    district: Optional[str] = None,
    status: Optional[PersonStatus] = None,
    q: Optional[str] = None,
):
    """
    List reports, optionally filtered by district, status, and a name/NIC search.
    """
    where = []
    if district is not None:
        where.append(Person.district == district)
    if status is not None:
        where.append(Person.status == status)
    if q:
        term = f"%{q.lower()}%"
        where.append(or_(func.lower(Person.name).like(term), func.lower(Person.nic).like(term)))

    return [PersonRead.model_validate(p) for p in store.list_documents(session, COLLECTION, *where)]


@router.get("/{person_id}", response_model=PersonRead)
def get_person(person_id: int, session: SessionDep):
    return PersonRead.model_validate(store.get_document(session, COLLECTION, person_id))


@router.patch("/{person_id}", response_model=PersonRead)
def update_person(person_id: int, data: PersonPatch, session: SessionDep):
    changes = data.changes.model_dump(exclude_unset=True)
    person = authorized_update(session, COLLECTION, person_id, data.pin, changes)
    return PersonRead.model_validate(person)


@router.post("/{person_id}/delete", status_code=204)
def delete_person(
    person_id: int,
    data: PinBody,
    session: SessionDep,
    registry: RegistryDep,
):
    response = Response(status_code=204)
    authorized_delete(session, COLLECTION, person_id, data.pin, registry)
    save_registry(response, registry)
    return response
