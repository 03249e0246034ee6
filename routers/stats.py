from fastapi import APIRouter
from sqlalchemy import func
from sqlmodel import select

from db import SessionDep
from models import (
    Need,
    Person,
    PersonStatus,
    ServiceRequest,
    ServiceRequestStatus,
    Volunteer,
)
from schemas import StatsRead

router = APIRouter(tags=["stats"])


def _count(session: SessionDep, model, *where) -> int:
    query = select(func.count()).select_from(model)
    if where:
        query = query.where(*where)
    return session.exec(query).one()


@router.get("/", response_model=StatsRead)
def get_stats(session: SessionDep):
    """Dashboard counters."""
    return StatsRead(
        total_needs=_count(session, Need),
        fulfilled_needs=_count(session, Need, Need.closed == True),  # noqa: E712
        people_safe=_count(session, Person, Person.status == PersonStatus.SAFE),
        missing_people=_count(session, Person, Person.status == PersonStatus.MISSING),
        active_volunteers=_count(session, Volunteer),
        open_service_requests=_count(
            session,
            ServiceRequest,
            ServiceRequest.status != ServiceRequestStatus.COMPLETED,
        ),
    )
