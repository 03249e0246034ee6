from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Integer
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NeedStatus(str, Enum):
    """Need lifecycle status (derived, never stored)."""
    REQUESTED = "pending"
    PARTIALLY_PLEDGED = "partially_pledged"
    FULLY_PLEDGED = "fully_pledged"
    RECEIVED = "completed"


class NeedType(str, Enum):
    GOODS = "GOODS"
    SERVICE = "SERVICE"


class Urgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PersonStatus(str, Enum):
    SAFE = "SAFE"
    MISSING = "MISSING"


class VolunteerStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"


class VolunteerSkill(str, Enum):
    GOODS = "GOODS"
    SERVICES = "SERVICES"
    LABOR = "LABOR"


class ServiceCategory(str, Enum):
    RESCUE = "RESCUE"
    MEDICAL = "MEDICAL"
    EVACUATION = "EVACUATION"
    CLEANUP = "CLEANUP"
    OTHER = "OTHER"


class ServiceRequestStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


def derive_status(pledged: Optional[int], quantity: Optional[int]) -> NeedStatus:
    """
    Status from pledged amount and target.
    RECEIVED is never derived, only declared through ``Need.closed``.
    """
    pledged = pledged or 0
    quantity = quantity or 0
    if pledged <= 0:
        return NeedStatus.REQUESTED
    if pledged < quantity:
        return NeedStatus.PARTIALLY_PLEDGED
    return NeedStatus.FULLY_PLEDGED


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    name: str
    role: str = "user"  # user | admin
    password_hash: str


_need_version = Column("version", Integer, nullable=False)


class Need(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    type: NeedType = NeedType.GOODS
    item: str
    category: str
    urgency: Urgency = Urgency.MEDIUM
    affected_count: int = 0
    unit: Optional[str] = None
    district: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: str
    contact_number: str
    description: Optional[str] = None
    people_needed: Optional[int] = None

    quantity: int = 0
    pledged_amount: int = 0
    received_amount: int = 0
    closed: bool = False

    secret_pin_hash: Optional[str] = None
    donor_pin_hash: Optional[str] = None
    pledged_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    # bumped on every UPDATE; a stale version aborts the flush
    version: int = Field(default=1, sa_column=_need_version)
    __mapper_args__ = {"version_id_col": _need_version}

    @property
    def status(self) -> NeedStatus:
        if self.closed:
            return NeedStatus.RECEIVED
        return derive_status(self.pledged_amount, self.quantity)


class PledgeEntry(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    need_id: int = Field(foreign_key="need.id", index=True)

    amount: int
    pin_hash: str
    created_at: datetime = Field(default_factory=utcnow)
    voided_at: Optional[datetime] = None  # set when the need is reopened


class Person(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    nic: Optional[str] = None
    district: str
    status: PersonStatus = PersonStatus.MISSING
    last_seen_location: str
    last_seen_date: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    physical_description: Optional[str] = None
    contact_number: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    message: Optional[str] = None

    secret_pin_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Volunteer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    contact_number: str
    district: str
    location: str
    skills: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    coverage_area: str = "Whole District"
    status: VolunteerStatus = VolunteerStatus.AVAILABLE

    secret_pin_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ServiceRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    category: ServiceCategory
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    district: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: str
    contact_phone: str
    status: ServiceRequestStatus = ServiceRequestStatus.PENDING

    secret_pin_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
