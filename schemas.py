
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import (
    NeedStatus,
    NeedType,
    PersonStatus,
    ServiceCategory,
    ServiceRequestStatus,
    Urgency,
    VolunteerSkill,
    VolunteerStatus,
)

# Creating a post or pledging needs a well-formed PIN. Guarded mutations take
# whatever is typed and let the PIN check answer.
NewPin = Annotated[str, Field(pattern=r"^[0-9]{4}$")]


class PinBody(BaseModel):
    pin: str = ""


# ---------- needs ----------

class NeedBase(BaseModel):
    type: NeedType = NeedType.GOODS
    item: str = Field(min_length=1)
    category: str
    urgency: Urgency = Urgency.MEDIUM
    affected_count: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    district: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: str
    contact_number: str
    description: Optional[str] = None
    people_needed: Optional[int] = Field(default=None, ge=0)
    quantity: int = Field(default=0, ge=0)


class NeedCreate(NeedBase):
    pin: NewPin


class NeedUpdate(BaseModel):
    type: Optional[NeedType] = None
    item: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    urgency: Optional[Urgency] = None
    affected_count: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    district: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: Optional[str] = None
    contact_number: Optional[str] = None
    description: Optional[str] = None
    people_needed: Optional[int] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)


class NeedPatch(PinBody):
    changes: NeedUpdate


class NeedRead(NeedBase):
    id: int
    pledged_amount: int
    received_amount: int
    closed: bool
    status: NeedStatus
    pledged_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PledgeCreate(BaseModel):
    amount: int = Field(gt=0)
    pin: NewPin


class PledgeLookup(BaseModel):
    pin: NewPin


class ReceiveCreate(PinBody):
    amount: int = Field(gt=0)


class PledgeRead(BaseModel):
    id: int
    need_id: int
    amount: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClosedUpdate(BaseModel):
    closed: bool


# ---------- people ----------

class PersonBase(BaseModel):
    name: str = Field(min_length=1)
    nic: Optional[str] = None
    district: str
    status: PersonStatus = PersonStatus.MISSING
    last_seen_location: str
    last_seen_date: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = Field(default=None, pattern="^(Male|Female|Other)$")
    physical_description: Optional[str] = None
    contact_number: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    message: Optional[str] = None


class PersonCreate(PersonBase):
    pin: NewPin


class PersonUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    nic: Optional[str] = None
    district: Optional[str] = None
    status: Optional[PersonStatus] = None
    last_seen_location: Optional[str] = None
    last_seen_date: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = Field(default=None, pattern="^(Male|Female|Other)$")
    physical_description: Optional[str] = None
    contact_number: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    message: Optional[str] = None


class PersonPatch(PinBody):
    changes: PersonUpdate


class PersonRead(PersonBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- volunteers ----------

class VolunteerBase(BaseModel):
    name: str = Field(min_length=1)
    contact_number: str
    district: str
    location: str
    skills: List[VolunteerSkill] = []
    coverage_area: str = "Whole District"
    status: VolunteerStatus = VolunteerStatus.AVAILABLE


class VolunteerCreate(VolunteerBase):
    pin: NewPin


class VolunteerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact_number: Optional[str] = None
    district: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[List[VolunteerSkill]] = None
    coverage_area: Optional[str] = None
    status: Optional[VolunteerStatus] = None


class VolunteerPatch(PinBody):
    changes: VolunteerUpdate


class VolunteerRead(VolunteerBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- service requests ----------

class ServiceRequestBase(BaseModel):
    category: ServiceCategory
    details: Dict[str, Any] = {}
    district: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: str
    contact_phone: str


class ServiceRequestCreate(ServiceRequestBase):
    pin: NewPin


class ServiceRequestUpdate(BaseModel):
    category: Optional[ServiceCategory] = None
    details: Optional[Dict[str, Any]] = None
    district: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    status: Optional[ServiceRequestStatus] = None


class ServiceRequestPatch(PinBody):
    changes: ServiceRequestUpdate


class ServiceRequestRead(ServiceRequestBase):
    id: int
    status: ServiceRequestStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------- registry & stats ----------

class RegistryRead(BaseModel):
    owner: List[str]
    pledger: List[str]


class StatsRead(BaseModel):
    """
    Dashboard counters. `fulfilled_needs` counts needs marked received
    (closed); fully pledged needs still awaiting delivery are not included.
    """

    total_needs: int
    fulfilled_needs: int
    people_safe: int
    missing_people: int
    active_volunteers: int
    open_service_requests: int


# ---------- users ----------

class UserCreate(BaseModel):
    email: EmailStr
    name: str
    password: str = Field(min_length=8)


class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class LoginData(BaseModel):
    email: EmailStr
    password: str
