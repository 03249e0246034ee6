"""
ReliefLine - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import Generator

import pytest
from faker import Faker

# Set testing environment before the app reads its settings
_TEST_DIR = tempfile.mkdtemp(prefix="reliefline-tests-")
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['REOPEN_COOLDOWN_HOURS'] = '48'
os.environ['TRANSACTION_MAX_ATTEMPTS'] = '5'

from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from db import engine
from main import app
from models import Need, User
from schemas import NeedBase
from routers.auth import create_session_token, hash_password
from services import needs as engine_service

fake = Faker()

OWNER_PIN = "1234"
DONOR_PIN = "5678"


@pytest.fixture(autouse=True)
def database() -> Generator[None, None, None]:
    """Fresh tables for each test"""
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


def need_payload(**overrides) -> dict:
    payload = {
        "type": "GOODS",
        "item": fake.word(),
        "category": "Food",
        "urgency": "HIGH",
        "affected_count": fake.random_int(min=1, max=200),
        "unit": "packs",
        "district": "Colombo",
        "location": fake.street_address(),
        "contact_name": fake.name(),
        "contact_number": "0771234567",
        "quantity": 10,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_need(session: Session):
    """Create a need straight through the lifecycle engine."""

    def factory(pin: str = OWNER_PIN, **overrides) -> Need:
        data = need_payload(**overrides)
        need = Need(**NeedBase(**data).model_dump())
        return engine_service.create_need(session, need, pin)

    return factory


@pytest.fixture
def admin_user(session: Session) -> User:
    """Create an admin test user"""
    user = User(
        email=fake.email(),
        name=fake.name(),
        role="admin",
        password_hash=hash_password("adminpassword123"),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin_client(client: TestClient, admin_user: User) -> TestClient:
    client.cookies.set("session", create_session_token(admin_user.id))
    return client
