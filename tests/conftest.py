"""
Test fixtures for onlinebank tests.

Provides in-memory database engines, settings overrides and an application
client wired to an in-memory database.
"""

import os
from datetime import date
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from onlinebank.core.config import Settings
from onlinebank.models import Client, Currency, Nationality


def pytest_collection_modifyitems(config, items):
    """Skip integration tests (need a real PostgreSQL) unless TEST_DATABASE_URL is set."""
    if os.environ.get("TEST_DATABASE_URL"):
        return
    skip_integration = pytest.mark.skip(reason="TEST_DATABASE_URL not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# Use in-memory SQLite for unit tests (fast, isolated)
TEST_DATABASE_URL = "sqlite:///:memory:"


def make_engine():
    return create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(scope="function")
def empty_engine():
    """In-memory engine with no tables (what the bootstrapper sees on first start)."""
    engine = make_engine()
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_engine():
    """In-memory engine with the schema already created."""
    engine = make_engine()
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a test database session."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: no background probing during a test, no seeding."""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        ACTIVE_PROFILE="test",
        DB_PROBE_INTERVAL_MS=3_600_000,
        DB_VALIDATION_TIMEOUT_MS=2000,
        DATA_INIT_ENABLED=False,
        SENTRY_DSN="",
    )


@pytest.fixture
def app(test_settings, empty_engine):
    from onlinebank.main import create_app

    return create_app(settings=test_settings, engine=empty_engine)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Application client; entering it runs startup (probe, schema bootstrap)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client_payload() -> dict:
    return {
        "last_name": "Иванов",
        "first_name": "Иван",
        "middle_name": "Петрович",
        "birth_date": "1985-04-12",
        "currency": "RUB",
        "nationality": "RUSSIA",
        "phone_number": "+79161234567",
    }


@pytest.fixture
def sample_clients(test_session: Session) -> list[Client]:
    """Five clients with mixed currencies, nationalities and ages."""
    clients = [
        Client(
            unique_id="00000000-0000-4000-8000-000000000001",
            last_name="Иванов",
            first_name="Иван",
            middle_name="Петрович",
            birth_date=date(1980, 1, 15),
            account_number="10000000000000000001",
            currency=Currency.RUB,
            nationality=Nationality.RUSSIA,
            phone_number="+79160000001",
        ),
        Client(
            unique_id="00000000-0000-4000-8000-000000000002",
            last_name="Петрова",
            first_name="Анна",
            middle_name="Сергеевна",
            birth_date=date(1995, 6, 1),
            account_number="10000000000000000002",
            currency=Currency.USD,
            nationality=Nationality.KAZAKHSTAN,
            phone_number="+77010000002",
        ),
        Client(
            unique_id="00000000-0000-4000-8000-000000000003",
            last_name="Smith",
            first_name="John",
            birth_date=date(1970, 3, 20),
            account_number="10000000000000000003",
            currency=Currency.EUR,
            nationality=Nationality.UK,
            phone_number="+441234567890",
        ),
        Client(
            unique_id="00000000-0000-4000-8000-000000000004",
            last_name="Сидоров",
            first_name="Олег",
            middle_name="Иванович",
            birth_date=date(2000, 11, 30),
            account_number="10000000000000000004",
            currency=Currency.RUB,
            nationality=Nationality.RUSSIA,
            phone_number="+79160000004",
        ),
        Client(
            unique_id="00000000-0000-4000-8000-000000000005",
            last_name="Козлова",
            first_name="Мария",
            birth_date=date(1990, 8, 8),
            account_number="10000000000000000005",
            currency=Currency.RUB,
            nationality=Nationality.BELARUS,
            phone_number="+375290000005",
        ),
    ]
    for c in clients:
        test_session.add(c)
    test_session.commit()
    for c in clients:
        test_session.refresh(c)
    return clients
