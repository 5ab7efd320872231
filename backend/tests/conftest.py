"""Pytest configuration and fixtures."""

import os

# Audit writes from middleware use their own session on the app engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_franchise_pos.db")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from franchise_pos.core.rate_limit import limiter, pin_login_limiter
from franchise_pos.core.rbac import UserRole
from franchise_pos.core.security import (
    create_access_token,
    get_password_hash,
    get_pin_hash,
    issue_station_token,
)
from franchise_pos.db.base import Base
from franchise_pos.db.session import engine_options, get_db
from franchise_pos.main import app
# Import all models to ensure they're registered with Base.metadata
from franchise_pos.models import *  # noqa: F401,F403
from franchise_pos.models.inventory import Item
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.models.tenant import BusinessConfig, Franchise, Franchisor
from franchise_pos.models.user import User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(TEST_DATABASE_URL, poolclass=StaticPool, **engine_options(TEST_DATABASE_URL))
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiters during tests to avoid flaky failures
    limiter.enabled = False
    pin_login_limiter.enabled = False
    pin_login_limiter.reset()
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    pin_login_limiter.enabled = True
    app.dependency_overrides.clear()


def make_user(db: Session, email: str, role: UserRole, password: str = "testpass123", **fields) -> User:
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        name=fields.pop("name", email.split("@")[0].title()),
        is_active=True,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    """Bearer headers for ``user``."""
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


# ============== Tenants ==============

@pytest.fixture
def franchisor(db_session: Session) -> Franchisor:
    franchisor = Franchisor(name="Sharp Cuts", company_name="Sharp Cuts LLC", industry_type="SERVICE")
    db_session.add(franchisor)
    db_session.flush()
    db_session.add(BusinessConfig(franchisor_id=franchisor.id, max_locations=3))
    db_session.commit()
    db_session.refresh(franchisor)
    return franchisor


@pytest.fixture
def franchise(db_session: Session, franchisor: Franchisor) -> Franchise:
    franchise = Franchise(franchisor_id=franchisor.id, name="Sharp Cuts Dallas", slug="sharp-cuts-dallas")
    db_session.add(franchise)
    db_session.commit()
    db_session.refresh(franchise)
    return franchise


@pytest.fixture
def location(db_session: Session, franchise: Franchise) -> Location:
    location = Location(
        franchise_id=franchise.id,
        name="Main Street",
        slug="main-street",
        address="100 Main St",
        city="Dallas",
        state="TX",
        provisioning_status=ProvisioningStatus.PENDING,
    )
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def second_location(db_session: Session, franchise: Franchise) -> Location:
    location = Location(
        franchise_id=franchise.id,
        name="Elm Street",
        slug="elm-street",
        address="200 Elm St",
    )
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def other_franchise(db_session: Session) -> Franchise:
    """A franchise under an unrelated franchisor."""
    franchisor = Franchisor(name="Other Brand")
    db_session.add(franchisor)
    db_session.flush()
    franchise = Franchise(franchisor_id=franchisor.id, name="Other Brand Austin", slug="other-brand-austin")
    db_session.add(franchise)
    db_session.commit()
    db_session.refresh(franchise)
    return franchise


# ============== Users ==============

@pytest.fixture
def provider_user(db_session: Session) -> User:
    return make_user(db_session, "provider@example.com", UserRole.PROVIDER)


@pytest.fixture
def franchisor_user(db_session: Session, franchisor: Franchisor) -> User:
    return make_user(db_session, "owner@example.com", UserRole.FRANCHISOR, franchisor_id=franchisor.id)


@pytest.fixture
def franchisee_user(db_session: Session, franchise: Franchise) -> User:
    return make_user(db_session, "franchisee@example.com", UserRole.FRANCHISEE, franchise_id=franchise.id)


@pytest.fixture
def manager_user(db_session: Session, franchise: Franchise, location: Location) -> User:
    return make_user(
        db_session, "manager@example.com", UserRole.MANAGER,
        franchise_id=franchise.id, location_id=location.id,
    )


@pytest.fixture
def employee_user(db_session: Session, franchise: Franchise, location: Location) -> User:
    user = make_user(
        db_session, "barber@example.com", UserRole.EMPLOYEE,
        franchise_id=franchise.id, location_id=location.id, phone="5551234567",
    )
    user.pin_hash = get_pin_hash("1234")
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def provider_headers(provider_user: User) -> dict:
    return headers_for(provider_user)


@pytest.fixture
def franchisor_headers(franchisor_user: User) -> dict:
    return headers_for(franchisor_user)


@pytest.fixture
def franchisee_headers(franchisee_user: User) -> dict:
    return headers_for(franchisee_user)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return headers_for(manager_user)


@pytest.fixture
def employee_headers(employee_user: User) -> dict:
    return headers_for(employee_user)


# ============== Terminal ==============

@pytest.fixture
def station(db_session: Session, location: Location) -> Station:
    station = Station(location_id=location.id, name="Front Register", is_trusted=True)
    db_session.add(station)
    db_session.commit()
    db_session.refresh(station)
    return station


@pytest.fixture
def station_headers(station: Station, location: Location) -> dict:
    token = issue_station_token(
        station_id=station.id,
        location_id=location.id,
        franchise_id=location.franchise_id,
        device_fingerprint="test-device",
        station_name=station.name,
    )
    return {"X-Station-Token": token}


@pytest.fixture
def pos_headers(station_headers: dict, employee_headers: dict) -> dict:
    """Station token plus the signed-in employee."""
    return {**station_headers, **employee_headers}


# ============== Catalog ==============

@pytest.fixture
def product(db_session: Session, franchise: Franchise, location: Location) -> Item:
    item = Item(
        franchise_id=franchise.id,
        location_id=location.id,
        name="Pomade",
        sku="POM-01",
        item_type="PRODUCT",
        price=Decimal("20.00"),
        cost=Decimal("8.00"),
        stock=10,
        reorder_point=3,
        max_stock=20,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


# ============== Helpers as fixtures ==============

@pytest.fixture
def user_factory(db_session: Session):
    """``user_factory(email, role, **fields)`` creates and returns a user."""
    def factory(email: str, role: UserRole, **fields) -> User:
        return make_user(db_session, email, role, **fields)
    return factory


@pytest.fixture
def auth_headers_for():
    return headers_for
