"""
Shared fixtures: one in-memory SQLite database per test, a session the
API shares through the ``get_db`` override, and small factories.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["DEBUG"] = "True"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine, get_db
from app.main import app as fastapi_app
from app.models import (
    Broker, Furnishing, ListingType, PropertyListing, PropertyStatus, PropertyType,
    User, UserRole, VerificationStatus,
)
from app.services.profiles import compute_completeness
from app.utils.auth import create_access_token, get_password_hash

PASSWORD = "s3cret-pass"
_PASSWORD_HASH = get_password_hash(PASSWORD)

_LISTING_ENUMS = {
    "type": ListingType,
    "property_type": PropertyType,
    "status": PropertyStatus,
    "furnishing": Furnishing,
}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    # no context manager: the lifespan would create tables on its own
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.USER, email=None, **fields):
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            password_hash=_PASSWORD_HASH,
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_broker(db, make_user):
    def _make(status=VerificationStatus.VERIFIED, created_at=None, **fields):
        user = make_user(role=UserRole.BROKER)
        values = {
            "name": "Layla Haddad",
            "whatsapp_number": "+971501234567",
            "languages": ["English", "Arabic"],
            "specialties": [],
            "areas_of_operation": ["Dubai Marina"],
        }
        values.update(fields)
        broker = Broker(user_id=user.id, verification_status=status, **values)
        if created_at is not None:
            broker.created_at = created_at
        broker.profile_completeness_score = compute_completeness(broker)
        db.add(broker)
        db.commit()
        db.refresh(broker)
        return broker

    return _make


@pytest.fixture
def make_listing(db):
    counter = {"n": 0}
    base_time = datetime(2026, 1, 1, 12, 0, 0)

    def _make(broker, **fields):
        counter["n"] += 1
        values = {
            "reference_number": f"MS-{counter['n']:05d}",
            "title": f"Listing {counter['n']}",
            "type": "sale",
            "property_type": "apartment",
            "location": "Dubai Marina",
            "price": "AED 1,500,000",
            "bedrooms": 2,
            "bathrooms": 2,
            "area": "1,200 sq ft",
            "images": ["https://img.example.com/1.jpg"],
            # later listings are newer unless told otherwise
            "created_at": base_time + timedelta(minutes=counter["n"]),
        }
        values.update(fields)
        for key, enum_cls in _LISTING_ENUMS.items():
            if key in values:
                values[key] = enum_cls(values[key])
        listing = PropertyListing(broker_id=broker.id, **values)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return _make
