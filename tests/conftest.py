import os

# Must be set before database.py is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_API_KEY"] = "test-admin-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import app
from database import get_db
from models import Base
from seed import seed_if_empty

# Seeded product ids
RED_ROSES = 1  # 899.00
PINK_ORCHID = 2  # 1499.00
TULIPS_OUT_OF_STOCK = 5  # 999.00
MIXED_ROSES = 7  # 1899.00

VALID_CARD = "4111111111111111"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    seed_if_empty(session)
    yield session
    session.close()


@pytest.fixture
def client(session_factory, db_session):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Sign up a user and return the Authorization headers for it."""
    def _register(email="asha@example.com", password="secret123"):
        response = client.post("/api/auth/signup", json={
            "first_name": "Asha",
            "last_name": "Rao",
            "email": email,
            "phone": "9876543210",
            "password": password,
            "confirm_password": password,
        })
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register


@pytest.fixture
def auth_headers(register):
    return register()


def address_payload(**overrides):
    payload = {
        "full_name": "Asha Rao",
        "phone": "9876543210",
        "email": "asha@example.com",
        "address_line1": "123 Flower Street, Indiranagar",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560038",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def ready_checkout(client, auth_headers):
    """
    Cart with two red rose bouquets, an address, standard delivery and
    cash on delivery confirmed.
    """
    client.post("/api/cart", json={"product_id": RED_ROSES, "quantity": 2}, headers=auth_headers)
    address = client.post("/api/addresses", json=address_payload(), headers=auth_headers).json()
    client.put("/api/checkout/address", json={"address_id": address["id"]}, headers=auth_headers)
    client.put("/api/checkout/delivery", json={"delivery_option_id": "standard"}, headers=auth_headers)
    response = client.put(
        "/api/checkout/payment", json={"method": "cod", "confirmed": True}, headers=auth_headers
    )
    assert response.status_code == 200, response.text
    return auth_headers
