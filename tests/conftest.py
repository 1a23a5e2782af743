import os

# Configuration is read at import time, so this must run before the app loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_DATABASE"] = "false"
os.environ["API_TOKENS"] = "test-token-789:front-till,test-token-790:back-office"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import SessionLocal, engine  # noqa: E402
from models import Base, Brand, Customer, Product  # noqa: E402


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def client():
    from main import app

    # No context manager: lifespan (schema creation, Redis, profiling) is skipped
    return TestClient(app)


@pytest.fixture()
def auth_headers():
    return {"Authorization": "Bearer test-token-789"}


@pytest.fixture()
def customer(db):
    record = Customer(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    db.add(record)
    db.commit()
    return record


@pytest.fixture()
def brand(db):
    record = Brand(name="Sony", discounts=Decimal("0.00"))
    db.add(record)
    db.commit()
    return record


@pytest.fixture()
def make_product(db):
    def _make(name="Headphones", price="10.00", stock=10, brand_id=None, product_id=None):
        product = Product(
            id=product_id,
            name=name,
            price=Decimal(price),
            stock=stock,
            brand_id=brand_id,
        )
        db.add(product)
        db.commit()
        return product

    return _make
