# backend/tests/conftest.py
"""
Pytest configuration.

Every test gets a fresh in-memory SQLite database. The environment is set
before any marketplace import so the module-level engine and settings never
point at a developer database.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ.pop("REDIS_URL", None)

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.api.dependencies import get_db
from marketplace.core.enums import RoleName
from marketplace.database import Base
from marketplace.main import app
import marketplace.models  # noqa: F401  registers every table on Base.metadata
from marketplace.models.car import Car
from marketplace.models.user import User

from .factories import make_car, make_user


@pytest.fixture(scope="function")
def engine():
    test_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    """Session bound to the per-test database; closed after the test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def admin(db: Session) -> User:
    return make_user(db, RoleName.ADMIN, "Ada Admin")


@pytest.fixture
def owner(db: Session) -> User:
    return make_user(db, RoleName.OWNER, "Omar Owner")


@pytest.fixture
def customer(db: Session) -> User:
    return make_user(db, RoleName.CUSTOMER, "Cara Customer")


@pytest.fixture
def other_customer(db: Session) -> User:
    return make_user(db, RoleName.CUSTOMER, "Cole Customer")


@pytest.fixture
def driver(db: Session) -> User:
    return make_user(db, RoleName.DRIVER, "Dev Driver")


@pytest.fixture
def car(db: Session, owner: User) -> Car:
    return make_car(db, owner)
