"""
Pytest configuration and fixtures
"""

import os

# Configure the app for tests before any backoffice module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backoffice import models  # noqa: F401
from backoffice.auth import create_access_token
from backoffice.database import Base, SessionLocal, engine, get_db
from backoffice.main import app
from backoffice.models import Account, User


@pytest.fixture(scope="function")
def db() -> Session:
    """Database session on a fresh schema"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """Test client whose requests share the test session"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db: Session, email: str, applications=None, full_name: str = None) -> User:
    user = User(email=email, full_name=full_name or email.split("@")[0], applications=applications or [])
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def user(db: Session) -> User:
    return make_user(db, "owner@example.com", applications=["crm", "scheduler"], full_name="Olive Owner")


@pytest.fixture
def headers(user: User) -> dict:
    return auth_headers(user)


@pytest.fixture
def account(client, headers) -> dict:
    response = client.post("/api/crm/accounts", json={"name": "Acme Corp", "companyName": "Acme Corporation"}, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def account_row(db: Session, account: dict) -> Account:
    return db.query(Account).filter(Account.id == account["id"]).first()
