"""Test fixtures: in-memory SQLite database, API client and signed-in users."""
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["APP_ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.audit import AuditService
from app.auth import create_access_token, hash_password
from app.database import Base, get_db
from app.main import app
from app.models import User
from app.services.expense_service import ExpenseService

TEST_PASSWORD = "secret123"


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db: Session, name: str, email: str) -> User:
    user = User(name=name, email=email, password_hash=hash_password(TEST_PASSWORD))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def user(db_session: Session) -> User:
    return _make_user(db_session, "Asha", "asha@example.com")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    return _make_user(db_session, "Ravi", "ravi@example.com")


@pytest.fixture()
def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture()
def other_auth_headers(other_user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_user)}"}


@pytest.fixture()
def audit_service(db_session: Session, user: User) -> AuditService:
    return AuditService(db_session, user.id)


@pytest.fixture()
def expense_service(db_session: Session, user: User, audit_service: AuditService) -> ExpenseService:
    return ExpenseService(db_session, user.id, audit_service)
