"""Shared fixtures: an in-memory SQLite database rebuilt for every test."""

import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from app.auth import Identity
from app.db import SessionLocal, engine, get_session
from app.main import app
from app.models import Base
from app.services.realtime import connection_registry
from app.services.users import register_user


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    connection_registry.clear()
    yield
    connection_registry.clear()


@pytest.fixture
def db():
    """A session for calling services directly; flushed, never committed."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def identity_of(user) -> Identity:
    return Identity(user_id=user.id, username=user.username)


@pytest.fixture
def alice(db):
    return identity_of(register_user(db, "alice", "alice@example.com", "Alice Liddell"))


@pytest.fixture
def bob(db):
    return identity_of(register_user(db, "bob", "bob@example.com", "Bob Builder"))


@pytest.fixture
def carol(db):
    return identity_of(register_user(db, "carol", "carol@example.com", "Carol Danvers"))


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_users():
    """Committed users for API tests, returned as {username: id}."""
    with get_session() as session:
        users = [
            register_user(session, name, f"{name}@example.com", name.title())
            for name in ("alice", "bob", "carol")
        ]
        session.flush()
        return {u.username: u.id for u in users}


def auth(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}
