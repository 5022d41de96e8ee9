"""Shared fixtures: an in-memory SQLite database and a FastAPI test client."""
import os
import uuid

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, enable_sqlite_foreign_keys, get_db, init_db
from app.core.redis_client import EntityCache, get_entity_cache
from app.core.security import create_access_token
from app.main import app
from app.models.user import User


class FakeRedis:
    """Just enough of the redis client for the cache helper."""

    def __init__(self):
        self.store = {}
        self.deleted = []

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    def delete(self, *keys):
        self.deleted.extend(keys)
        return sum(1 for k in keys if self.store.pop(k, None) is not None)


def make_engine(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    init_db(engine)
    return engine


def add_user(session_factory, email: str) -> str:
    """Insert a user row directly and return its id."""
    session = session_factory()
    try:
        user = User(id=str(uuid.uuid4()), email=email, hashed_password="not-used")
        session.add(user)
        session.commit()
        return user.id
    finally:
        session.close()


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def user_id(session_factory):
    return add_user(session_factory, "anna@example.com")


@pytest.fixture
def other_user_id(session_factory):
    return add_user(session_factory, "bertil@example.com")


@pytest.fixture
def db(session_factory, user_id, other_user_id):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_entity_cache] = lambda: EntityCache(client=None)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def redis_store():
    return FakeRedis()


@pytest.fixture
def cached_client(client, redis_store):
    """The test client with the entity cache backed by an in-memory store."""
    app.dependency_overrides[get_entity_cache] = lambda: EntityCache(client=redis_store)
    return client
