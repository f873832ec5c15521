"""
Pytest configuration and shared fixtures.

Test environment variables are set here, before the application modules
are imported, so settings and the engine pick them up.
"""

import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_messages.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("METRICS_PORT", "0")

# Clear settings cache before any app imports to ensure test env vars are used
from message_service.config import get_settings
get_settings.cache_clear()

from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# Registers the messages table on Base.metadata for the db fixture
import message_service.models  # noqa: F401
from message_service.main import app
from message_service.storage import (
    Base,
    engine,
    get_db,
    get_store,
    SessionLocal,
    SqlMessageStore,
    OrmMessageStore,
)


STORES = {
    "sql": SqlMessageStore,
    "orm": OrmMessageStore,
}


@pytest.fixture(scope="function")
def db():
    """Session on a fresh schema, dropped after the test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(params=["sql", "orm"])
def backend(request) -> str:
    return request.param


@pytest.fixture(scope="function")
def client(backend):
    """Test client on a fresh database, wired to the parametrized store backend."""
    store_cls = STORES[backend]

    def override_get_store(db: Session = Depends(get_db)):
        return store_cls(db)

    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_store] = override_get_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
