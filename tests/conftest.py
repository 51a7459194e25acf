# tests/conftest.py
"""Shared fixtures: in-memory SQLite, configured secrets, clean in-process state."""

import os

# Must be set before miles.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from miles.config import settings
from miles.database import Base, SessionLocal, create_tables, engine
from miles.main import app
from miles.services.image_proxy import image_cache
from miles.services.live_stream import registry

SHARED_SECRET = "s3cret"
ADMIN_TOKEN = "admin-token"


@pytest.fixture(autouse=True)
def configured(monkeypatch):
    monkeypatch.setattr(settings, "SHARED_SECRET", SHARED_SECRET)
    monkeypatch.setattr(settings, "WEBHOOK_HEADER_NAME", "")
    monkeypatch.setattr(settings, "WEBHOOK_EXPECTED_HEADER_VALUE", "")
    monkeypatch.setattr(settings, "WEBHOOK_IP_ALLOWLIST", "")
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    yield settings
    registry.clear()
    image_cache.clear()


@pytest.fixture(autouse=True)
def fresh_tables():
    create_tables()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
