"""Pytest fixtures for TaskFlow: a fresh SQLite file database per test."""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from pathlib import Path
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from taskflow.database import get_db, init_db, make_engine
from taskflow.main import app


@pytest.fixture()
def engine(tmp_path: Path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(db_factory):
    session = db_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_client(db_factory):
    """Returns a factory so a test can hold several independent cookie jars."""
    def _get_db():
        session = db_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def client(make_client):
    return make_client()


def signup(client, email="alice@example.com", password="password123", name="Alice"):
    resp = client.post("/api/auth/signup", data={"email": email, "password": password, "name": name})
    assert resp.status_code == 200
    return resp.json()


def create_task(client, title="Write spec", **fields):
    data = {"title": title}
    data.update(fields)
    resp = client.post("/api/tasks", data=data)
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture()
def alice(client):
    """`client` logged in as Alice; returns her user payload."""
    return signup(client)["user"]
