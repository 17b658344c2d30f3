import uuid

import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app

PASSWORD = "Pass123"


@pytest.fixture
def app(tmp_path):
    # low bcrypt cost keeps the suite fast; a fresh SQLite file per test
    application = create_app(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key="test-secret",
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def register(client, email=None, password=PASSWORD, first_name="Test", last_name="User"):
    """Register a user and return (email, id)."""
    email = email or f"user_{uuid.uuid4().hex[:8]}@example.com"
    r = client.post("/auth/register", json={
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
        "password": password,
        "confirmPassword": password,
    })
    assert r.status_code == 201, r.text
    return email, r.json()["id"]


def login(client, email, password=PASSWORD):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register + login; returns (id, headers)."""
    def _make():
        email, user_id = register(client)
        return user_id, auth_headers(login(client, email))
    return _make
