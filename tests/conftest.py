import os
import uuid

# point the app at a throwaway database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_taskmanager.db")
os.environ["SENDGRID_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

import app.config
from app.main import app as api
from app.database import Base, SessionLocal, engine
from app.routers import users as users_router


# Recreate all tables for each test
@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def avatar_dir(tmp_path, monkeypatch):
    path = tmp_path / "avatars"
    monkeypatch.setattr(app.config, "AVATAR_DIR", str(path))
    return path


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture account emails instead of calling SendGrid."""
    sent = []
    monkeypatch.setattr(users_router, "send_welcome_email", lambda email, name: sent.append(("welcome", email, name)))
    monkeypatch.setattr(users_router, "send_cancel_email", lambda email, name: sent.append(("cancel", email, name)))
    return sent


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(api)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, name="Ada", email=None, password="SecurePass123!", **extra):
    """Create a user and return (user json, token)."""
    email = email or f"user_{uuid.uuid4().hex[:8]}@example.com"
    r = client.post("/users", json={"name": name, "email": email, "password": password, **extra})
    assert r.status_code == 201, r.text
    body = r.json()
    return body["user"], body["token"]
