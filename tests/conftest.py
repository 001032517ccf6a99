import os
import tempfile

# must be set before refurb.settings is imported
_tmpdir = tempfile.mkdtemp(prefix="refurb-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ.setdefault("KNOWN_TECHNICIANS", "Hasan,Mehmet,Emre")

import pytest
from fastapi.testclient import TestClient

from refurb import accounts
from refurb.database import Base, engine, SessionLocal
from refurb.main import app
from refurb.settings import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        accounts.seed_default_admin(db)
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def login(client, email=DEFAULT_ADMIN_EMAIL, password=DEFAULT_ADMIN_PASSWORD):
    r = client.post("/api/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["user"]


@pytest.fixture
def client():
    with TestClient(app, follow_redirects=False) as c:
        yield c


@pytest.fixture
def admin_client():
    with TestClient(app, follow_redirects=False) as c:
        login(c)
        yield c


def approved_user(admin_client, email, role="operator", password="Secret123"):
    r = admin_client.post(
        "/api/users",
        json={"email": email, "password": password, "full_name": email.split("@")[0].title(), "role": role},
    )
    assert r.status_code == 201, r.text
    return r.json()
