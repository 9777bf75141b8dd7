"""
Shared fixtures: an in-memory database per test, the app wired to it, and
helpers for the usual actors (admin, sellers in each approval state).
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crankslist.db import get_db, get_session_factory, init_db
from crankslist.main import app
from crankslist.models.profile import UserProfile
from crankslist.models.user import Admin
from crankslist.services.catalog import seed_categories
from crankslist.services.users import get_user_by_email

PASSWORD = "secret123"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    seed_categories(s)
    yield s
    s.close()


@pytest.fixture
def client(session_factory, db):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    # no context manager: the lifespan would touch the configured database
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """signup(email) -> auth headers for the new account."""
    def _signup(email: str, password: str = PASSWORD) -> dict:
        r = client.post(
            "/api/auth/signup",
            json={"email": email, "password": password, "confirm_password": password},
        )
        assert r.status_code == 200, r.text
        # every test request authenticates explicitly
        client.cookies.clear()
        return bearer(r.json()["access_token"])
    return _signup


@pytest.fixture
def admin_headers(signup, db):
    headers = signup("admin@crankslist.test")
    user = get_user_by_email(db, "admin@crankslist.test")
    db.add(Admin(user_id=user.id))
    db.commit()
    return headers


@pytest.fixture
def profile_id_for(db):
    def _profile_id(email: str) -> int:
        user = get_user_by_email(db, email)
        return db.execute(select(UserProfile.id).where(UserProfile.user_id == user.id)).scalar_one()
    return _profile_id


@pytest.fixture
def approved_seller(client, signup, admin_headers, profile_id_for):
    headers = signup("seller@crankslist.test")
    pid = profile_id_for("seller@crankslist.test")
    r = client.post(f"/api/admin/users/{pid}/approve", headers=admin_headers)
    assert r.status_code == 200, r.text
    return headers


@pytest.fixture
def create_listing(client, approved_seller):
    """create_listing(**overrides) -> listing id, posted by the approved seller."""
    def _create(headers=None, **overrides) -> int:
        payload = {
            "title": "Trek 520",
            "price": 800,
            "type": "touring",
            "condition": "good",
            "location": "Vancouver, BC",
        }
        payload.update(overrides)
        r = client.post("/api/listings", json=payload, headers=headers or approved_seller)
        assert r.status_code == 200, r.text
        return r.json()["id"]
    return _create
