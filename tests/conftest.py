import os

# Must be set before classroom_api.settings is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from classroom_api.db import get_db, init_db, make_engine
from classroom_api.main import app
from classroom_api.models import UserAccount
from classroom_api.schemas import User
from classroom_api.service import ClassroomService
from classroom_api.store import new_id


@pytest.fixture
def session_factory(tmp_path):
    """Sessionmaker bound to a fresh SQLite file with all tables created."""
    engine = make_engine(f"sqlite:///{tmp_path / 'classroom_test.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def svc(db_session):
    return ClassroomService(db_session)


@pytest.fixture
def add_user(db_session):
    """Insert a user row directly and return the caller identity for it."""
    def _add(name, role):
        row = UserAccount(id=new_id(), name=name, role=role, password_hash="x")
        db_session.add(row)
        db_session.commit()
        return User(id=row.id, name=row.name, role=row.role)
    return _add


@pytest.fixture
def client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user over HTTP; returns (auth headers, user json)."""
    def _register(name, role, password="secret-pw"):
        resp = client.post("/auth/register", json={"name": name, "password": password, "role": role})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]
    return _register


QUESTIONS = [
    {"question": "Unit of force?", "options": ["Newton", "Joule", "Watt", "Pascal"], "correctAnswer": "Newton"},
    {"question": "Unit of energy?", "options": ["Newton", "Joule", "Watt", "Pascal"], "correctAnswer": "Joule"},
    {"question": "Unit of power?", "options": ["Newton", "Joule", "Watt", "Pascal"], "correctAnswer": "Watt"},
]


@pytest.fixture
def questions():
    return [dict(q) for q in QUESTIONS]
