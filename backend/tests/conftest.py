"""Shared fixtures: a throwaway SQLite database per test, a store and an API client."""

import os

# Must be set before the attendance package reads its configuration
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from attendance.auth import Caller, create_access_token
from attendance.database import Base, get_db
from attendance.main import app
from attendance.services.week_store import WeekRecordStore


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'attendance.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def caller():
    return Caller(subject="assistant-1", role="assistant")


@pytest.fixture
def store(db, caller):
    return WeekRecordStore(db, caller)


@pytest.fixture
def student_fields():
    return {
        "id": 501,
        "name": "Mariam Hassan",
        "grade": "3rd secondary",
        "school": "Nasr Girls School",
        "phone": "01012345678",
        "parents_phone": "01198765432",
        "main_center": "Maadi",
        "age": 17,
    }


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token("assistant-1", role="assistant")
    return {"Authorization": f"Bearer {token}"}
