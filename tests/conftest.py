"""
College Portal - Test Configuration and Fixtures
"""
import pytest
import mongomock

import app as portal
from utils import hash_password


@pytest.fixture
def db():
    """Fresh in-memory database for each test"""
    return mongomock.MongoClient().db


@pytest.fixture
def flask_app(db, monkeypatch, tmp_path):
    monkeypatch.setattr(portal, "get_db", lambda: db)
    portal.app.config.update(
        TESTING=True,
        SECRET_KEY="test-secret-key-for-testing-only",
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
        ATTENDANCE_THRESHOLD=75.0,
    )
    return portal.app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def super_admin(db):
    db.admins.insert_one({"name": "root", "password": hash_password("rootpass"), "role": "super_admin"})
    return {"username": "root", "password": "rootpass"}


@pytest.fixture
def admin_client(flask_app, super_admin):
    c = flask_app.test_client()
    response = c.post("/api/login", json=dict(super_admin, role="admin"))
    assert response.status_code == 200
    return c


@pytest.fixture
def student(db):
    result = db.students.insert_one({
        "rollNo": "21CS001",
        "name": "Asha Verma",
        "password": hash_password("21cs001"),
    })
    return str(result.inserted_id)


@pytest.fixture
def subject(db):
    result = db.subjects.insert_one({"code": "CS301", "name": "Data Structures"})
    return str(result.inserted_id)


@pytest.fixture
def student_client(flask_app, student):
    c = flask_app.test_client()
    response = c.post("/api/login", json={"username": "21cs001", "password": "21CS001", "role": "student"})
    assert response.status_code == 200
    return c
