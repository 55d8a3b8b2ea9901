import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set testing environment before importing the app
os.environ["TESTING"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///./test.db")

from kidhealth.main import app
from kidhealth.core.database import Base, RedisMock, get_db, get_redis

SQLALCHEMY_DATABASE_URL = os.environ["TEST_DATABASE_URL"]
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(autouse=True)
def fresh_redis():
    """Each test gets its own rate-limit counters."""
    redis_mock = RedisMock()
    app.dependency_overrides[get_redis] = lambda: redis_mock
    yield redis_mock
    app.dependency_overrides.pop(get_redis, None)

@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def db_session(test_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def register_and_login(client):
    """Return a helper that registers an account and gives back auth headers."""
    def _register(email="parent@example.com", password="TestPassword123", role="user"):
        response = client.post("/api/v1/auth/register", json={
            "email": email,
            "password": password,
            "role": role,
            "name": "Test User"
        })
        assert response.status_code == 200, response.text

        login_response = client.post("/api/v1/auth/login", json={
            "email": email,
            "password": password
        })
        assert login_response.status_code == 200, login_response.text

        token = login_response.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _register

@pytest.fixture
def parent_headers(register_and_login):
    return register_and_login()

@pytest.fixture
def add_child(client):
    """Return a helper that adds a child for the given account."""
    def _add(headers, date_of_birth="2024-01-01", name="Aarav"):
        response = client.post("/api/v1/children", json={
            "name": name,
            "date_of_birth": date_of_birth,
            "gender": "Male"
        }, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["id"]

    return _add
