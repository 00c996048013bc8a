import os
import tempfile

# Settings are read once at import time, so the environment has to be in
# place before anything from lms is imported.
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = ":memory:"
os.environ.setdefault("LMS_LOG_DIR", tempfile.mkdtemp(prefix="lms-logs-"))

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from lms.db import init_db
from lms.main import app
from lms.utils.db import DatabasePool

TEST_SECRET = os.environ["JWT_SECRET"]


@pytest_asyncio.fixture
async def pool(tmp_path):
    """An initialized pool on a fresh database file."""
    db_pool = DatabasePool(str(tmp_path / "repo.db"))
    await init_db(db_pool)
    yield db_pool
    await db_pool.close()


@pytest.fixture
def client(tmp_path):
    original_pool = app.state.db_pool
    app.state.db_pool = DatabasePool(str(tmp_path / "api.db"))

    # entering the context runs the lifespan, which creates the schema
    with TestClient(app) as test_client:
        yield test_client

    app.state.db_pool = original_pool


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(client, username: str, role: str = "Student", password: str = "secret1") -> dict:
    response = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "name": username.title(),
            "role": role,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "user": data["user"],
        "token": data["token"],
        "headers": auth_headers(data["token"]),
    }


@pytest.fixture
def admin(client):
    return register_user(client, "admin", role="Admin")


@pytest.fixture
def mentor(client):
    return register_user(client, "mentor", role="Mentor")


@pytest.fixture
def other_mentor(client):
    return register_user(client, "othermentor", role="Mentor")


@pytest.fixture
def tutor(client):
    return register_user(client, "tutor", role="Tutor")


@pytest.fixture
def student(client):
    return register_user(client, "student", role="Student")


@pytest.fixture
def make_user(client):
    """Register a user through the API and return its user/token/headers."""

    def _make_user(username: str, role: str = "Student", password: str = "secret1") -> dict:
        return register_user(client, username, role=role, password=password)

    return _make_user


@pytest.fixture
def register_user_payload() -> dict:
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret1",
        "name": "Alice",
    }
