import os

# Settings are read at import time, so point them at SQLite before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.core.database import get_session, make_engine
from app.main import app
from app.models.models import User


# In-memory SQLite shared across threads (StaticPool) with SAVEPOINT support
test_engine = make_engine("sqlite://")


@pytest.fixture
def session():
    """
    Creates a fresh database for each test, then tears it down after the test is done.
    """
    SQLModel.metadata.create_all(test_engine)
    with Session(test_engine) as db:
        yield db
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def client(session):
    """
    Create a FastAPI TestClient with the test database dependency.
    """

    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session

    client = TestClient(app)
    yield client

    app.dependency_overrides = {}


def register(client: TestClient, username: str = "maria", password: str = "secret123") -> dict:
    """Register a user through the API and return the response body."""
    response = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "full_name": username.title(),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth(client):
    """A registered user: (user_id, headers)."""
    body = register(client)
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


@pytest.fixture
def auth_headers(auth):
    return auth[1]


@pytest.fixture
def user_id(auth):
    return auth[0]


@pytest.fixture
def other_user(session):
    user = User(username="otro", email="otro@example.com", password=User.hash_password("secret123"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
