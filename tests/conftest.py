from datetime import date

import pytest
from fastapi.testclient import TestClient

from bookwise.config import Settings
from bookwise.crud import SqlAlchemyStore
from bookwise.main import create_app
from bookwise.models import User

PASSWORD = "Secret123"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        app_env="test",
        log_dir=None,
        log_level="WARNING",
        bcrypt_rounds=4,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return SqlAlchemyStore(db)


def make_user(db, username):
    user = User(username=username, email=f"{username}@example.com", password="not-a-hash")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db):
    return make_user(db, "alice")


@pytest.fixture
def other_user(db):
    return make_user(db, "bob")


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def register(client, username):
    return client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
        },
    )


@pytest.fixture
def auth_client(client):
    response = register(client, "alice")
    assert response.status_code == 201
    return client


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def bob_client(app, auth_client):
    with TestClient(app) as c:
        assert register(c, "bob").status_code == 201
        yield c


def category_id(client, name, type="expense"):
    response = client.get("/api/categories", params={"type": type})
    for category in response.json()["data"]["categories"]:
        if category["name"] == name:
            return category["id"]
    raise AssertionError(f"no {type} category named {name}")
