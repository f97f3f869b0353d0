import os

# configure before the application package is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["STRICT_EMPTY_FAVORITES"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from exercise_api import models, services
from exercise_api.database import create_db_and_tables, drop_db_and_tables, engine
from exercise_api.main import app
from exercise_api.schemas import UserNewIn


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test empty tables."""
    drop_db_and_tables()
    create_db_and_tables()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(session):
    def _make(username="alice", password="secret123", is_admin=False, **extra):
        profile = UserNewIn(
            username=username,
            password=password,
            first_name=extra.get("first_name", username.title()),
            last_name=extra.get("last_name", "Tester"),
            email=extra.get("email", f"{username}@example.com"),
            is_admin=is_admin,
        )
        return services.UserService(session).register(profile)
    return _make


@pytest.fixture
def make_exercise(session):
    def _make(name="push up", target="pectorals", secondary=("triceps",), instructions=("Lower", "Push")):
        ex = models.Exercise(name=name, target=target, secondary=list(secondary),
                             gif=f"https://img.example/{name.replace(' ', '_')}.gif",
                             instructions=list(instructions))
        session.add(ex)
        session.commit()
        session.refresh(ex)
        return ex
    return _make


@pytest.fixture
def auth_header():
    def _header(user):
        return {"Authorization": f"Bearer {app.state.token_issuer.issue(user)}"}
    return _header
