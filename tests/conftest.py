import os

os.environ.setdefault("PROJECT_NAME", "Shared Budget Test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.api.deps import get_session
from app.core.config import settings
from app.core.security import create_access_token
from app.main import app
from app.models.account import Account


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    # No context manager: the lifespan would create tables on the real engine
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(session):
    def _make(email, full_name=None):
        account = Account(email=email, full_name=full_name)
        session.add(account)
        session.commit()
        session.refresh(account)
        return account

    return _make


@pytest.fixture
def auth_headers():
    def _headers(account):
        return {"Authorization": f"Bearer {create_access_token(account.id)}"}

    return _headers


@pytest.fixture
def api():
    return settings.API_V1_STR
