"""Shared pytest fixtures: an in-memory database, an API client and sample catalog rows."""

from __future__ import annotations

from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401  registers tables
from app.db.session import get_session
from app.main import app as fastapi_app
from app.models import Business, Necessity, Product, RequirementTemplate, User


@pytest.fixture()
def engine():
    """Fresh in-memory SQLite database per test; StaticPool keeps one shared connection."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(engine) -> Generator[TestClient, None, None]:
    """Test client whose requests each get their own session on the test database."""

    def override_get_session():
        with Session(engine) as request_session:
            yield request_session

    fastapi_app.dependency_overrides[get_session] = override_get_session
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def _add(session: Session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture()
def admin(session) -> User:
    return _add(session, User(email="admin@example.com", name="Admin", is_superuser=True))


@pytest.fixture()
def alice(session) -> User:
    return _add(session, User(email="alice@example.com", name="Alice"))


@pytest.fixture()
def bob(session) -> User:
    return _add(session, User(email="bob@example.com", name="Bob"))


@pytest.fixture()
def acme(session) -> Business:
    return _add(session, Business(name="Acme", slug="acme", description="Acme bakery"))


@pytest.fixture()
def beta(session) -> Business:
    return _add(session, Business(name="Beta", slug="beta"))


@pytest.fixture()
def license_template(session) -> RequirementTemplate:
    return _add(
        session,
        RequirementTemplate(
            name="Business License",
            description="License to operate [businessName]",
            category="Legal",
            necessity=Necessity.REQUIRED,
        ),
    )


@pytest.fixture()
def make_product(session) -> Callable[..., Product]:
    def factory(name: str, price: Optional[float], template_id: Optional[int] = None) -> Product:
        return _add(session, Product(name=name, price=price, template_id=template_id, image=f"/img/{name}.png"))

    return factory
