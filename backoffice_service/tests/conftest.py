# Shared fixtures for the back-office API tests.
# - One in-memory SQLite database, rebuilt for every test
# - Seed rows go through short-lived ORM sessions so no transaction is left
#   open on the shared connection while the app handles a request
# - `client` is authenticated as ORG_A; pass other headers per request to
#   act as another organization or a super admin

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app import config
from app.database import SessionLocal, engine
from app.main import app
from app.models import Agent, Base, Customer, Department, Product, User

ORG_A = "org-alpha"
ORG_B = "org-bravo"


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@contextmanager
def session_scope():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def read():
    """Run ``fn(session)`` in a throwaway session and return its result."""

    def _read(fn):
        session = SessionLocal()
        try:
            return fn(session)
        finally:
            session.close()

    return _read


@pytest.fixture
def client():
    with TestClient(app, raise_server_exceptions=False) as test_client:
        test_client.headers.update({"X-Organization-Id": ORG_A})
        yield test_client


@pytest.fixture
def set_policy(monkeypatch):
    def _set(policy):
        monkeypatch.setattr(config, "settings", replace(config.settings, cascade_policy=policy))

    return _set


def _insert(entity):
    with session_scope() as session:
        session.add(entity)
        session.flush()
        return entity.id


@pytest.fixture
def make_customer():
    def _make(full_name="Ada Lovelace", email="ada@example.com", organization_id=ORG_A, **extra):
        return _insert(
            Customer(
                organization_id=organization_id,
                full_name=full_name,
                email=email,
                order_count=extra.pop("order_count", 0),
                total_spent=extra.pop("total_spent", Decimal("0")),
                **extra,
            )
        )

    return _make


@pytest.fixture
def make_product():
    def _make(name="Business Cards", stock=10, track_stock=True, organization_id=ORG_A, **extra):
        return _insert(
            Product(organization_id=organization_id, name=name, stock=stock, track_stock=track_stock, **extra)
        )

    return _make


@pytest.fixture
def make_agent():
    def _make(name="Reseller One", organization_id=ORG_A):
        return _insert(Agent(organization_id=organization_id, name=name, total_orders=0))

    return _make


@pytest.fixture
def make_user():
    def _make(name="Pat Printer", organization_id=ORG_A, workflow_role="production"):
        return _insert(User(organization_id=organization_id, name=name, workflow_role=workflow_role))

    return _make


@pytest.fixture
def make_department():
    def _make(name="Large Format", organization_id=ORG_A):
        return _insert(Department(organization_id=organization_id, name=name))

    return _make
