"""
Shared fixtures: a throwaway SQLite file per test, plus helpers to seed clients.
"""

from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from dairy_billing.db.schema import metadata
from dairy_billing.services.registry import create_client

OWNER = "dairy-1"
OTHER_OWNER = "dairy-2"


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'billing.sqlite'}"


@pytest.fixture
def engine(db_url):
    engine = create_engine(db_url, future=True)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def conn(engine):
    with engine.begin() as conn:
        yield conn


@pytest.fixture
def make_client(conn):
    """Create a client with sensible defaults; every call gets a unique name."""
    seq = count(1)

    def _make(
        default_daily_quantity="2",
        rate_per_liter="45",
        is_active=True,
        owner_id=OWNER,
        name=None,
    ):
        return create_client(
            conn,
            owner_id,
            name=name or f"Client {next(seq)}",
            default_daily_quantity=Decimal(default_daily_quantity),
            rate_per_liter=Decimal(rate_per_liter),
            is_active=is_active,
        )

    return _make


@pytest.fixture
def api(engine, db_url, monkeypatch):
    """TestClient whose requests hit the per-test database."""
    monkeypatch.setattr("dairy_billing.db.engine.DB_URL", db_url)

    from dairy_billing.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def owner_headers():
    return {"X-Owner-Id": OWNER}
