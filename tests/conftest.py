"""
Shared pytest fixtures for the ExpressFlow test suite.

Every test runs against a fixed clock (NOW) passed through `now=` arguments
and an in-memory persistence port, so nothing touches disk or Redis unless
a test asks for it.
"""
from datetime import datetime, timedelta, timezone

import pytest

from expressflow.config import Settings
from expressflow.exceptions import StorageError
from expressflow.models import (
    CargoType,
    Incoterm,
    ModalType,
    OperationType,
    QuoteForm,
    QuoteRequest,
    QuoteStatus,
    Role,
    SupplierQuote,
    User,
)
from expressflow.services.persistence import MemoryPersistence
from expressflow.services.store import QuoteStore, UserDirectory
from expressflow.services.workflow import QuoteWorkflow

NOW = datetime(2025, 12, 10, 15, 0, tzinfo=timezone.utc)


def make_quote(quote_id="MTN-1001-12-25", **overrides) -> QuoteRequest:
    data = dict(
        id=quote_id,
        client_name="Tech Imports Ltd",
        client_ref="IMP-2023-001",
        operation_type=OperationType.IMPORT,
        modal_main=ModalType.SEA_FCL,
        incoterm=Incoterm.FOB,
        created_date=NOW - timedelta(hours=2),
        created_time="13:00",
        cargo_type=CargoType.FCL,
        status=QuoteStatus.PENDING_PRICING,
        requester_id="u1",
        assigned_pricing_role=Role.PRICING_SEA,
        sent_to_pricing_at=NOW - timedelta(hours=2),
    )
    data.update(overrides)
    return QuoteRequest(**data)


def make_rows(*all_in_values, currency="USD"):
    """One named supplier row per value, the whole amount as freight."""
    return [
        SupplierQuote(
            supplier_name=f"Carrier {i + 1}",
            currency=currency,
            freight_rate=value,
            requested_at=NOW - timedelta(hours=1),
        )
        for i, value in enumerate(all_in_values)
    ]


# ── Users ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def sales_user():
    return User(id="u1", name="Ana Souza", email="ana@expressflow.local", role=Role.SALES)


@pytest.fixture
def other_sales_user():
    return User(id="u2", name="Bruno Lima", email="bruno@expressflow.local", role=Role.SALES)


@pytest.fixture
def inside_sales_user():
    return User(id="u3", name="Carla Dias", email="carla@expressflow.local", role=Role.INSIDE_SALES)


@pytest.fixture
def sea_pricing_user():
    return User(id="p1", name="Diego Rocha", email="diego@expressflow.local", role=Role.PRICING_SEA)


@pytest.fixture
def air_pricing_user():
    return User(id="p2", name="Elisa Prado", email="elisa@expressflow.local", role=Role.PRICING_AIR)


@pytest.fixture
def manager():
    return User(id="m1", name="Fabio Reis", email="fabio@expressflow.local", role=Role.MANAGEMENT)


# ── Forms and stores ──────────────────────────────────────────────────────────

@pytest.fixture
def quote_form():
    return QuoteForm(
        client_name="Tech Imports Ltd",
        client_ref="IMP-2023-001",
        operation_type=OperationType.IMPORT,
        modal_main=ModalType.SEA_FCL,
        incoterm=Incoterm.FOB,
        created_date=NOW.date(),
        created_time="09:00",
        origin_country="China",
        dest_country="Brazil",
        pol_aol="Shanghai",
        pod_aod="Santos",
    )


@pytest.fixture
def test_settings():
    return Settings(STORAGE_BACKEND="memory", ADMIN_PASSWORD="s3cret-admin")


@pytest.fixture
def quote_store():
    store = QuoteStore(MemoryPersistence())
    store.load()
    return store


@pytest.fixture
def user_directory():
    directory = UserDirectory(MemoryPersistence())
    directory.load()
    return directory


@pytest.fixture
def workflow(quote_store, test_settings):
    return QuoteWorkflow(quote_store, config=test_settings, clock=lambda: NOW)


# ── Fakes ─────────────────────────────────────────────────────────────────────

class FakeRedis:
    """Just enough of the redis client for RedisPersistence."""

    def __init__(self, fail_with=None):
        self.data = {}
        self.fail_with = fail_with

    def get(self, key):
        if self.fail_with:
            raise self.fail_with
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_with:
            raise self.fail_with
        self.data[key] = value
        return True

    def close(self):
        self.closed = True


class FailingPersistence:
    """Persistence port whose every call fails."""

    def __init__(self):
        self.save_calls = 0

    def load(self):
        raise StorageError("disk unavailable")

    def save(self, payload):
        self.save_calls += 1
        raise StorageError("quota exceeded")


@pytest.fixture
def fake_redis():
    return FakeRedis()
