import asyncio
import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from casedesk import models  # noqa: F401  registers tables on Base.metadata
from casedesk.database import Base, get_db, make_engine
from casedesk.errors import StoreError
from casedesk.main import create_app
from casedesk.services.entity_store import EntityStore, StoreResponse
from casedesk.services.storage_service import FileStorage


class RecordingNotifier:
    """Collects toasts instead of showing them."""

    def __init__(self):
        self.toasts = []

    def success(self, message):
        self.toasts.append(("success", message))

    def error(self, message):
        self.toasts.append(("error", message))

    def info(self, message):
        self.toasts.append(("info", message))

    def of_kind(self, kind):
        return [message for k, message in self.toasts if k == kind]


class FakeEntityStore:
    """
    Records every call. Operations listed in ``failing`` return an error
    response; ``gate`` (a threading.Event) makes update block until set.
    """

    def __init__(self, failing=(), gate=None):
        self.calls = []
        self.failing = set(failing)
        self.gate = gate
        self.entered = threading.Event()

    def _result(self, op, table, data):
        if (op, table) in self.failing or op in self.failing:
            return StoreResponse(error=StoreError(f"{op} on {table} rejected", code="db_error"))
        return StoreResponse(data=data)

    def update(self, table, values, **match):
        self.calls.append(("update", table, dict(values), dict(match)))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return self._result("update", table, [{**match, **values}])

    def insert(self, table, rows):
        rows = [rows] if isinstance(rows, dict) else list(rows)
        self.calls.append(("insert", table, rows, {}))
        stored = [{"id": f"{table}-{index}", **row} for index, row in enumerate(rows, start=1)]
        return self._result("insert", table, stored)

    def select(self, table, *, order_by=None, descending=False, **match):
        self.calls.append(("select", table, {}, dict(match)))
        return self._result("select", table, [])

    def calls_for(self, op, table=None):
        return [call for call in self.calls if call[0] == op and (table is None or call[1] == table)]


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def entity_store(session_factory):
    return EntityStore(session_factory)


@pytest.fixture
def binary_store(tmp_path):
    return FileStorage(tmp_path / "storage", "test-secret-key-for-signed-download-urls", buckets=["documents"])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def seed_case(entity_store):
    """Insert a property, mortgage and case; returns the case id."""

    def _seed(file_number="F-1001", status="New"):
        prop = entity_store.insert("properties", {"street": "12 Elm St", "city": "Halifax", "province": "NS", "postal_code": "B3H 1A1"})
        mortgage = entity_store.insert(
            "mortgages",
            {"registration_number": "REG-77", "principal": 250000.0, "interest_rate": 4.5, "start_date": "2020-01-15", "current_balance": 198000.0},
        )
        case = entity_store.insert(
            "cases",
            {"file_number": file_number, "status": status, "property_id": prop.data[0]["id"], "mortgage_id": mortgage.data[0]["id"]},
        )
        return case.data[0]["id"]

    return _seed


@pytest.fixture
def app(entity_store, binary_store, session_factory):
    application = create_app(entity_store=entity_store, binary_store=binary_store, create_tables=False)

    def _test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _test_db
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
