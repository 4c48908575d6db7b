import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from retention_portal.core.config import Settings, get_settings
from retention_portal.main import app
from retention_portal.services.vicidial import VicidialResult, get_vicidial_client
from retention_portal.services.vicidial_db import LEAD_COLUMNS, VicidialLeadStore, get_vicidial_lead_store


class StubVicidialClient:
    """Records every call and replays queued results or raises ``error``."""

    def __init__(self):
        self.calls = []
        self.results = []
        self.default = VicidialResult(ok=True, status=200, raw="SUCCESS: ok", parsed={"SUCCESS": "ok"})
        self.error = None

    def queue(self, *results):
        self.results.extend(results)

    async def _call(self, api, function, params=None):
        self.calls.append({"api": api, "function": function, "params": dict(params or {})})
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return self.default

    async def call_agent_api(self, function, params=None):
        return await self._call("agent", function, params)

    async def call_non_agent_api(self, function, params=None):
        return await self._call("non_agent", function, params)

    async def call_assignment_api(self, function, params=None):
        return await self._call("assignment", function, params)

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def mapping_file(tmp_path):
    path = tmp_path / "vicidial-agent-mapping.json"
    path.write_text(json.dumps({
        "profile-1": {"campaignId": "RETENTION", "listId": 1001, "vicidialUser": "6666"},
    }))
    return path


@pytest.fixture
def test_settings(mapping_file):
    return Settings(
        _env_file=None,
        vicidial_base_url="https://dialer.example.com/",
        vicidial_api_user="apiuser",
        vicidial_api_pass="apipass",
        vicidial_function_hangup="external_hangup",
        vicidial_function_agent_status=None,
        vicidial_agent_mapping_path=str(mapping_file),
        retention_portal_base_url="https://portal.example.com",
    )


@pytest.fixture
def stub_client():
    return StubVicidialClient()


@pytest.fixture
def client(stub_client, test_settings):
    app.dependency_overrides[get_vicidial_client] = lambda: stub_client
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# VICIdial database (SQLite stand-in for vicidial_list)
# =============================================================================

VICIDIAL_LIST_DDL = """
    CREATE TABLE vicidial_list (
        lead_id INTEGER PRIMARY KEY,
        list_id INTEGER,
        status TEXT,
        phone_number TEXT,
        alt_phone TEXT,
        title TEXT,
        first_name TEXT,
        last_name TEXT,
        address1 TEXT,
        address2 TEXT,
        address3 TEXT,
        city TEXT,
        state TEXT,
        postal_code TEXT,
        province TEXT,
        country_code TEXT,
        email TEXT,
        vendor_lead_code TEXT,
        source_id TEXT,
        called_count INTEGER,
        entry_date TEXT,
        modify_date TEXT,
        last_local_call_time TEXT,
        comments TEXT
    )
"""


class BrokenLeadStore:
    """Lead store whose every query fails."""

    def list_leads(self, *args, **kwargs):
        raise RuntimeError("Lost connection to MySQL server")

    def lead_names(self, *args, **kwargs):
        raise RuntimeError("Lost connection to MySQL server")

    def find_lead(self, *args, **kwargs):
        raise RuntimeError("Lost connection to MySQL server")


@pytest.fixture
def lead_db():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text(VICIDIAL_LIST_DDL))
    yield engine
    engine.dispose()


@pytest.fixture
def add_leads(lead_db):
    """Insert ``vicidial_list`` rows; omitted columns are NULL."""
    insert = text(
        f"INSERT INTO vicidial_list ({', '.join(LEAD_COLUMNS)}) "
        f"VALUES ({', '.join(':' + column for column in LEAD_COLUMNS)})"
    )

    def _add(*leads):
        with lead_db.begin() as conn:
            conn.execute(insert, [{column: lead.get(column) for column in LEAD_COLUMNS} for lead in leads])

    return _add


@pytest.fixture
def lead_store(lead_db):
    return VicidialLeadStore(lead_db)


@pytest.fixture
def db_client(client, lead_store):
    app.dependency_overrides[get_vicidial_lead_store] = lambda: lead_store
    return client


@pytest.fixture
def broken_db_client(client):
    app.dependency_overrides[get_vicidial_lead_store] = lambda: BrokenLeadStore()
    return client
