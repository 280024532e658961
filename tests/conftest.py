"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
import httpx
from typing import Any, AsyncGenerator, Dict, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import Settings
from core.database import create_engine, create_session_maker
from models.base import Base
# Import all models so every table is registered on Base.metadata
from models.people import TeamMember, Contact
from models.organizations import Organization, ClientGroup
from models.work import WorkStatus, WorkItem, KarbonTask, Note
from models.billing import TimesheetEntry, Invoice
from models.sync_log import SyncRun, SyncLog

KARBON_BASE_URL = "https://api.karbonhq.com/v3"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite so every NullPool connection sees the same tables"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return create_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def sync_settings(tmp_path):
    """Complete configuration without reading the environment or .env"""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}",
        KARBON_BASE_URL=KARBON_BASE_URL,
        KARBON_ACCESS_KEY="test-access-key",
        KARBON_BEARER_TOKEN="test-bearer-token",
        KARBON_APP_URL="https://app2.karbonhq.com/tenant#",
        SYNC_BATCH_SIZE=100,
        SYNC_MAX_PAGES=20,
        SCHEDULER_ENABLED=False,
    )


# ============================================================================
# Fake Karbon API
# ============================================================================

def karbon_handler(routes: Dict[str, Any], failing: Iterable[str] = ()):
    """
    httpx.MockTransport handler serving canned Karbon responses.

    routes maps an endpoint name ("Contacts") to either a list of pages
    (each a list of records, served as {"value": [...]} with a next link
    until the last page) or a bare object returned as-is. Endpoints in
    failing answer 500; unknown endpoints answer 404.
    """
    failing = set(failing)

    def handler(request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        if endpoint in failing:
            return httpx.Response(500, json={"Message": "Internal error"})

        body = routes.get(endpoint)
        if body is None:
            return httpx.Response(404, json={"Message": "Not found"})
        if isinstance(body, dict):
            return httpx.Response(200, json=body)

        index = int(request.url.params.get("page", "1")) - 1
        page: Dict[str, Any] = {"value": body[index]}
        if index + 1 < len(body):
            page["@odata.nextLink"] = f"{KARBON_BASE_URL}/{endpoint}?page={index + 2}"
        return httpx.Response(200, json=page)

    return handler


@pytest.fixture
def karbon_routes() -> Dict[str, Any]:
    """A small but complete tenant: 15 records fetched, 14 synced"""
    return {
        "Users": [[
            {"UserKey": "u1", "FirstName": "Jane", "LastName": "Doe", "EmailAddress": "Jane@Firm.com"},
            {"UserKey": "u2", "Name": "John Smith", "EmailAddress": " jane@firm.com"},
            {"Id": "u3", "FullName": "Ann Lee", "EmailAddress": "ann@firm.com"},
        ]],
        "TenantSettings": {
            "WorkStatuses": [
                {"WorkStatusKey": "ws1", "PrimaryStatusName": "In Progress", "SecondaryStatusName": "Waiting"},
                {"WorkStatusKey": "ws2", "PrimaryStatusName": "Completed"},
            ]
        },
        "Contacts": [
            [{
                "ContactKey": "c1",
                "FirstName": "Jane",
                "LastName": "Doe",
                "LastModifiedDateTime": "2024-02-01T10:00:00.1234567Z",
                "BusinessCards": [{
                    "IsPrimaryCard": True,
                    "EmailAddresses": ["jane@example.com"],
                    "PhoneNumbers": [{"Label": "Mobile", "Number": "555-0101"}],
                    "Addresses": [{"Label": "Physical", "AddressLines": "1 Main St", "City": "Austin"}],
                }],
            }],
            [{"ContactKey": "c2", "FullName": "Bob Ray"}],
        ],
        "Organizations": [[
            {"OrganizationKey": "o1", "OrganizationName": "Acme LLC"},
        ]],
        "ClientGroups": [[
            {"ClientGroupKey": "g1", "FullName": "Doe Family"},
        ]],
        "WorkItems": [[
            {"WorkItemKey": "w1", "Title": "2024 Tax Return", "ClientKey": "c1", "WorkStatusKey": "ws1"},
        ]],
        "IntegrationTasks": [[
            {"IntegrationTaskKey": "t1", "WorkItemKey": "w1", "Data": {"Title": "Collect documents"}},
        ]],
        # served for every /WorkItems(key)/Notes request
        "Notes": [[
            {"NoteKey": "n1", "Subject": "Engagement letter", "IsPinned": True, "DueDate": "2024-04-15T00:00:00Z"},
        ]],
        "Timesheets": [[
            {
                "TimesheetKey": "ts1",
                "UserKey": "u1",
                "StartDate": "2024-03-04T00:00:00Z",
                "TimeEntries": [
                    {"Date": "2024-03-04T00:00:00Z", "Minutes": 90, "WorkItemKey": "w1", "HourlyRate": 100},
                    {"Date": "2024-03-05T00:00:00Z", "Minutes": 30, "WorkItemKey": "w1"},
                ],
            },
        ]],
        "Invoices": [[
            {"InvoiceKey": "i1", "InvoiceNumber": "INV-1", "TotalAmount": 500, "AmountPaid": 200},
        ]],
    }


@pytest_asyncio.fixture
async def karbon_client(karbon_routes):
    async with httpx.AsyncClient(transport=httpx.MockTransport(karbon_handler(karbon_routes))) as client:
        yield client


@pytest.fixture
def make_karbon_client():
    """Build an AsyncClient over the fake API from routes or a custom handler; requests go to seen"""
    def factory(routes=None, handler=None, failing=(), seen=None):
        handler = handler or karbon_handler(routes or {}, failing)

        def recording(request):
            if seen is not None:
                seen.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return factory
