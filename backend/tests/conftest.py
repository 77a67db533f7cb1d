"""
Pytest Configuration and Fixtures

This file contains shared fixtures and configuration for all tests.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock
from urllib.parse import urlencode

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport

from main import app
from api.console import get_console
from services.migration.console import MigrationConsole
from services.migration.oauth_service import OAuthService
from services.migration.orchestrator import MigrationOrchestrator
from services.migration.providers.sign_provider import SignDocumentProvider
from services.migration.session import (
    ComplianceLevel,
    Credentials,
    MigrationContext,
    OAuthSession,
    TenantRole,
    TokenPair,
)
from services.migration.transport import HttpTransport

REDIRECT_URI = "https://migrationtool.com"


# ===========================================
# Clock and Transport Fixtures
# ===========================================

class FakeClock:
    """Manually advanced clock"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport():
    """
    Transport double; request/download/upload are AsyncMocks.
    """
    return AsyncMock(spec=HttpTransport)


@pytest.fixture
def oauth(transport, clock) -> OAuthService:
    return OAuthService(transport, clock=clock)


# ===========================================
# Session Fixtures
# ===========================================

@pytest.fixture
def make_session(clock):
    """
    Factory fixture to create an OAuth session for a role.
    """
    def _make_session(
        role: TenantRole = TenantRole.SOURCE,
        logged_in: bool = True,
        compliance_level: ComplianceLevel = ComplianceLevel.COMMERCIAL,
        shard: str = "na1",
    ) -> OAuthSession:
        session = OAuthSession(
            role=role,
            credentials=Credentials(
                client_id=f"{role.value}-client",
                client_secret=f"{role.value}-secret",
                login_email=f"admin@{role.value}.example.com",
            ),
            compliance_level=compliance_level,
            shard=shard,
            initial_oauth_state=f"{role.value}-state",
        )
        if logged_in:
            session.token_pair = TokenPair(f"{role.value}-access", f"{role.value}-refresh", clock())
        return session

    return _make_session


@pytest.fixture
def context(make_session) -> MigrationContext:
    """
    Context with both accounts logged in.
    """
    context = MigrationContext()
    for role in (TenantRole.SOURCE, TenantRole.DEST):
        context.sessions[role] = make_session(role)
        context.login_order.append(role)
    return context


# ===========================================
# Data Fixtures
# ===========================================

@pytest.fixture
def make_records():
    """
    Factory fixture to create raw libraryDocumentList records.
    """
    fake = Faker()

    def _make_records(count: int, prefix: str = "doc", owner: str = None) -> list:
        return [
            {
                "id": f"{prefix}-{i}",
                "name": fake.catch_phrase(),
                "ownerEmail": owner or fake.email(),
                "sharingMode": "USER",
                "templateTypes": ["DOCUMENT"],
            }
            for i in range(count)
        ]

    return _make_records


def listing_page(records: list, cursor: str = None) -> dict:
    page = {"nextCursor": cursor} if cursor is not None else {}
    return {"libraryDocumentList": records, "page": page}


def redirect_url(code: str, state: str) -> str:
    query = urlencode({
        "code": code,
        "state": state,
        "api_access_point": "https://api.na1.adobesign.com/",
        "web_access_point": "https://secure.na1.adobesign.com/",
    })
    return f"{REDIRECT_URI}/?{query}"


def token_response(access: str, refresh: str = None) -> dict:
    data = {"access_token": access, "token_type": "Bearer", "expires_in": 3600}
    if refresh:
        data["refresh_token"] = refresh
    return data


# ===========================================
# Console Fixtures
# ===========================================

@pytest.fixture
def transfer():
    mock = AsyncMock()
    mock.migrate = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def orchestrator(oauth, transfer, transport) -> MigrationOrchestrator:
    return MigrationOrchestrator(
        oauth,
        transfer,
        provider_factory=lambda session: SignDocumentProvider(transport, session),
        token_lifetime_seconds=300,
        refresh_margin_fraction=0.1,
        page_limit=-1,
    )


@pytest.fixture
def console(oauth, orchestrator) -> MigrationConsole:
    return MigrationConsole(oauth, orchestrator, redirect_uri=REDIRECT_URI)


@pytest_asyncio.fixture(scope="function")
async def client(console: MigrationConsole) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client bound to the fixture console.
    """
    app.dependency_overrides[get_console] = lambda: console

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
