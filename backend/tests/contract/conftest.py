import httpx
import pytest
import pytest_asyncio

from skincheck.api.deps.state import get_feed, get_roster
from skincheck.main import app
from skincheck.services.assessor_roster import AssessorRoster, MemoryStore


@pytest.fixture
def roster():
    return AssessorRoster(MemoryStore())


@pytest_asyncio.fixture
async def client(feed, roster):
    app.dependency_overrides = {
        get_feed: lambda: feed,
        get_roster: lambda: roster,
    }
    asgi_transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=asgi_transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides = {}
