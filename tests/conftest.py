"""
Pytest configuration and fixtures for APS Viewer Backend tests.

The platform is simulated with respx; nothing leaves the process.
"""

import itertools
import os
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
import respx
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["APS_CLIENT_ID"] = "TestClientId"
os.environ["APS_CLIENT_SECRET"] = "test-client-secret"
os.environ["APS_BASE_URL"] = "https://aps.test"
os.environ["APS_STATIC_DIR"] = "tests/no-static-dir"
os.environ.pop("APS_BUCKET", None)

from aps_viewer_backend.main import app, get_model_manager
from aps_viewer_backend.token_cache import TokenCache

BASE_URL = "https://aps.test"
BUCKET = "test-bucket"
TOKEN_URL = f"{BASE_URL}/authentication/v2/token"


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def issued_scope(request: httpx.Request) -> str:
    """Return the scope string of a token request."""
    return parse_qs(request.content.decode())["scope"][0]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def platform():
    """Mock router standing in for the platform."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def token_route(platform):
    """Identity endpoint issuing numbered tokens valid for one hour."""
    counter = itertools.count(1)

    def issue(request: httpx.Request) -> httpx.Response:
        kind = "public" if issued_scope(request) == "viewables:read" else "internal"
        return httpx.Response(
            200,
            json={"access_token": f"{kind}-{next(counter)}", "token_type": "Bearer", "expires_in": 3600},
        )

    return platform.post(TOKEN_URL).mock(side_effect=issue)


@pytest_asyncio.fixture
async def http():
    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def tokens(http, clock):
    return TokenCache(http, "TestClientId", "test-client-secret", clock=clock)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app (lifespan not started)."""
    return TestClient(app)


@pytest.fixture
def override_manager():
    """Install a stand-in ModelManager for the duration of a test."""

    def install(manager):
        app.dependency_overrides[get_model_manager] = lambda: manager
        return manager

    yield install
    app.dependency_overrides.pop(get_model_manager, None)
