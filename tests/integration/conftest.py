"""Integration-test fixtures (requires running PostgreSQL, migrated).

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool stays valid across the whole session. The app
is wired with build_services() exactly as in the lifespan, except that the
Groww oracle is replaced by fixed prices.
"""

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.bootstrap import build_services
from src.main import app
from src.pt_common.database import ping_database
from tests.integration.helpers import unique_user
from tests.unit.fakes import StaticPriceOracle

PRICES = {"TCS": "3500.00", "INFY": "1500.00", "RELIANCE": "2800.00"}
PREVIOUS_CLOSE = {"TCS": "3450.00", "INFY": "1510.00"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncIterator[AsyncClient]:
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    try:
        await ping_database()
    except (SQLAlchemyError, OSError) as exc:
        pytest.skip(f"PostgreSQL not reachable: {exc}")

    # Every test registers and logs in from the same address
    settings.RATE_LIMIT_AUTH_PER_MIN = 10_000
    settings.RATE_LIMIT_ORDER_PER_MIN = 10_000

    app.state.services = build_services(
        settings, oracle=StaticPriceOracle(PRICES, previous_close=PREVIOUS_CLOSE)
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await app.state.services.aclose()


@pytest_asyncio.fixture(loop_scope="session")
async def auth_headers(client: AsyncClient) -> dict[str, str]:
    """A freshly registered user; each test starts with the opening balance."""
    user = unique_user()
    await client.post("/api/v1/auth/register", json=user)
    login = await client.post(
        "/api/v1/auth/login", json={"username": user["username"], "password": user["password"]}
    )
    return {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
