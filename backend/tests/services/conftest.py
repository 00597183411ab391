"""Service test fixtures — async DB, seeded catalog, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB sessions
    - db_manager patched so the readiness probe hits the test engine
    - Token verification replaced by a fixed token → claims table; the real
      get_current_user / require_admin still run

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (JSON columns and UUIDs behave the same for what is exercised here)
    - Service-level tests get a seeded Random and a FrozenClock so XP, draws and
      cooldowns are reproducible
"""

import random

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from waypoint.core.errors import AuthenticationError
from waypoint.db.base import Base
from waypoint.infrastructure.database import get_db, DatabaseSessionManager
import waypoint.infrastructure.database as db_module
from waypoint.main import app
from waypoint.models.place import Place
from waypoint.services.exploration_service import ExplorationService
from tests.services.exploration_helpers import (
    ADMIN_TOKEN, CATALOG, TOKENS, USER_TOKEN, FrozenClock,
)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def fake_tokens(monkeypatch):
    """Replace Firebase verification with a per-test copy of the token table."""
    tokens = {token: dict(claims) for token, claims in TOKENS.items()}

    async def _verify(token: str) -> dict:
        if token not in tokens:
            raise AuthenticationError("Invalid token")
        return dict(tokens[token])

    monkeypatch.setattr("waypoint.api.dependencies.verify_token", _verify)
    return tokens


@pytest.fixture
async def client(test_engine, test_session_factory, fake_tokens):
    """FastAPI test client authenticated as USER_ID by default."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {USER_TOKEN}"},
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
async def seed_catalog(test_db) -> dict[str, list[Place]]:
    """Three districts over two provinces; Kandy is alone in Central."""
    places: dict[str, list[Place]] = {}
    for district, (province, lat, lon, count) in CATALOG.items():
        places[district] = []
        for i in range(count):
            place = Place(
                district=district,
                province=province,
                name=f"{district} Spot {i + 1}",
                type="attraction",
                latitude=lat + i * 0.01,
                longitude=lon + i * 0.01,
            )
            test_db.add(place)
            places[district].append(place)
    await test_db.commit()
    return places


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(test_db, clock):
    return ExplorationService(test_db, rng=random.Random(42), clock=clock)
