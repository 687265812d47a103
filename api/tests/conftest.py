"""Shared fixtures: a throwaway SQLite database per test and an ASGI client.

The app runs unmodified except for three dependency overrides: get_db yields
sessions bound to the test database, and both rate limiters become no-ops
(there is no Redis in the test environment). The lifespan is not run.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from groceryindex.database import get_db
from groceryindex.dependencies import hash_api_key
from groceryindex.main import app
from groceryindex.middleware.rate_limiter import read_rate_limit, write_rate_limit
from groceryindex.models import Base, Item, ItemVariant, Market, Region, User


@dataclass
class Catalog:
    region_id: int
    other_region_id: int
    market_id: int
    other_market_id: int
    item_id: int
    other_item_id: int
    variant_id: int
    inactive_item_id: int


@dataclass
class Account:
    id: int
    api_key: str

    @property
    def headers(self) -> dict[str, str]:
        return {"X-API-Key": self.api_key}


def hours_ago(hours: float) -> datetime:
    """A UTC timestamp in the past, truncated to the start of its minute."""
    value = datetime.now(timezone.utc) - timedelta(hours=hours)
    return value.replace(second=0, microsecond=0)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'groceryindex.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def no_rate_limit() -> None:
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[read_rate_limit] = no_rate_limit
    app.dependency_overrides[write_rate_limit] = no_rate_limit
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def catalog(session_factory) -> Catalog:
    async with session_factory() as session:
        klang = Region(name="Klang Valley", country="Malaysia")
        penang = Region(name="Penang", country="Malaysia")
        session.add_all([klang, penang])
        await session.flush()

        chow_kit = Market(name="Pasar Besar Chow Kit", region_id=klang.id)
        bayan = Market(name="Bayan Baru Market", region_id=penang.id)
        eggs = Item(name="Eggs (Grade A tray 30)", slug="eggs-grade-a-tray-30", category="protein", default_unit="tray")
        rice = Item(name="Rice (10kg)", slug="rice-10kg", category="grocery", default_unit="bag")
        retired = Item(name="Discontinued Margarine", slug="margarine", is_active=False)
        session.add_all([chow_kit, bayan, eggs, rice, retired])
        await session.flush()

        tray = ItemVariant(item_id=eggs.id, name="Tray of 30", sku="EGG-A-30")
        session.add(tray)
        await session.commit()

        return Catalog(
            region_id=klang.id,
            other_region_id=penang.id,
            market_id=chow_kit.id,
            other_market_id=bayan.id,
            item_id=eggs.id,
            other_item_id=rice.id,
            variant_id=tray.id,
            inactive_item_id=retired.id,
        )


@pytest.fixture
def make_account(session_factory):
    """Factory: create a user directly in the database and return its id and API key."""

    async def _make(email: str, name: str | None = None, role: str = "user") -> Account:
        raw_key = secrets.token_urlsafe(16)
        async with session_factory() as session:
            user = User(email=email, name=name, role=role, api_key_hash=hash_api_key(raw_key))
            session.add(user)
            await session.commit()
            return Account(id=user.id, api_key=raw_key)

    return _make


@pytest_asyncio.fixture
async def alice(make_account) -> Account:
    return await make_account("alice@example.com", "Alice")


@pytest_asyncio.fixture
async def bob(make_account) -> Account:
    return await make_account("bob@example.com", "Bob")


@pytest_asyncio.fixture
async def carol(make_account) -> Account:
    return await make_account("carol@example.com", "Carol")


@pytest_asyncio.fixture
async def moderator(make_account) -> Account:
    return await make_account("mod@example.com", "Mod", role="moderator")


async def fetch_user(session_factory, user_id: int) -> User:
    """Load a user in a fresh session so counters reflect committed state."""
    async with session_factory() as session:
        return await session.get(User, user_id)
