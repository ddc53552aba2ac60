import os

# Settings require DATABASE_URL at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.product import Product


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def products(session_factory):
    """Demo catalog keyed by SKU."""
    rows = [
        Product(sku="XM-GAR-001", name="Pine Garland 6ft", category="Garlands",
                collection="Christmas", price=Decimal("7.50")),
        Product(sku="XM-WRE-001", name="Frosted Berry Wreath", category="Wreaths",
                collection="Christmas", price=Decimal("12.00")),
        Product(sku="EA-GAR-001", name="Spring Blossom Garland", category="Garlands",
                collection="Easter", price=Decimal("6.80")),
        Product(sku="AU-SGN-001", name="Autumn Welcome Sign", category="Signs",
                collection="Autumn", price=Decimal("5.00")),
    ]
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()
    return {p.sku: p for p in rows}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
