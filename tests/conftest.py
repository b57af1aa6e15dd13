"""Shared fixtures: a throwaway SQLite database per test and an API client bound to it."""

import asyncio
import os

# Settings are read once at import time; point them away from PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest_bootstrap.db")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("ADMIN_NAMES", "Admin")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import Base, get_db
from app.services.orders import OrderQueryService, OrderStore
from app.services.users import AllowListRolePolicy, UserRegistry


class Harness:
    """
    Runs service calls against the test database, one fresh session
    (and event loop) per call, the way each HTTP request gets its own.
    """

    def __init__(self, session_factory, policy):
        self.session_factory = session_factory
        self.policy = policy

    def call(self, fn):
        async def _go():
            async with self.session_factory() as session:
                return await fn(session)
        return asyncio.run(_go())

    def store(self, method, *args, strict=True, track_users=True, **kwargs):
        def build(session):
            registry = UserRegistry(session, self.policy) if track_users else None
            store = OrderStore(session, registry=registry, strict_completion=strict)
            return getattr(store, method)(*args, **kwargs)
        return self.call(build)

    def query(self, method, *args, **kwargs):
        return self.call(lambda session: getattr(OrderQueryService(session), method)(*args, **kwargs))

    def resolve(self, name, policy=None):
        async def _resolve(session):
            async with session.begin():
                return await UserRegistry(session, policy or self.policy).resolve(name)
        return self.call(_resolve)

    def resolve_concurrently(self, name, times):
        """Resolve `name` from `times` sessions at once; each has its own connection."""
        async def _one():
            async with self.session_factory() as session:
                async with session.begin():
                    return await UserRegistry(session, self.policy).resolve(name)

        async def _all():
            return await asyncio.gather(*(_one() for _ in range(times)))
        return asyncio.run(_all())

    def count(self, model):
        async def _count(session):
            return (await session.execute(select(func.count()).select_from(model))).scalar_one()
        return self.call(_count)

    def add(self, *rows):
        async def _add(session):
            async with session.begin():
                session.add_all(rows)
        return self.call(_add)

    def create(self, user_name="Ali Veli", room="12", note="", items=None, **kwargs):
        items = items if items is not None else [{"product": "Tea", "quantity": 2}]
        return self.store("create_order", user_name, room, note, items, **kwargs)


async def _create_all(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}", poolclass=NullPool)
    asyncio.run(_create_all(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def policy():
    return AllowListRolePolicy(["Admin", "Işıl Kaya"], locale="tr")


@pytest.fixture
def harness(session_factory, policy):
    return Harness(session_factory, policy)


@pytest.fixture
def client(session_factory):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
