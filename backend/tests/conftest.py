"""Shared fixtures: a scripted SNMP agent and an in-memory store."""
import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from netsync.database import Base
from netsync import models  # noqa: F401 – registers tables with Base
from netsync.services.errors import SnmpTransportError
from netsync.services.snmp_session import NO_SUCH_INSTANCE, SnmpSession, VarBind, oid_suffix


def _oid_key(oid: str):
    return tuple(int(part) for part in oid.split("."))


class FakeSnmpSession(SnmpSession):
    """SnmpSession backed by a dict of OID -> value instead of a UDP agent."""

    def __init__(self, agent, ip, community, *, timeout=None, retries=None, version=None, port=None):
        self.agent = agent
        self.ip = ip
        self.community = community
        self.timeout = timeout
        self.retries = retries
        self.version = version or "2c"
        self.port = port or 161
        self._closed = False
        self.close_calls = 0
        self.requests = []

    async def _maybe_stall(self):
        if self.agent.delay:
            await asyncio.sleep(self.agent.delay)

    async def get(self, oids):
        self.requests.append(("get", list(oids)))
        await self._maybe_stall()
        if self.agent.fail_get:
            raise SnmpTransportError(self.ip, "Request timed out")
        return [
            VarBind(oid, "Integer", self.agent.values[oid]) if oid in self.agent.values
            else VarBind(oid, NO_SUCH_INSTANCE, None)
            for oid in oids
        ]

    async def walk(self, oid):
        self.requests.append(("walk", oid))
        await self._maybe_stall()
        if oid in self.agent.fail_walks:
            raise SnmpTransportError(self.ip, "Request timed out")
        found = [o for o in self.agent.values if oid_suffix(o, oid) is not None]
        return [VarBind(o, "OctetString", self.agent.values[o]) for o in sorted(found, key=_oid_key)]

    def close(self):
        self.close_calls += 1
        self._closed = True


class FakeAgent:
    """Session factory; every session it hands out reads the same OID table."""

    def __init__(self, values=None, *, delay=0.0, fail_get=False, fail_walks=()):
        self.values = dict(values or {})
        self.delay = delay
        self.fail_get = fail_get
        self.fail_walks = set(fail_walks)
        self.sessions = []

    def __call__(self, ip, community, **kwargs):
        session = FakeSnmpSession(self, ip, community, **kwargs)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_agent():
    return FakeAgent


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


def _inventory_transport(routes):
    """MockTransport answering {path: (status, json)}; unknown paths are 404."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status, body = routes.get(request.url.path, (404, {"status": "error"}))
        return httpx.Response(status, json=body)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


@pytest.fixture
def inventory_transport():
    return _inventory_transport
