import asyncio
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root (1 level up from tests/) to sys.path so tests can import 'app'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

# Point the app at SQLite before anything imports app.models.database
_db_dir = tempfile.mkdtemp(prefix="signaling-tests-")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("LIVEKIT_API_KEY", "testkey")
os.environ.setdefault("LIVEKIT_API_SECRET", "testsecret")

import fakeredis
import fakeredis.aioredis
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

import app.config.redis as redis_module
import app.models.database as database_module
from app.models.database import Base as DBBase
from app.services.connection import OfflineSignalStore, SignalHub


# Every session gets a fresh connection on the running loop. TestClient and
# pytest-asyncio each drive their own event loop, so pooled connections would
# leak across loops.
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, future=True, poolclass=NullPool)
test_async_session = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

# Bind into the app's database module
database_module.engine = test_engine
database_module.AsyncSessionLocal = test_async_session


async def _reset_test_db():
    async with test_engine.begin() as conn:
        await conn.run_sync(DBBase.metadata.drop_all)
        await conn.run_sync(DBBase.metadata.create_all)


@pytest.fixture(autouse=True)
def async_db():
    """Recreate every table before each test."""
    asyncio.run(_reset_test_db())
    yield


@pytest.fixture(autouse=True)
def fake_redis():
    """Swap the shared Redis client for an isolated in-process fake."""
    client = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    redis_module._redis = client
    yield client
    redis_module._redis = None


@pytest.fixture
async def db():
    async with test_async_session() as session:
        yield session


@pytest.fixture
async def hub():
    """A running signal hub independent of the application singleton."""
    signal_hub = SignalHub(offline_store=OfflineSignalStore())
    signal_hub.start()
    yield signal_hub
    await signal_hub.stop()
