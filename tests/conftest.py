from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from vidya import config
from vidya.learning.database import MemoryStore
from vidya.learning.dependencies import get_clock, get_store
from vidya.learning.mongo_store import MongoStore
from vidya.learning.seed_data import seed_catalog
from vidya.main import app


class FakeClock:
    """Manually advanced UTC clock"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "mongo"])
async def store(request):
    if request.param == "mongo":
        store = MongoStore(AsyncMongoMockClient(tz_aware=True)["vidya_test"])
        await store.create_indexes()
    else:
        store = MemoryStore()
    await seed_catalog(store)
    return store


@pytest.fixture
async def memory_store():
    store = MemoryStore()
    await seed_catalog(store)
    return store


@pytest.fixture
def client(memory_store, clock):
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api():
    return config.API_PREFIX
