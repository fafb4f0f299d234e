import os
import sys

import pytest

os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

# test/ on path so _helper is found
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from _helper import FakeRedis, InMemoryStore  # noqa: E402

from kapgel import db, redis_client  # noqa: E402


@pytest.fixture
def fake_redis():
    r = FakeRedis()
    redis_client._redis = r
    yield r
    redis_client._redis = None


@pytest.fixture
def store(monkeypatch, fake_redis):
    s = InMemoryStore()
    for name in ("fetch_order", "apply_transition", "set_user_role", "upsert_application", "decide_application"):
        monkeypatch.setattr(db, name, getattr(s, name))
    return s


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient

    from kapgel.deps import pool_dependency
    from kapgel.main import app
    from kapgel.rate_limit import limiter

    async def _pool():
        return store

    limiter.reset()
    app.dependency_overrides[pool_dependency] = _pool
    yield TestClient(app)
    app.dependency_overrides.clear()
