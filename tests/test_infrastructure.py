"""Connection pool sizing comes from settings."""

from rideflow.config import settings
from rideflow.infrastructure import redis_client
from rideflow.infrastructure.database import build_engine


def test_db_pool_sized_from_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "db_pool_size", 3)
    monkeypatch.setattr(settings, "db_max_overflow", 1)
    monkeypatch.setattr(settings, "db_pool_recycle_seconds", 120)

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}")
    pool = engine.sync_engine.pool
    assert pool.size() == 3
    assert pool._max_overflow == 1
    assert pool._recycle == 120


def test_redis_pool_capped_from_settings():
    assert redis_client._pool.max_connections == settings.redis_max_connections
