"""Tests for Redis caching and throttling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from firstcare.core.exceptions import UnauthorizedException
from firstcare.core.redis_client import CacheManager, RateLimiter
from firstcare.schemas.appointments import ActorRole, District
from firstcare.services.actor_directory import UserActorDirectory


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"health_district": "ugu", "roles": ["patient"]}'
    result = cache_manager.get_json("test_key")
    assert result == {"health_district": "ugu", "roles": ["patient"]}
    mock_redis.get.assert_called_once_with("test_key")


def test_cache_manager_get_json_tolerates_redis_errors():
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")

    assert CacheManager(redis_client=mock_redis).get_json("test_key") is None


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    test_data = {"health_district": "ugu", "roles": ["patient"]}

    # Test without TTL
    result = cache_manager.set_json("test_key", test_data)
    assert result is True
    mock_redis.set.assert_called_once()

    # Test with TTL
    mock_redis.reset_mock()
    result = cache_manager.set_json("test_key", test_data, ttl=300)
    assert result is True
    mock_redis.setex.assert_called_once()


def test_rate_limiter_first_request_opens_window():
    mock_redis = MagicMock()
    mock_redis.get.return_value = None

    assert RateLimiter(mock_redis).check_rate_limit("rate:booking:p1", limit=10, window=60)
    mock_redis.setex.assert_called_once_with("rate:booking:p1", 60, 1)


def test_rate_limiter_counts_requests():
    mock_redis = MagicMock()
    mock_redis.get.return_value = "3"

    assert RateLimiter(mock_redis).check_rate_limit("rate:booking:p1", limit=10)
    mock_redis.incr.assert_called_once_with("rate:booking:p1")


def test_rate_limiter_blocks_at_limit():
    mock_redis = MagicMock()
    mock_redis.get.return_value = "10"

    assert not RateLimiter(mock_redis).check_rate_limit("rate:booking:p1", limit=10)
    mock_redis.incr.assert_not_called()


def test_rate_limiter_fails_open():
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")

    assert RateLimiter(mock_redis).check_rate_limit("rate:booking:p1", limit=10)


def directory_with_row(row, cache=None):
    result = MagicMock()
    result.mappings.return_value.first.return_value = row
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return UserActorDirectory(db, cache), db


@pytest.mark.asyncio
async def test_actor_directory_reads_and_caches_user():
    """Test actor lookups are cached after the first database read."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    directory, db = directory_with_row(
        {"health_district": "ethekwini", "roles": ["patient", "health-worker"], "is_active": True},
        CacheManager(mock_redis),
    )

    assert await directory.get_actor_district("user-1") == District.ETHEKWINI
    assert await directory.get_actor_roles("user-1") == frozenset(
        {ActorRole.PATIENT, ActorRole.HEALTH_WORKER}
    )
    mock_redis.setex.assert_called_with(
        "actor:user-1",
        UserActorDirectory.ACTOR_CACHE_TTL,
        '{"health_district": "ethekwini", "roles": ["patient", "health-worker"]}',
    )


@pytest.mark.asyncio
async def test_actor_directory_uses_cache_hit():
    mock_redis = MagicMock()
    mock_redis.get.return_value = '{"health_district": null, "roles": ["admin", "auditor"]}'
    directory, db = directory_with_row(None, CacheManager(mock_redis))

    assert await directory.get_actor_district("user-1") is None
    # Unknown role names are dropped
    assert await directory.get_actor_roles("user-1") == frozenset({ActorRole.ADMIN})
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_actor_directory_defaults_to_patient_role():
    directory, _ = directory_with_row({"health_district": "ugu", "roles": [], "is_active": True})

    assert await directory.get_actor_roles("user-1") == frozenset({ActorRole.PATIENT})


@pytest.mark.asyncio
async def test_actor_directory_rejects_inactive_user():
    directory, _ = directory_with_row({"health_district": "ugu", "roles": [], "is_active": False})

    with pytest.raises(UnauthorizedException):
        await directory.get_actor_district("user-1")
