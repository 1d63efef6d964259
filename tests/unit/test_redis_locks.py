"""Tests for per-professional booking locks."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError, LockError

from podiatry_scheduler.core.scheduling.errors import ConflictDetected
from podiatry_scheduler.core.scheduling.locks import LocalProfessionalLocks
from podiatry_scheduler.infra.redis import ProfessionalLocks


def mock_redis(acquire):
    """Redis client whose lock() returns a lock with the given acquire behaviour."""
    lock = MagicMock()
    lock.acquire = AsyncMock(**acquire)
    lock.release = AsyncMock()
    client = MagicMock()
    client.lock = MagicMock(return_value=lock)
    return client, lock


class TestLocalLocks:
    """In-process locks."""

    @pytest.mark.asyncio
    async def test_serializes_same_professional(self):
        locks = LocalProfessionalLocks()
        order = []

        async def critical(name):
            async with locks.hold("pro-a"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(critical("first"), critical("second"))

        assert order == ["first-in", "first-out", "second-in", "second-out"]


class TestProfessionalLocks:
    """Redis-backed locks with local fallback."""

    @pytest.mark.asyncio
    async def test_takes_and_releases_redis_lock(self):
        client, lock = mock_redis({"return_value": True})
        locks = ProfessionalLocks(redis_client=client, timeout=5, blocking_timeout=1)

        async with locks.hold("pro-a"):
            pass

        client.lock.assert_called_once_with(
            "podiatry:v1:lock:professional:pro-a", timeout=5, blocking_timeout=1
        )
        lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_busy_lock_is_conflict(self):
        client, lock = mock_redis({"return_value": False})
        locks = ProfessionalLocks(redis_client=client)

        with pytest.raises(ConflictDetected):
            async with locks.hold("pro-a"):
                pass

        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_local(self):
        client, lock = mock_redis({"side_effect": ConnectionError("refused")})
        locks = ProfessionalLocks(redis_client=client)
        entered = False

        async with locks.hold("pro-a"):
            entered = True

        assert entered
        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_lock_release_is_tolerated(self):
        client, lock = mock_redis({"return_value": True})
        lock.release.side_effect = LockError("expired")
        locks = ProfessionalLocks(redis_client=client)

        async with locks.hold("pro-a"):
            pass

    @pytest.mark.asyncio
    async def test_redis_disabled(self):
        client, _ = mock_redis({"return_value": True})
        locks = ProfessionalLocks(redis_client=client, use_redis=False)

        async with locks.hold("pro-a"):
            pass

        client.lock.assert_not_called()
