"""
Redis Connection Management

Redis connection with graceful degradation, and per-professional booking
locks shared between workers. When Redis is unavailable the locks fall back
to in-process asyncio locks (fail-open); the store's atomic insert still
guarantees the no-overlap invariant.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, LockError, RedisError, TimeoutError

from podiatry_scheduler.config import settings
from podiatry_scheduler.core.scheduling.errors import ConflictDetected
from podiatry_scheduler.core.scheduling.locks import LocalProfessionalLocks

logger = logging.getLogger(__name__)

# App prefix for namespacing (allows multiple apps/versions on same Redis)
APP_PREFIX = "podiatry:v1:"


class RedisClient:
    """
    Manages Redis connection as a singleton.

    Features:
    - Automatic retries
    - Timeouts
    - Graceful failure handling (returns None instead of raising)
    """

    _client: Optional[Redis] = None
    _connected: bool = False

    @classmethod
    async def get_client(cls) -> Optional[Redis]:
        """
        Get or create Redis client.

        Returns:
            Redis client or None if connection fails
        """
        if cls._client is not None and cls._connected:
            return cls._client

        try:
            retry = Retry(ExponentialBackoff(), retries=3)

            cls._client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5.0,
                socket_timeout=5.0,
                retry_on_timeout=True,
                retry=retry,
            )

            await cls._client.ping()
            cls._connected = True
            logger.info("Redis connection established successfully")
            return cls._client

        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            cls._connected = False
            cls._client = None
            return None

    @classmethod
    async def close(cls) -> None:
        """Close Redis connection."""
        if cls._client is not None:
            try:
                await cls._client.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            finally:
                cls._client = None
                cls._connected = False

    @classmethod
    def is_connected(cls) -> bool:
        """Check if Redis is connected."""
        return cls._connected


async def get_redis() -> Optional[Redis]:
    """Redis client, or None if Redis is unavailable."""
    return await RedisClient.get_client()


class ProfessionalLocks(LocalProfessionalLocks):
    """
    Serializes create/reschedule per professional.

    Keys:
    - podiatry:v1:lock:professional:{professional_id}

    Always takes an in-process lock; additionally takes a Redis lock when
    Redis is reachable so that several workers serialize too.
    """

    KEY_PREFIX = f"{APP_PREFIX}lock:professional:"

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        use_redis: bool = True,
        timeout: Optional[float] = None,
        blocking_timeout: Optional[float] = None,
    ):
        super().__init__()
        self._redis_client = redis_client
        self._use_redis = use_redis
        self.timeout = timeout or settings.professional_lock_timeout
        self.blocking_timeout = blocking_timeout or settings.professional_lock_wait

    def _key(self, professional_id: str) -> str:
        return f"{self.KEY_PREFIX}{professional_id}"

    async def _get_redis(self) -> Optional[Redis]:
        if not self._use_redis:
            return None
        if self._redis_client is not None:
            return self._redis_client
        return await get_redis()

    @asynccontextmanager
    async def hold(self, professional_id: str) -> AsyncIterator[None]:
        """
        Hold the booking lock of one professional.

        Raises:
            ConflictDetected: another worker kept the lock past blocking_timeout
        """
        async with self._local_lock(professional_id):
            redis_client = await self._get_redis()
            redis_lock = None

            if redis_client is not None:
                candidate = redis_client.lock(
                    self._key(professional_id),
                    timeout=self.timeout,
                    blocking_timeout=self.blocking_timeout,
                )
                try:
                    acquired = await candidate.acquire()
                except RedisError as e:
                    logger.warning(
                        f"Redis lock unavailable for {professional_id}, "
                        f"using local lock only: {e}"
                    )
                else:
                    if not acquired:
                        raise ConflictDetected(
                            f"Another booking for professional {professional_id} "
                            f"is in progress"
                        )
                    redis_lock = candidate

            try:
                yield
            finally:
                if redis_lock is not None:
                    try:
                        await redis_lock.release()
                    except LockError as e:
                        # Lock expired while held; the store's atomic write still applies
                        logger.warning(f"Lost professional lock {professional_id}: {e}")


async def check_redis_health() -> bool:
    """
    Check Redis connectivity for health checks.

    Returns:
        bool: True if Redis is accessible, False otherwise
    """
    try:
        client = await RedisClient.get_client()
        if client is None:
            return False
        await client.ping()
        return True
    except RedisError:
        return False
