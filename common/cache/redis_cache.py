"""
Async Redis cache client.

Wraps a ``redis.asyncio.Redis`` connection with the handful of primitives
the identity services need: cooldown windows, sliding counters and plain
cached values. Each instance is just a container for the connection and
default time-to-live values; the connection itself is safe to share.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from redis.asyncio import Redis

from common.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

COOLDOWN_MARKER = "1"


@dataclass(frozen=True)
class CooldownStatus:
    """Outcome of starting (or finding) a cooldown window."""

    expire_time: Optional[datetime]
    is_on_cooldown: bool
    time_to_live: timedelta


def create_redis_client(url: str) -> Redis:
    """Create an asyncio Redis client that decodes responses to str."""
    masked_url = url.split("@")[-1] if "@" in url else url
    logger.info(f"Connecting to Redis: {masked_url}")
    return Redis.from_url(url, decode_responses=True)


class CacheClient:
    """Cooldowns, counters and values stored in Redis."""

    def __init__(
        self,
        redis: Redis,
        cooldown_time_to_live: timedelta = timedelta(minutes=5),
        counter_time_to_live: timedelta = timedelta(minutes=15),
        value_time_to_live: timedelta = timedelta(days=1),
        clock: Clock = utcnow,
    ):
        """
        Initialize CacheClient.

        Args:
            redis: Redis asyncio connection
            cooldown_time_to_live: Default length of a cooldown window
            counter_time_to_live: Default sliding expiry of counters
            value_time_to_live: Default expiry of cached values
            clock: Source of the current UTC time
        """
        self._redis = redis
        self._cooldown_time_to_live = cooldown_time_to_live
        self._counter_time_to_live = counter_time_to_live
        self._value_time_to_live = value_time_to_live
        self._clock = clock

    async def get_cooldown_status(
        self,
        key: str,
        time_to_live: Optional[timedelta] = None,
    ) -> CooldownStatus:
        """
        Start a cooldown window for key unless one is already running.

        Args:
            key: Cache key identifying the cooled-down action
            time_to_live: Window length (defaults to the configured cooldown)

        Returns:
            CooldownStatus. is_on_cooldown is True when a window was already
            running; time_to_live and expire_time describe the window either way.
        """
        ttl = time_to_live or self._cooldown_time_to_live
        created = await self._redis.set(key, COOLDOWN_MARKER, px=_to_milliseconds(ttl), nx=True)

        remaining_ms = await self._redis.pttl(key)
        if remaining_ms is None or remaining_ms < 0:
            # Key vanished or has no expiry; report the window we asked for.
            remaining = ttl if created else timedelta(0)
        else:
            remaining = timedelta(milliseconds=remaining_ms)

        status = CooldownStatus(
            expire_time=self._clock() + remaining if remaining else None,
            is_on_cooldown=not created,
            time_to_live=remaining,
        )
        logger.debug(f"Cooldown status for {key}: on cooldown={status.is_on_cooldown}")
        return status

    async def increment_counter(
        self,
        key: str,
        time_to_live: Optional[timedelta] = None,
    ) -> int:
        """
        Increment a counter and push its expiry out.

        Args:
            key: Counter key
            time_to_live: Sliding expiry (defaults to the configured counter TTL)

        Returns:
            The counter value after incrementing
        """
        ttl = time_to_live or self._counter_time_to_live
        count = await self._redis.incr(key)
        await self._redis.pexpire(key, _to_milliseconds(ttl))
        return int(count)

    async def get_value(self, key: str) -> Optional[str]:
        """Get a cached value, or None if absent."""
        return await self._redis.get(key)

    async def set_value(
        self,
        key: str,
        value: str,
        time_to_live: Optional[timedelta] = None,
    ) -> None:
        """Cache a value with an expiry (defaults to the configured value TTL)."""
        ttl = time_to_live or self._value_time_to_live
        await self._redis.set(key, value, px=_to_milliseconds(ttl))

    async def delete_value(self, key: str) -> None:
        """Remove a cached value."""
        await self._redis.delete(key)


def _to_milliseconds(value: timedelta) -> int:
    return int(value.total_seconds() * 1000)
