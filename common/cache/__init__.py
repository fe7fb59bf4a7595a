"""
Cache module - Async Redis client for cooldowns, counters and cached values.

Usage:
    from common.cache import CacheClient, create_redis_client

    cache = CacheClient(create_redis_client("redis://localhost:6379/0"))
    status = await cache.get_cooldown_status("cooldown:someone@example.com")
"""

from common.cache.redis_cache import CacheClient, CooldownStatus, create_redis_client

__all__ = ["CacheClient", "CooldownStatus", "create_redis_client"]
