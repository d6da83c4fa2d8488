"""
Cache clients for the attendance lookups.

Both clients store strings by key with a time-to-live in seconds:
    get(key)              -> value, or None on a miss
    put(key, value, ttl)
"""

import logging
import time

import redis

logger = logging.getLogger(__name__)


class RedisCache:
    """Cache backed by a redis server. Entries expire server-side (SETEX)."""

    def __init__(self, url=None, client=None, prefix="attendance:"):
        if client is None:
            client = redis.Redis.from_url(url, decode_responses=True)
        self.client = client
        self.prefix = prefix

    def _key(self, key):
        return self.prefix + key

    def get(self, key):
        return self.client.get(self._key(key))

    def put(self, key, value, ttl):
        self.client.setex(self._key(key), int(ttl), value)
        logger.debug(f"Cached {key} for {ttl}s")


class MemoryCache:
    """
    In-process cache with per-entry expiry.
    Used when no redis server is configured, and in tests (pass a fake clock).
    """

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self.entries = {}  # {key: (value, expires_at)}

    def get(self, key):
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self.entries[key]
            return None
        return value

    def put(self, key, value, ttl):
        self.entries[key] = (value, self.clock() + ttl)
        logger.debug(f"Cached {key} for {ttl}s")

    def clear(self):
        self.entries.clear()
