#!/usr/bin/env python3
"""Unit tests for cache_clients.py (redis is a MagicMock)."""

import unittest
from unittest.mock import MagicMock

from cache_clients import MemoryCache, RedisCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestMemoryCache(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.cache = MemoryCache(self.clock)

    def test_miss(self):
        self.assertIsNone(self.cache.get("usernames"))

    def test_hit_within_ttl(self):
        self.cache.put("usernames", '["alice"]', 60)
        self.clock.now = 59
        self.assertEqual(self.cache.get("usernames"), '["alice"]')

    def test_expired(self):
        self.cache.put("usernames", '["alice"]', 60)
        self.clock.now = 60
        self.assertIsNone(self.cache.get("usernames"))
        self.assertNotIn("usernames", self.cache.entries)

    def test_put_replaces(self):
        self.cache.put("date_row", "[]", 60)
        self.clock.now = 50
        self.cache.put("date_row", '["3/1/2024"]', 60)
        self.clock.now = 100
        self.assertEqual(self.cache.get("date_row"), '["3/1/2024"]')

    def test_clear(self):
        self.cache.put("a", "1", 60)
        self.cache.clear()
        self.assertIsNone(self.cache.get("a"))


class TestRedisCache(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.cache = RedisCache(client=self.client)

    def test_get_prefixes_key(self):
        self.client.get.return_value = '["alice"]'
        self.assertEqual(self.cache.get("usernames"), '["alice"]')
        self.client.get.assert_called_once_with("attendance:usernames")

    def test_miss(self):
        self.client.get.return_value = None
        self.assertIsNone(self.cache.get("event_info_3"))

    def test_put_uses_setex(self):
        self.cache.put("event_info_3", "{}", 120)
        self.client.setex.assert_called_once_with("attendance:event_info_3", 120, "{}")

    def test_errors_propagate(self):
        self.client.get.side_effect = ConnectionError("redis down")
        with self.assertRaises(ConnectionError):
            self.cache.get("usernames")

    def test_custom_prefix(self):
        cache = RedisCache(client=self.client, prefix="team2:")
        cache.put("date_row", "[]", 1500)
        self.client.setex.assert_called_once_with("team2:date_row", 1500, "[]")


if __name__ == "__main__":
    unittest.main()
