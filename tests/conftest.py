"""Shared fixtures: in-memory cache double and flat record builders."""
import fnmatch
import json

import pytest

from product_services.cache.redis_client import CacheUnavailableError
from product_services.models.records import FlatRecord, ProductCounts


class FakeCache:
    """
    Dict-backed stand-in for RedisCache.

    Values go through JSON like the real client. Set `down = True` to make
    every read and write raise CacheUnavailableError.
    """

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.down = False
        self.gets = 0
        self.sets = 0

    @property
    def is_connected(self) -> bool:
        return not self.down

    async def get(self, key):
        self.gets += 1
        if self.down:
            raise CacheUnavailableError("cache down")
        value = self.store.get(key)
        return None if value is None else json.loads(value)

    async def set(self, key, value, ttl=1800):
        self.sets += 1
        if self.down:
            raise CacheUnavailableError("cache down")
        self.store[key] = json.dumps(value)
        self.ttls[key] = ttl

    async def delete(self, key):
        return self.store.pop(key, None) is not None

    async def delete_pattern(self, pattern):
        keys = [key for key in self.store if fnmatch.fnmatch(key, pattern)]
        for key in keys:
            del self.store[key]
        return len(keys)

    async def ping(self):
        return not self.down

    async def get_stats(self):
        if self.down:
            return {"status": "disconnected"}
        return {"status": "connected", "hits": self.gets, "misses": 0, "hit_rate": 100.0}


def make_record(
    parent_id="1",
    client_id="C1",
    customer_id="CU1",
    parent_name="Parent Corp",
    client_name="Client Co",
    customer_name="Customer Ltd",
    segment="NA",
    region="US",
    country="USA",
    custody=1,
) -> FlatRecord:
    return FlatRecord(
        parent_id=parent_id,
        parent_name=parent_name,
        client_id=client_id,
        client_name=client_name,
        customer_id=customer_id,
        customer_name=customer_name,
        segment=segment,
        region=region,
        country=country,
        parent_counts=ProductCounts(custody=custody),
        client_counts=ProductCounts(custody=custody),
        customer_counts=ProductCounts(custody=custody),
    )


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def records():
    """Two parents, three clients, four customers"""
    return [
        make_record("1", "C1", "CU1", "Parent Corp", "Client Company", "Acme Customer", "NA", "US", "USA", custody=1),
        make_record("1", "C1", "CU2", "Parent Corp", "Client Company", "Beta Customer", "NA", "US", "CAN", custody=2),
        make_record("1", "C2", "CU3", "Parent Corp", "Other Client", "Gamma", "EMEA", "EU", "DEU", custody=3),
        make_record("2", "C3", "CU4", "Second Parent", "Third Client", "Delta", "APAC", "AP", "JPN", custody=4),
    ]


@pytest.fixture
def record_factory():
    return make_record
