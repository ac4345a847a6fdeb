"""Tests for the per-run backend cache."""

import asyncio
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from metadata_fetcher.application.backends import BackendCache
from metadata_fetcher.application.domain import StorageBackend
from metadata_fetcher.application.locator import parse_locator


class FakeBackend(StorageBackend):

    def __init__(self, origin):
        self.origin = origin
        self.closed = False

    async def stat(self, path):
        return 0

    async def read(self, path, offset, length):
        return b""

    async def aclose(self):
        self.closed = True


class CountingFactory:

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = Counter()
        self._lock = threading.Lock()

    def __call__(self, origin):
        with self._lock:
            self.calls[origin] += 1
        time.sleep(self.delay)
        return FakeBackend(origin)


def test_same_origin_reuses_backend():
    factory = CountingFactory()
    cache = BackendCache(factory)
    a = cache.resolve(parse_locator("https://example.com/a.whl"))
    b = cache.resolve(parse_locator("https://example.com/b/c.whl"))
    assert a is b
    assert sum(factory.calls.values()) == 1


def test_distinct_origins_get_distinct_backends():
    factory = CountingFactory()
    cache = BackendCache(factory)
    cache.resolve(parse_locator("https://example.com/a.whl"))
    cache.resolve(parse_locator("https://mirror.example.com/a.whl"))
    cache.resolve(parse_locator("/tmp/a.whl"))
    cache.resolve(parse_locator("file:///tmp/b.whl"))
    assert len(cache) == 3
    assert set(factory.calls.values()) == {1}


def test_concurrent_first_use_constructs_once():
    factory = CountingFactory(delay=0.01)
    cache = BackendCache(factory)
    locators = [
        parse_locator(f"https://example.com/pkg-{i}.whl") for i in range(32)
    ] + [parse_locator(f"/tmp/pkg-{i}.whl") for i in range(32)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        backends = list(pool.map(cache.resolve, locators))

    assert len({id(b) for b in backends}) == 2
    assert list(factory.calls.values()) == [1, 1]


@pytest.mark.asyncio
async def test_aclose_closes_every_backend():
    cache = BackendCache(CountingFactory())
    a = cache.resolve(parse_locator("https://example.com/a.whl"))
    b = cache.resolve(parse_locator("/tmp/a.whl"))

    await cache.aclose()

    assert a.closed and b.closed
    assert len(cache) == 0
