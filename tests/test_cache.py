"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later
"""

from __future__ import annotations

import threading
import time

import pytest

from utils.cache import InMemoryTrackCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_set_and_expiry():
    clock = FakeClock()
    cache = InMemoryTrackCache(clock=clock)

    cache.set("a", "value", ttl=10)
    assert cache.get("a") == "value"
    clock.now = 9.9
    assert cache.get("a") == "value"
    clock.now = 10.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_invalidate_and_clear():
    cache = InMemoryTrackCache()
    cache.set("a", 1, ttl=60)
    cache.set("b", 2, ttl=60)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_get_or_load_loads_once():
    cache = InMemoryTrackCache()
    calls = []

    def loader():
        calls.append(1)
        return "profile"

    assert cache.get_or_load("a", loader, ttl=60) == "profile"
    assert cache.get_or_load("a", loader, ttl=60) == "profile"
    assert len(calls) == 1


def test_get_or_load_single_flight_under_concurrency():
    cache = InMemoryTrackCache()
    calls = []
    results = []

    def loader():
        calls.append(1)
        time.sleep(0.05)
        return "profile"

    def worker():
        results.append(cache.get_or_load("a", loader, ttl=60))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert results == ["profile"] * 8


def test_get_or_load_does_not_cache_failures():
    cache = InMemoryTrackCache()

    def failing():
        raise RuntimeError("network down")

    with pytest.raises(RuntimeError):
        cache.get_or_load("a", failing, ttl=60)
    assert cache.get("a") is None
    assert cache.get_or_load("a", lambda: "ok", ttl=60) == "ok"


def test_get_or_load_releases_key_locks():
    cache = InMemoryTrackCache()

    def failing():
        raise RuntimeError("bad track")

    for i in range(1000):
        cache.get_or_load(f"track-{i}", lambda: "profile", ttl=60)
    assert len(cache) == 1000
    assert cache._key_locks == {}

    with pytest.raises(RuntimeError):
        cache.get_or_load("broken", failing, ttl=60)
    assert cache._key_locks == {}

    cache.clear()
    assert len(cache) == 0
    assert cache._key_locks == {}
