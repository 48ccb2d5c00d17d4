import asyncio

import pytest

from conftest import FakeBackend, FakeClock
from sheets import SheetCache, SheetStore, SheetStoreError, with_timeout

ROWS = [["DATE CREATED", "CHANNEL"], ["Rabu, 4 Maret 2026", "DIGIPOS"]]


def make_store(backend, clock=None, fetch_timeout=2):
    return SheetStore(backend, SheetCache(expiry=300, clock=clock or FakeClock()), fetch_timeout=fetch_timeout)


def test_fresh_cache_skips_backend():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    store = make_store(backend)

    first = asyncio.run(store.read("PROGRES PSB"))
    second = asyncio.run(store.read("PROGRES PSB"))

    assert first == second == ROWS
    assert backend.get_calls == 1


def test_expired_cache_refetches():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    clock = FakeClock()
    store = make_store(backend, clock)

    asyncio.run(store.read("PROGRES PSB"))
    clock.advance(299)
    asyncio.run(store.read("PROGRES PSB"))
    assert backend.get_calls == 1

    clock.advance(1)
    asyncio.run(store.read("PROGRES PSB"))
    assert backend.get_calls == 2


def test_use_cache_false_forces_fetch():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    store = make_store(backend)

    asyncio.run(store.read("PROGRES PSB"))
    asyncio.run(store.read("PROGRES PSB", use_cache=False))

    assert backend.get_calls == 2


def test_cache_is_per_sheet():
    backend = FakeBackend({"PROGRES PSB": ROWS, "MASTER": [["TELEGRAM"]]})
    store = make_store(backend)

    assert asyncio.run(store.read("PROGRES PSB")) == ROWS
    assert asyncio.run(store.read("MASTER")) == [["TELEGRAM"]]
    assert backend.get_calls == 2


def test_backend_failure_falls_back_to_cached_rows():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    store = make_store(backend)
    asyncio.run(store.read("PROGRES PSB"))

    backend.fail = True
    assert asyncio.run(store.read("PROGRES PSB", use_cache=False)) == ROWS


def test_backend_failure_falls_back_to_expired_cache():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    clock = FakeClock()
    store = make_store(backend, clock)
    asyncio.run(store.read("PROGRES PSB"))

    clock.advance(3600)
    backend.fail = True
    assert asyncio.run(store.read("PROGRES PSB")) == ROWS
    assert backend.get_calls == 2


def test_backend_failure_without_cache_raises():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    backend.fail = True
    store = make_store(backend)

    with pytest.raises(SheetStoreError, match="backend down"):
        asyncio.run(store.read("PROGRES PSB"))


def test_slow_backend_times_out():
    backend = FakeBackend({"PROGRES PSB": ROWS}, delay=0.3)
    store = make_store(backend, fetch_timeout=0.05)

    with pytest.raises(SheetStoreError, match="Timeout"):
        asyncio.run(store.read("PROGRES PSB"))


def test_append_goes_straight_to_backend():
    backend = FakeBackend({"PROGRES PSB": ROWS[:1]})
    store = make_store(backend)

    asyncio.run(store.append("PROGRES PSB", ["Rabu, 4 Maret 2026", "BS"]))

    assert backend.appended == [("PROGRES PSB", ["Rabu, 4 Maret 2026", "BS"])]


def test_append_failure_propagates():
    backend = FakeBackend()
    backend.fail_append = True
    store = make_store(backend)

    with pytest.raises(SheetStoreError, match="quota exceeded"):
        asyncio.run(store.append("PROGRES PSB", ["x"]))
    assert backend.appended == []


def test_with_timeout_wraps_slow_awaitable():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(SheetStoreError, match="Timeout - Google API response too slow"):
        asyncio.run(with_timeout(slow(), 0.01))


def test_slow_backend_falls_back_to_expired_cache():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    clock = FakeClock()
    store = make_store(backend, clock, fetch_timeout=0.05)
    asyncio.run(store.read("PROGRES PSB", timeout=5))

    clock.advance(600)
    backend.delay = 0.3
    assert asyncio.run(store.read("PROGRES PSB")) == ROWS


def test_caller_timeout_is_covered_by_fallback():
    backend = FakeBackend({"PROGRES PSB": ROWS})
    clock = FakeClock()
    store = make_store(backend, clock, fetch_timeout=5)
    asyncio.run(store.read("PROGRES PSB"))

    clock.advance(600)
    backend.delay = 0.3
    assert asyncio.run(store.read("PROGRES PSB", timeout=0.05)) == ROWS


def test_caller_timeout_without_cache_raises():
    backend = FakeBackend({"PROGRES PSB": ROWS}, delay=0.3)
    store = make_store(backend, fetch_timeout=5)

    with pytest.raises(SheetStoreError, match="Timeout"):
        asyncio.run(store.read("PROGRES PSB", timeout=0.05))
