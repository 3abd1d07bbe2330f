import asyncio
import time

import pytest

from apps.concurrency_demo import DEFAULT_DELAYS_MS, FanOutError, StructuredConcurrencyDemo
from lib.contracts.responses import Summary


FAST = {
    "concurrency": {
        "timeout_seconds": 1.0,
        "delays_ms": {key: 0 for key in DEFAULT_DELAYS_MS} | {"database": 40, "api": 60},
    }
}


@pytest.fixture
def demo():
    return StructuredConcurrencyDemo(config=FAST)


def test_config_overrides_defaults():
    custom = StructuredConcurrencyDemo(
        config={"concurrency": {"timeout_seconds": 5, "delays_ms": {"cache": 1}}}
    )
    assert custom.timeout_seconds == 5.0
    assert custom.delays_ms["cache"] == 1
    assert custom.delays_ms["api"] == DEFAULT_DELAYS_MS["api"]


def test_fetch_user_data(demo):
    assert asyncio.run(demo.fetch_user_data("u1")) == (
        "User: Profile-u1, Orders: Orders-u1, Preferences: Preferences-u1"
    )


def test_fan_out_runs_concurrently():
    demo = StructuredConcurrencyDemo(
        config={"concurrency": {"delays_ms": {"profile": 100, "orders": 100, "preferences": 100}}}
    )
    started = time.perf_counter()
    asyncio.run(demo.fetch_user_data("u1"))
    assert time.perf_counter() - started < 0.25


def test_failure_cancels_siblings(demo):
    completed = []

    async def broken_orders(user_id):
        raise ConnectionError("orders service down")

    async def slow_preferences(user_id):
        await asyncio.sleep(1)
        completed.append("preferences")
        return "never"

    demo._fetch_user_orders = broken_orders
    demo._fetch_user_preferences = slow_preferences

    with pytest.raises(FanOutError) as info:
        asyncio.run(demo.fetch_user_data("u1"))

    assert info.value.operation == "user_data"
    assert [name for name, _ in info.value.failures] == ["orders"]
    assert completed == []
    assert info.value.to_dict()["failures"] == [
        {"task": "orders", "error": "ConnectionError", "message": "orders service down"}
    ]


def test_each_worker_runs_once(demo):
    calls = []

    async def counted_count(category):
        calls.append(category)
        return 7

    demo._get_count = counted_count
    summary = asyncio.run(demo.aggregate("books"))
    assert calls == ["books"]
    assert summary.count == 7


def test_fastest_source_wins(demo):
    assert asyncio.run(demo.fetch_from_multiple_sources("q")) == "Cache-Result: q"


def test_failed_source_falls_through_to_next(demo):
    async def cache_down(query):
        raise KeyError(query)

    demo._fetch_from_cache = cache_down
    assert asyncio.run(demo.fetch_from_multiple_sources("q")) == "DB-Result: q"


def test_all_sources_failing(demo):
    async def down(query):
        raise OSError("down")

    demo._fetch_from_cache = down
    demo._fetch_from_database = down
    demo._fetch_from_api = down
    with pytest.raises(FanOutError) as info:
        asyncio.run(demo.fetch_from_multiple_sources("q"))
    assert sorted(name for name, _ in info.value.failures) == ["api", "cache", "database"]


def test_fetch_with_timeout(demo):
    assert asyncio.run(demo.fetch_with_timeout("u1")) == "SlowOp1-u1 | SlowOp2-u1"


def test_deadline_cancels_slow_operations():
    demo = StructuredConcurrencyDemo(
        config={
            "concurrency": {
                "timeout_seconds": 0.05,
                "delays_ms": {"slow_op1": 500, "slow_op2": 500},
            }
        }
    )
    started = time.perf_counter()
    with pytest.raises(TimeoutError):
        asyncio.run(demo.fetch_with_timeout("u1"))
    assert time.perf_counter() - started < 0.4


def test_process_with_threads(demo):
    assert asyncio.run(demo.process_with_threads("d")) == (
        "Resultados: [Processed1-d, Processed2-d, Processed3-d]"
    )


def test_aggregate(demo):
    assert asyncio.run(demo.aggregate("electronics")) == Summary(
        count=42, sum=1234.56, average=29.39, max=999
    )
