"""Structured concurrency service.

Each public coroutine of :class:`StructuredConcurrencyDemo` fans out a few
simulated lookups inside an :class:`asyncio.TaskGroup` and only returns once
every task has finished.  Each lookup runs exactly once and its result is the
one used to build the response.

When a lookup fails the group cancels its siblings and the call raises
:class:`FanOutError` naming every failed lookup.  :meth:`fetch_with_timeout`
runs under a real deadline and raises :class:`TimeoutError` once it passes.

The simulated latencies are read from the ``concurrency`` section of
``config/features.yaml``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Tuple

from lib.config.features_loader import DEFAULT_CONFIG_PATH
from lib.config.yaml_loader import load_yaml
from lib.contracts.responses import Summary
from lib.telemetry.logger import get_logger
from lib.utils.helpers import _asleep_ms


logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 2.0
DEFAULT_DELAYS_MS: Dict[str, float] = {
    "profile": 100,
    "orders": 150,
    "preferences": 80,
    "database": 200,
    "cache": 50,
    "api": 300,
    "slow_op1": 1000,
    "slow_op2": 1500,
    "count": 100,
    "sum": 120,
    "average": 90,
    "max": 110,
}


class FanOutError(RuntimeError):
    """One or more subtasks of a fan-out failed."""

    def __init__(self, operation: str, failures: List[Tuple[str, BaseException]]) -> None:
        self.operation = operation
        self.failures = failures
        detail = "; ".join(f"{name}: {exc}" for name, exc in failures)
        super().__init__(f"{operation} failed ({detail})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": "Fan-out failed",
            "operation": self.operation,
            "failures": [
                {"task": name, "error": type(exc).__name__, "message": str(exc)}
                for name, exc in self.failures
            ],
        }


@dataclass
class StructuredConcurrencyDemo:
    config: Dict[str, Any] | None = field(default=None)
    config_path: str = DEFAULT_CONFIG_PATH
    delays_ms: Dict[str, float] = field(init=False, default_factory=lambda: dict(DEFAULT_DELAYS_MS))
    timeout_seconds: float = field(init=False, default=DEFAULT_TIMEOUT_SECONDS)

    def __post_init__(self) -> None:
        if self.config is None and Path(self.config_path).exists():
            self.config = load_yaml(self.config_path)
        if isinstance(self.config, dict):
            section = self.config.get("concurrency") or {}
            self.delays_ms.update(section.get("delays_ms") or {})
            self.timeout_seconds = float(section.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))

    # ------------------------------------------------------------------
    # Fan-out primitives
    # ------------------------------------------------------------------
    async def _gather(
        self, operation: str, jobs: Dict[str, Coroutine[Any, Any, Any]]
    ) -> Dict[str, Any]:
        """Run every job in one task group; results keyed like ``jobs``."""

        tasks: Dict[str, asyncio.Task] = {}
        try:
            async with asyncio.TaskGroup() as group:
                for name, job in jobs.items():
                    tasks[name] = group.create_task(job, name=f"{operation}.{name}")
        except ExceptionGroup:
            failures = [
                (name, task.exception())
                for name, task in tasks.items()
                if task.done() and not task.cancelled() and task.exception() is not None
            ]
            logger.warning(
                "concurrency.fan_out.failed",
                operation=operation,
                failed=[name for name, _ in failures],
            )
            raise FanOutError(operation, failures) from None
        return {name: task.result() for name, task in tasks.items()}

    async def _first_success(
        self, operation: str, jobs: Dict[str, Coroutine[Any, Any, Any]]
    ) -> Any:
        """Return the first job to succeed and cancel the others."""

        tasks = {
            asyncio.create_task(job, name=f"{operation}.{name}"): name
            for name, job in jobs.items()
        }
        failures: List[Tuple[str, BaseException]] = []
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in (t for t in tasks if t in done):
                    exc = task.exception()
                    if exc is None:
                        logger.debug("concurrency.race.won", operation=operation, winner=tasks[task])
                        return task.result()
                    failures.append((tasks[task], exc))
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.warning("concurrency.race.all_failed", operation=operation)
        raise FanOutError(operation, failures)

    async def _simulate(self, key: str, result: Any) -> Any:
        await _asleep_ms(self.delays_ms.get(key, 0))
        return result

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def fetch_user_data(self, user_id: str) -> str:
        results = await self._gather(
            "user_data",
            {
                "profile": self._fetch_user_profile(user_id),
                "orders": self._fetch_user_orders(user_id),
                "preferences": self._fetch_user_preferences(user_id),
            },
        )
        return "User: {profile}, Orders: {orders}, Preferences: {preferences}".format(**results)

    async def fetch_from_multiple_sources(self, query: str) -> str:
        return await self._first_success(
            "multi_source",
            {
                "database": self._fetch_from_database(query),
                "cache": self._fetch_from_cache(query),
                "api": self._fetch_from_api(query),
            },
        )

    async def fetch_with_timeout(self, user_id: str) -> str:
        try:
            async with asyncio.timeout(self.timeout_seconds):
                results = await self._gather(
                    "timeout",
                    {
                        "slow_op1": self._slow_operation(1, user_id),
                        "slow_op2": self._slow_operation(2, user_id),
                    },
                )
        except TimeoutError:
            logger.warning(
                "concurrency.deadline_exceeded",
                operation="timeout",
                timeout_seconds=self.timeout_seconds,
            )
            raise
        return f"{results['slow_op1']} | {results['slow_op2']}"

    async def process_with_threads(self, data: str) -> str:
        results = await self._gather(
            "virtual_threads",
            {
                f"processor{n}": asyncio.to_thread(self._process_data, n, data)
                for n in (1, 2, 3)
            },
        )
        return "Resultados: [{}]".format(", ".join(results.values()))

    async def aggregate(self, category: str) -> Summary:
        results = await self._gather(
            "aggregate",
            {
                "count": self._get_count(category),
                "sum": self._get_sum(category),
                "average": self._get_average(category),
                "max": self._get_max(category),
            },
        )
        return Summary(**results)

    # ------------------------------------------------------------------
    # Simulated lookups
    # ------------------------------------------------------------------
    async def _fetch_user_profile(self, user_id: str) -> str:
        return await self._simulate("profile", f"Profile-{user_id}")

    async def _fetch_user_orders(self, user_id: str) -> str:
        return await self._simulate("orders", f"Orders-{user_id}")

    async def _fetch_user_preferences(self, user_id: str) -> str:
        return await self._simulate("preferences", f"Preferences-{user_id}")

    async def _fetch_from_database(self, query: str) -> str:
        return await self._simulate("database", f"DB-Result: {query}")

    async def _fetch_from_cache(self, query: str) -> str:
        return await self._simulate("cache", f"Cache-Result: {query}")

    async def _fetch_from_api(self, query: str) -> str:
        return await self._simulate("api", f"API-Result: {query}")

    async def _slow_operation(self, number: int, user_id: str) -> str:
        return await self._simulate(f"slow_op{number}", f"SlowOp{number}-{user_id}")

    def _process_data(self, number: int, data: str) -> str:
        return f"Processed{number}-{data}"

    # Each metric is simulated on its own; nothing ties them together.
    async def _get_count(self, category: str) -> int:
        return await self._simulate("count", 42)

    async def _get_sum(self, category: str) -> float:
        return await self._simulate("sum", 1234.56)

    async def _get_average(self, category: str) -> float:
        return await self._simulate("average", 29.39)

    async def _get_max(self, category: str) -> int:
        return await self._simulate("max", 999)


__all__ = ["DEFAULT_DELAYS_MS", "FanOutError", "StructuredConcurrencyDemo"]
