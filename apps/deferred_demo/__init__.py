"""Deferred value service.

:class:`DeferredValuesDemo` owns three :class:`~lib.concurrency.deferred.DeferredValue`
cells.  Each is filled by its producer on first read and returns the same
object afterwards, whichever thread reads it.  Producer invocations are
counted so the at-most-once guarantee can be observed from outside.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from lib.concurrency.deferred import DeferredValue
from lib.config.features_loader import DEFAULT_CONFIG_PATH
from lib.config.yaml_loader import load_yaml
from lib.contracts.responses import DatabaseConnection, ExpensiveResult, ThreadSafetyReport
from lib.telemetry.logger import get_logger
from lib.utils.helpers import _epoch_millis, _sleep_ms


logger = get_logger(__name__)

DEFAULT_DELAYS_MS: Dict[str, float] = {"config": 100, "expensive": 1000, "race": 100}
DEFAULT_CONNECTION: Dict[str, Any] = {"host": "localhost", "port": 5432}


@dataclass
class DeferredValuesDemo:
    config: Dict[str, Any] | None = field(default=None)
    config_path: str = DEFAULT_CONFIG_PATH
    delays_ms: Dict[str, float] = field(init=False, default_factory=lambda: dict(DEFAULT_DELAYS_MS))
    connection_settings: Dict[str, Any] = field(
        init=False, default_factory=lambda: dict(DEFAULT_CONNECTION)
    )
    _lazy_config: DeferredValue[str] = field(init=False, default_factory=DeferredValue)
    _connection: DeferredValue[DatabaseConnection] = field(init=False, default_factory=DeferredValue)
    _expensive: DeferredValue[ExpensiveResult] = field(init=False, default_factory=DeferredValue)
    _calls: Counter = field(init=False, default_factory=Counter)
    _calls_lock: threading.Lock = field(init=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        if self.config is None and Path(self.config_path).exists():
            self.config = load_yaml(self.config_path)
        if isinstance(self.config, dict):
            section = self.config.get("deferred") or {}
            self.delays_ms.update(section.get("delay_ms") or {})
            self.connection_settings.update(section.get("connection") or {})

    def _initializing(self, cell: str) -> None:
        with self._calls_lock:
            self._calls[cell] += 1
        logger.info("deferred.initializing", cell=cell)

    # ------------------------------------------------------------------
    def get_lazy_config(self) -> str:
        return self._lazy_config.get_or_set(self._load_configuration)

    def _load_configuration(self) -> str:
        self._initializing("lazy_config")
        _sleep_ms(self.delays_ms.get("config", 0))
        return f"config-loaded-{_epoch_millis()}"

    def get_connection(self) -> DatabaseConnection:
        def connect() -> DatabaseConnection:
            self._initializing("connection")
            return DatabaseConnection(
                host=str(self.connection_settings["host"]),
                port=int(self.connection_settings["port"]),
            )

        return self._connection.get_or_set(connect)

    def get_expensive_result(self) -> ExpensiveResult:
        def compute() -> ExpensiveResult:
            self._initializing("expensive")
            _sleep_ms(self.delays_ms.get("expensive", 0))
            return ExpensiveResult(data="resultado-complejo", value=42)

        return self._expensive.get_or_set(compute)

    def initialization_counts(self) -> Dict[str, int]:
        with self._calls_lock:
            return {cell: self._calls[cell] for cell in ("lazy_config", "connection", "expensive")}

    # ------------------------------------------------------------------
    def demonstrate_thread_safety(self) -> ThreadSafetyReport:
        """Race two threads with different producers on one fresh cell.

        Both threads report the value of whichever producer ran first; the
        other producer is never called.
        """

        shared: DeferredValue[str] = DeferredValue()
        produced_by = []
        observed: Dict[str, str] = {}
        start = threading.Barrier(2)

        def racer(name: str, candidate: str) -> None:
            def producer() -> str:
                produced_by.append(name)
                _sleep_ms(self.delays_ms.get("race", 0))
                return candidate

            start.wait()
            observed[name] = shared.get_or_set(producer)

        threads = [
            threading.Thread(target=racer, args=("thread1", "valor-thread-1")),
            threading.Thread(target=racer, args=("thread2", "valor-thread-2")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        logger.info("deferred.race.settled", winner=produced_by[0], value=shared.get())
        return ThreadSafetyReport(
            thread1=observed["thread1"],
            thread2=observed["thread2"],
            initializations=len(produced_by),
        )


__all__ = ["DeferredValuesDemo"]
