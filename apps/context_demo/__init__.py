"""Context propagation service.

:class:`ContextPropagationDemo` binds ``USER_ID``, ``REQUEST_ID`` and
``TENANT_ID`` with :func:`lib.context.scoped.where` and reads them back from
code running inside the binding, including worker threads forked through a
:class:`~lib.context.scoped.TaskScope`.  Threads started with
:func:`~lib.context.scoped.spawn` do not inherit the bindings and fall back
to the anonymous user.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from lib.config.features_loader import DEFAULT_CONFIG_PATH
from lib.config.yaml_loader import load_yaml
from lib.context.scoped import ScopedValue, TaskScope, spawn, where
from lib.contracts.responses import DefaultContext
from lib.telemetry.logger import get_logger
from lib.utils.validation import ensure


logger = get_logger(__name__)

USER_ID = ScopedValue("user_id")
REQUEST_ID = ScopedValue("request_id")
TENANT_ID = ScopedValue("tenant_id")

ANONYMOUS_USER = "usuario-anonimo"


@dataclass
class ContextPropagationDemo:
    config: Dict[str, Any] | None = field(default=None)
    config_path: str = DEFAULT_CONFIG_PATH
    anonymous_user: str = field(init=False, default=ANONYMOUS_USER)

    def __post_init__(self) -> None:
        if self.config is None and Path(self.config_path).exists():
            self.config = load_yaml(self.config_path)
        if isinstance(self.config, dict):
            self.anonymous_user = (
                (self.config.get("context") or {}).get("anonymous_user")
                or ANONYMOUS_USER
            )

    # ------------------------------------------------------------------
    def process_with_context(self, user_id: str, request_id: str, tenant_id: str) -> str:
        return (
            where(USER_ID, user_id)
            .where(REQUEST_ID, request_id)
            .where(TENANT_ID, tenant_id)
            .call(self._perform_operation)
        )

    def _perform_operation(self) -> str:
        result = "Procesando operación - User: {}, Request: {}, Tenant: {}".format(
            USER_ID.get(), REQUEST_ID.get(), TENANT_ID.get()
        )
        self._nested_operation()
        return result

    def _nested_operation(self) -> None:
        if USER_ID.is_bound():
            logger.info("context.nested_operation", user_id=USER_ID.get())

    # ------------------------------------------------------------------
    def process_with_concurrency(self, user_id: str) -> str:
        """Two forked workers, both reading the caller's ``USER_ID``."""

        def run_tasks() -> str:
            with TaskScope(max_workers=2) as scope:
                first = scope.fork(self._describe_task, 1)
                second = scope.fork(self._describe_task, 2)
            return f"{first.result()} | {second.result()}"

        return where(USER_ID, user_id).call(run_tasks)

    def process_with_bare_threads(self, user_id: str) -> str:
        """Same as :meth:`process_with_concurrency` on plain spawned threads.

        The threads start with no bindings, so each reports the anonymous user.
        """

        results: List[str] = ["", ""]

        def worker(slot: int) -> None:
            results[slot] = self._describe_task(slot + 1, fallback=self.anonymous_user)

        def run_tasks() -> str:
            threads = [spawn(worker, 0), spawn(worker, 1)]
            for thread in threads:
                thread.join()
            return " | ".join(results)

        return where(USER_ID, user_id).call(run_tasks)

    def _describe_task(self, number: int, fallback: str | None = None) -> str:
        user = USER_ID.get() if fallback is None else USER_ID.or_else(fallback)
        return f"Task {number} ejecutada por: {user}"

    # ------------------------------------------------------------------
    def nested_scopes(self) -> str:
        def outer() -> str:
            outer_tenant = TENANT_ID.get()
            inner = where(TENANT_ID, "tenant-2").call(
                lambda: f"Inner tenant: {TENANT_ID.get()}"
            )
            ensure(TENANT_ID.get() == outer_tenant, "outer tenant binding was not restored")
            return f"Outer tenant: {outer_tenant} | {inner}"

        return where(TENANT_ID, "tenant-1").call(outer)

    def has_user_context(self) -> bool:
        return USER_ID.is_bound()

    def get_user_id_or_default(self) -> str:
        return USER_ID.or_else(self.anonymous_user)

    def describe_default(self, user_id: str | None = None) -> DefaultContext:
        """Report whether a user is bound, optionally inside a binding for ``user_id``."""

        def snapshot() -> DefaultContext:
            return DefaultContext(
                has_context=self.has_user_context(),
                user_id=self.get_user_id_or_default(),
            )

        if user_id is None:
            return snapshot()
        return where(USER_ID, user_id).call(snapshot)


__all__ = [
    "ANONYMOUS_USER",
    "ContextPropagationDemo",
    "REQUEST_ID",
    "TENANT_ID",
    "USER_ID",
]
