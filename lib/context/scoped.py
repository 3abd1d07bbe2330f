"""Scoped, immutable context bindings.

A :class:`BindingSet` is an immutable, ordered collection of ``(name, value)``
pairs.  Binding a name that is already present appends a new pair which
shadows the older one; the older pair is still there and becomes visible again
as soon as the shadowing set is dropped.

The set active for the running code lives in a single request-scoped handle
(a :class:`contextvars.ContextVar`).  It is only ever replaced through
:meth:`Carrier.scope`, which restores the previous set in a ``finally`` block,
so leaving a scope by return or by exception looks the same to the caller.

Workers started on other threads do not see the caller's handle on their own.
:meth:`TaskScope.fork` passes the caller's current set to the worker as an
explicit argument; :func:`spawn` starts the worker with an empty set.  Code
that needs the bindings in a worker has to go through ``fork``.
"""

from __future__ import annotations

import contextvars
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Tuple, TypeVar


T = TypeVar("T")


class UnboundScopedValueError(LookupError):
    """Raised when reading a scoped value outside of any binding."""


@dataclass(frozen=True)
class BindingSet:
    pairs: Tuple[Tuple[str, str], ...] = ()

    def bind(self, name: str, value: str) -> "BindingSet":
        return BindingSet(self.pairs + ((name, value),))

    def is_bound(self, name: str) -> bool:
        return any(key == name for key, _ in self.pairs)

    def lookup(self, name: str) -> str:
        for key, value in reversed(self.pairs):
            if key == name:
                return value
        raise UnboundScopedValueError(f"scoped value {name!r} is not bound")

    def get_or(self, name: str, fallback: str) -> str:
        try:
            return self.lookup(name)
        except UnboundScopedValueError:
            return fallback

    def as_dict(self) -> dict[str, str]:
        """Visible value per name (innermost binding wins)."""
        return dict(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)


EMPTY = BindingSet()

_ACTIVE: contextvars.ContextVar[BindingSet] = contextvars.ContextVar(
    "scoped_bindings", default=EMPTY
)


def current_bindings() -> BindingSet:
    return _ACTIVE.get()


class ScopedValue:
    """Named key into the active :class:`BindingSet`."""

    def __init__(self, name: str) -> None:
        self.name = name

    def is_bound(self) -> bool:
        return current_bindings().is_bound(self.name)

    def get(self) -> str:
        return current_bindings().lookup(self.name)

    def or_else(self, fallback: str) -> str:
        return current_bindings().get_or(self.name, fallback)

    def __repr__(self) -> str:
        return f"ScopedValue({self.name!r})"


class Carrier:
    """Pending bindings, applied for the extent of :meth:`scope` or :meth:`call`."""

    def __init__(self, bindings: Tuple[Tuple[ScopedValue, str], ...] = ()) -> None:
        self._bindings = bindings

    def where(self, key: ScopedValue, value: str) -> "Carrier":
        return Carrier(self._bindings + ((key, value),))

    def _apply(self, base: BindingSet) -> BindingSet:
        for key, value in self._bindings:
            base = base.bind(key.name, value)
        return base

    @contextmanager
    def scope(self) -> Iterator[BindingSet]:
        token = _ACTIVE.set(self._apply(_ACTIVE.get()))
        try:
            yield _ACTIVE.get()
        finally:
            _ACTIVE.reset(token)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.scope():
            return fn(*args, **kwargs)

    run = call


def where(key: ScopedValue, value: str) -> Carrier:
    return Carrier(((key, value),))


def _run_under(bindings: BindingSet, fn: Callable[..., T], *args: Any) -> T:
    token = _ACTIVE.set(bindings)
    try:
        return fn(*args)
    finally:
        _ACTIVE.reset(token)


class TaskScope:
    """Fork workers that see the forking caller's bindings.

    Every worker is joined when the ``with`` block exits, so none of them can
    outlive the scope that started it::

        with TaskScope() as scope:
            first = scope.fork(load_profile)
            second = scope.fork(load_orders)
        profile, orders = first.result(), second.result()
    """

    def __init__(self, max_workers: int | None = None) -> None:
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> "TaskScope":
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="task-scope"
        )
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._executor is None:
            raise RuntimeError("TaskScope exited without being entered")
        self._executor.shutdown(wait=True)
        self._executor = None

    def fork(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        if self._executor is None:
            raise RuntimeError("fork() called outside of an open TaskScope")
        bindings = current_bindings()
        return self._executor.submit(
            contextvars.Context().run, _run_under, bindings, fn, *args
        )


def spawn(fn: Callable[..., Any], *args: Any) -> threading.Thread:
    """Start ``fn`` on a new thread with no bindings.  The caller joins it."""

    thread = threading.Thread(
        target=contextvars.Context().run,
        args=(_run_under, EMPTY, fn, *args),
        daemon=False,
    )
    thread.start()
    return thread


__all__ = [
    "BindingSet",
    "Carrier",
    "EMPTY",
    "ScopedValue",
    "TaskScope",
    "UnboundScopedValueError",
    "current_bindings",
    "spawn",
    "where",
]
