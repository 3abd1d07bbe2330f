"""Write-once value cell with at-most-once initialisation.

A :class:`DeferredValue` starts empty.  The first caller of
:meth:`DeferredValue.get_or_set` moves it to ``computing`` and runs the
producer outside the lock; every other caller arriving meanwhile waits on the
condition until the value is committed and then returns that same object.
Once ``done`` the value never changes.

If the producer raises, the cell goes back to ``empty``, the exception
reaches the caller that ran the producer and one of the waiters takes over
with its own producer.
"""

from __future__ import annotations

import threading
from typing import Callable, Generic, TypeVar


T = TypeVar("T")

_EMPTY = "empty"
_COMPUTING = "computing"
_DONE = "done"


class DeferredValueUnsetError(LookupError):
    """Raised by :meth:`DeferredValue.get` before a value has been committed."""


class DeferredValue(Generic[T]):
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._state = _EMPTY
        self._owner: int | None = None
        self._value: T | None = None

    def is_set(self) -> bool:
        with self._cond:
            return self._state == _DONE

    def get(self) -> T:
        with self._cond:
            if self._state != _DONE:
                raise DeferredValueUnsetError("deferred value has not been set")
            return self._value  # type: ignore[return-value]

    def or_else(self, fallback: T) -> T:
        with self._cond:
            return self._value if self._state == _DONE else fallback  # type: ignore[return-value]

    def try_set(self, value: T) -> bool:
        """Commit ``value`` unless another value won first."""
        with self._cond:
            self._wait_while_computing()
            if self._state == _DONE:
                return False
            self._commit(value)
            return True

    def get_or_set(self, producer: Callable[[], T]) -> T:
        with self._cond:
            self._wait_while_computing()
            if self._state == _DONE:
                return self._value  # type: ignore[return-value]
            self._state = _COMPUTING
            self._owner = threading.get_ident()

        try:
            value = producer()
        except BaseException:
            with self._cond:
                self._state = _EMPTY
                self._owner = None
                self._cond.notify_all()
            raise

        with self._cond:
            self._commit(value)
        return value

    def _wait_while_computing(self) -> None:
        while self._state == _COMPUTING:
            if self._owner == threading.get_ident():
                raise RuntimeError("recursive initialisation of a deferred value")
            self._cond.wait()

    def _commit(self, value: T) -> None:
        self._value = value
        self._state = _DONE
        self._owner = None
        self._cond.notify_all()

    def __repr__(self) -> str:
        with self._cond:
            if self._state == _DONE:
                return f"DeferredValue({self._value!r})"
            return f"DeferredValue.{self._state}"


__all__ = ["DeferredValue", "DeferredValueUnsetError"]
