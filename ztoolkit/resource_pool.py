"""A pool that recycles objects instead of creating new ones."""

from __future__ import annotations

import threading
import weakref
from typing import Any, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

RecycleCallback = Callable[[Any], object]


class _LeaseState:
    __slots__ = ("quit",)

    def __init__(self) -> None:
        self.quit = False


def _give_back(
    pool_ref: "weakref.ReferenceType[ResourcePool[Any]]",
    value: Any,
    state: _LeaseState,
    on_recycle: Optional[RecycleCallback],
) -> None:
    if on_recycle is not None:
        on_recycle(value)
    pool = pool_ref()
    if pool is not None and not state.quit:
        pool._recycle(value)


class PooledObject(Generic[T]):
    """An object lent out by a :class:`ResourcePool`.

    Releasing it (explicitly, by leaving a ``with`` block, or by garbage
    collection) returns the value to the pool unless :meth:`quit` was set.
    """

    def __init__(
        self,
        pool: "ResourcePool[T]",
        value: T,
        on_recycle: Optional[RecycleCallback] = None,
    ) -> None:
        self.value = value
        self._state = _LeaseState()
        self._finalizer = weakref.finalize(
            self, _give_back, weakref.ref(pool), value, self._state, on_recycle
        )
        self._finalizer.atexit = False

    def quit(self, flag: bool = True) -> None:
        """Keep the value out of the pool on release (or undo that with False)."""
        self._state.quit = flag

    def release(self) -> None:
        """Hand the value back; later calls do nothing."""
        self._finalizer()

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    def __enter__(self) -> "PooledObject[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class ResourcePool(Generic[T]):
    """Pool of reusable objects built by ``factory``, keeping at most ``size`` idle."""

    def __init__(self, factory: Callable[[], T], size: int = 8) -> None:
        self._factory = factory
        self._size = 0
        self.set_size(size)
        self._objs: List[T] = []
        self._busy = threading.Lock()

    def set_size(self, size: int) -> None:
        """Set how many idle objects the pool may keep."""
        if size < 0:
            raise ValueError("pool size must not be negative")
        self._size = size

    def obtain(self, on_recycle: Optional[RecycleCallback] = None) -> PooledObject[T]:
        """Lend out an idle object, or a new one if none is idle."""
        return PooledObject(self, self._take(), on_recycle)

    def idle_count(self) -> int:
        """Number of objects waiting in the pool."""
        return len(self._objs)

    def _take(self) -> T:
        if self._busy.acquire(blocking=False):
            try:
                if self._objs:
                    return self._objs.pop()
            finally:
                self._busy.release()
        return self._factory()

    def _recycle(self, value: T) -> None:
        if self._busy.acquire(blocking=False):
            try:
                if len(self._objs) < self._size:
                    self._objs.append(value)
            finally:
                self._busy.release()