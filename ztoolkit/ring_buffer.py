"""A GOP-caching ring buffer that fans items out to readers on poller threads."""

from __future__ import annotations

import abc
import itertools
import logging
import queue
import threading
import weakref
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RING_MIN_SIZE = 32
"""Lower bound for the number of items a GOP cache may hold."""

_STOP = object()


class Poller:
    """A single worker thread that runs posted tasks in order."""

    def __init__(self, name: Optional[str] = None) -> None:
        self._tasks: "queue.SimpleQueue[Any]" = queue.SimpleQueue()
        self._thread = threading.Thread(
            target=self._run, name=name or "poller", daemon=True
        )
        self._thread.start()

    def run_async(self, task: Callable[[], object]) -> None:
        """Queue ``task`` to run on the poller thread."""
        self._tasks.put(task)

    def is_current_thread(self) -> bool:
        """Whether the caller is running on this poller's thread."""
        return threading.current_thread() is self._thread

    def close(self) -> None:
        """Stop the thread once the tasks queued so far have run."""
        self._tasks.put(_STOP)
        if not self.is_current_thread():
            self._thread.join()

    def __enter__(self) -> "Poller":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _run(self) -> None:
        while True:
            task = self._tasks.get()
            if task is _STOP:
                return
            try:
                task()
            except Exception:
                logger.exception("poller task failed")


class RingDelegate(abc.ABC, Generic[T]):
    """Receives every write instead of the ring buffer's readers."""

    @abc.abstractmethod
    def on_write(self, item: T, is_key: bool = True) -> None:
        """Handle one written item."""


class RingStorage(Generic[T]):
    """Cache of the items since the last key item, bounded by ``max_size``."""

    def __init__(self, max_size: int) -> None:
        self._max_size = max(max_size, RING_MIN_SIZE)
        self._have_idr = False
        self._data_cache: List[Tuple[bool, T]] = []

    @property
    def max_size(self) -> int:
        return self._max_size

    def write(self, item: T, is_key: bool = True) -> None:
        """Add an item; a key item drops everything cached before it."""
        if is_key:
            self._have_idr = True
            self._data_cache.clear()
        if not self._have_idr:
            return
        self._data_cache.append((is_key, item))
        if len(self._data_cache) > self._max_size:
            self._have_idr = False
            self._data_cache.clear()

    def clone(self) -> "RingStorage[T]":
        """Return an independent copy of this storage."""
        copy: RingStorage[T] = RingStorage(self._max_size)
        copy._have_idr = self._have_idr
        copy._data_cache = list(self._data_cache)
        return copy

    def cache(self) -> List[Tuple[bool, T]]:
        """The cached ``(is_key, item)`` pairs, oldest first."""
        return list(self._data_cache)

    def clear_cache(self) -> None:
        """Drop the cached items."""
        self._data_cache.clear()


def _noop_read(_item: Any) -> None:
    pass


def _noop_detach() -> None:
    pass


class RingReader(Generic[T]):
    """Receives the items written to a ring buffer, on its poller thread."""

    def __init__(self, storage: RingStorage[T], use_cache: bool = True) -> None:
        self._storage = storage
        self._use_cache = use_cache
        self._read_cb: Callable[[T], object] = _noop_read
        self._detach_cb: Callable[[], object] = _noop_detach
        self._finalizer: Optional[weakref.finalize] = None

    def set_read_cb(self, cb: Optional[Callable[[T], object]]) -> None:
        """Set the item callback; the cached items are replayed to it at once."""
        if cb is None:
            self._read_cb = _noop_read
        else:
            self._read_cb = cb
            self._flush_gop()

    def set_detach_cb(self, cb: Optional[Callable[[], object]]) -> None:
        """Set the callback run when the ring buffer goes away."""
        self._detach_cb = cb if cb is not None else _noop_detach

    def close(self) -> None:
        """Detach this reader from its ring buffer."""
        if self._finalizer is not None:
            self._finalizer()

    def _on_read(self, item: T, is_key: bool) -> None:
        self._read_cb(item)

    def _on_detach(self) -> None:
        self._detach_cb()

    def _flush_gop(self) -> None:
        if not self._use_cache:
            return
        for is_key, item in self._storage.cache():
            self._on_read(item, is_key)


def _post_release(poller: Any, dispatcher_ref: "weakref.ReferenceType[Any]", token: int) -> None:
    def release() -> None:
        dispatcher = dispatcher_ref()
        if dispatcher is not None:
            dispatcher._release(token)

    poller.run_async(release)


class _ReaderDispatcher(Generic[T]):
    """Readers attached through one poller; only touched on that poller's thread."""

    def __init__(
        self, storage: RingStorage[T], on_size_changed: Callable[[int, bool], None]
    ) -> None:
        self._storage = storage
        self._on_size_changed = on_size_changed
        self._readers: Dict[int, "weakref.ReferenceType[RingReader[T]]"] = {}
        self._tokens = itertools.count()

    @property
    def reader_size(self) -> int:
        return len(self._readers)

    def write(self, item: T, is_key: bool) -> None:
        for token, ref in list(self._readers.items()):
            reader = ref()
            if reader is None:
                del self._readers[token]
                self._size_changed(False)
                continue
            reader._on_read(item, is_key)
        self._storage.write(item, is_key)

    def attach(self, poller: Any, use_cache: bool) -> RingReader[T]:
        if not poller.is_current_thread():
            raise RuntimeError("attach must run on the bound poller thread")
        reader: RingReader[T] = RingReader(self._storage, use_cache)
        token = next(self._tokens)
        finalizer = weakref.finalize(
            reader, _post_release, poller, weakref.ref(self), token
        )
        finalizer.atexit = False
        reader._finalizer = finalizer
        self._readers[token] = weakref.ref(reader)
        self._size_changed(True)
        return reader

    def clear_cache(self) -> None:
        if not self._readers:
            self._storage.clear_cache()

    def detach_all(self) -> None:
        readers, self._readers = self._readers, {}
        for ref in readers.values():
            reader = ref()
            if reader is not None:
                reader._on_detach()

    def _release(self, token: int) -> None:
        if self._readers.pop(token, None) is not None:
            self._size_changed(False)

    def _size_changed(self, add_flag: bool) -> None:
        self._on_size_changed(len(self._readers), add_flag)


def _detach_dispatchers(dispatchers: Dict[Any, _ReaderDispatcher[Any]]) -> None:
    for poller, dispatcher in list(dispatchers.items()):
        poller.run_async(dispatcher.detach_all)
    dispatchers.clear()


class RingBuffer(Generic[T]):
    """Caches items since the last key item and hands every write to its readers.

    Readers are attached per poller; each poller's readers are served on that
    poller's thread, with their own copy of the cache.
    """

    def __init__(
        self,
        max_size: int = 1024,
        on_reader_changed: Optional[Callable[[int], object]] = None,
    ) -> None:
        self._on_reader_changed = on_reader_changed
        self._storage: RingStorage[T] = RingStorage(max_size)
        self._delegate: Optional[RingDelegate[T]] = None
        self._lock = threading.RLock()
        self._total_count = 0
        self._dispatchers: Dict[Any, _ReaderDispatcher[T]] = {}
        self._finalizer = weakref.finalize(self, _detach_dispatchers, self._dispatchers)
        self._finalizer.atexit = False

    def write(self, item: T, is_key: bool = True) -> None:
        """Write an item to every reader, or to the delegate if one is set."""
        if self._delegate is not None:
            self._delegate.on_write(item, is_key)
            return
        with self._lock:
            for poller, dispatcher in self._dispatchers.items():
                poller.run_async(
                    lambda d=dispatcher: d.write(item, is_key)
                )
            self._storage.write(item, is_key)

    def set_delegate(self, delegate: Optional[RingDelegate[T]]) -> None:
        """Route all writes to ``delegate``; ``None`` restores normal delivery."""
        self._delegate = delegate

    def attach(self, poller: Any, use_cache: bool = True) -> RingReader[T]:
        """Attach a reader; must be called on ``poller``'s thread."""
        with self._lock:
            dispatcher = self._dispatchers.get(poller)
            if dispatcher is None:
                ring_ref = weakref.ref(self)

                def on_size_changed(size: int, add_flag: bool) -> None:
                    ring = ring_ref()
                    if ring is not None:
                        ring._size_changed(poller, size, add_flag)

                dispatcher = _ReaderDispatcher(self._storage.clone(), on_size_changed)
                self._dispatchers[poller] = dispatcher
        return dispatcher.attach(poller, use_cache)

    def reader_count(self) -> int:
        """Number of readers attached across all pollers."""
        return self._total_count

    def clear_cache(self) -> None:
        """Drop the cached items here and, where no readers remain, on the pollers."""
        with self._lock:
            self._storage.clear_cache()
            for poller, dispatcher in self._dispatchers.items():
                poller.run_async(dispatcher.clear_cache)

    def _size_changed(self, poller: Any, size: int, add_flag: bool) -> None:
        with self._lock:
            if size == 0:
                self._dispatchers.pop(poller, None)
            self._total_count += 1 if add_flag else -1
            total = self._total_count
        if self._on_reader_changed is not None:
            self._on_reader_changed(total)