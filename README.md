# ztoolkit

Small building blocks for streaming and media servers. The package has no dependencies outside the standard library.

## Modules

- `ztoolkit.base64`
  - `encode_base64(data)` encodes bytes to padded base64 text with the standard alphabet. Text input is encoded as UTF-8 first. Empty input gives `""`.
  - `decode_base64(text)` decodes leniently. It stops at the first `=` or NUL character, so it accepts missing padding and ignores anything after the padding. Any other character outside the alphabet makes it return `b""`.
  - `base64_size(length)` returns the buffer size needed to encode `length` bytes. The size counts one extra byte for a terminator.
- `ztoolkit.once_token`
  - `OnceToken(on_constructed, on_destructed)` calls `on_constructed` right away.
  - It calls `on_destructed` exactly once, at the first of these: `close()`, leaving a `with` block, or garbage collection.
- `ztoolkit.ticker`
  - `Ticker` is a millisecond stopwatch with `elapsed_time()`, `created_time()` and `reset_time()`.
  - When it is built with `print_log=True`, `close()` (or leaving a `with` block) logs a warning through `logging` if more than `min_ms` milliseconds have passed since it was created.
  - A custom `clock` callable returning milliseconds can be supplied.
- `ztoolkit.ticker.SmoothTicker`
  - `elapsed_time()` produces smoothed timestamps that resynchronise with the clock every `reset_ms` milliseconds.
  - `reset_time()` restarts the timestamps from zero.
- `ztoolkit.resource_pool`
  - `ResourcePool(factory, size=8)` keeps up to `size` idle objects.
  - `obtain(on_recycle=None)` returns a `PooledObject` whose `value` is an idle object, or a new one built by `factory`.
  - Releasing the lease with `release()`, by leaving a `with` block, or by garbage collection does two things. It first runs `on_recycle(value)`. It then returns the value to the pool, unless `quit()` was called, the pool is full or the pool is gone.
  - `idle_count()` reports how many objects are waiting in the pool.
- `ztoolkit.ring_buffer`
  - `RingStorage` caches the `(is_key, item)` pairs written since the last key item. It holds at least 32 of them, and drops the whole cache when it overflows.
  - `RingBuffer.write(item, is_key)` stores each item and queues it to the `RingReader`s that were attached through `Poller`s.
  - `RingBuffer.attach(poller, use_cache)` must be called on the poller's own thread. Otherwise it raises `RuntimeError`.
  - A reader's `set_read_cb` first replays the cached items, then receives new ones on its poller thread.
  - `set_delegate` redirects every write to a `RingDelegate` instead.
  - `reader_count()` and the `on_reader_changed` callback track how many readers are attached.
- `ztoolkit.ring_buffer.Poller` is a single daemon worker thread. `run_async(task)` queues a task to it, and `close()` stops it once the tasks already queued have run.

## Example

```python
from ztoolkit.base64 import encode_base64, decode_base64
from ztoolkit.resource_pool import ResourcePool

assert encode_base64(b"abc:def") == "YWJjOmRlZg=="
assert decode_base64("MzMz") == b"333"

pool = ResourcePool(list, size=4)
with pool.obtain() as item:
    item.value.append(1)
assert pool.idle_count() == 1
```

## What it does not do

- It has no network layer, sockets, event loop or logging setup. `Poller` is only a plain task thread for `RingBuffer` readers.
- The package provides no command-line program.

## Tests

```
pip install -e .[test]
pytest
```