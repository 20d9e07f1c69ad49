import gc
import threading

import pytest

from ztoolkit.resource_pool import PooledObject, ResourcePool


class Holder:
    def __init__(self):
        self.text = ""


RESERVED_TEXT = "This is a reserved object , and will never be used!"


def test_new_object_is_empty():
    pool = ResourcePool(Holder)
    obj = pool.obtain()
    assert isinstance(obj, PooledObject)
    assert obj.value.text == ""


def test_released_object_is_reused():
    pool = ResourcePool(Holder)
    obj = pool.obtain()
    obj.value.text = "keeped by thread:0"
    value = obj.value
    obj.release()
    assert pool.idle_count() == 1
    again = pool.obtain()
    assert again.value is value
    assert again.value.text == "keeped by thread:0"
    assert pool.idle_count() == 0


def test_held_object_is_not_handed_out():
    pool = ResourcePool(Holder, 50)
    reserved = pool.obtain()
    reserved.value.text = RESERVED_TEXT
    for _ in range(10):
        with pool.obtain() as other:
            assert other.value is not reserved.value
            other.value.text = "keeped by thread:1"
    assert reserved.value.text == RESERVED_TEXT


def test_released_reserved_object_gets_overwritten():
    pool = ResourcePool(Holder, 50)
    reserved = pool.obtain()
    reserved.value.text = RESERVED_TEXT
    ref = reserved.value
    reserved.release()
    with pool.obtain() as other:
        other.value.text = "keeped by thread:2"
        assert other.value is ref
    assert ref.text == "keeped by thread:2"


def test_quit_keeps_objects_out_of_pool():
    pool = ResourcePool(Holder, 50)
    leases = []
    for i in range(8):
        lease = pool.obtain()
        lease.value.text = f"{i}"
        lease.quit(i % 2 == 0)
        leases.append(lease)
    for lease in leases:
        lease.release()
    assert pool.idle_count() == 4
    assert sorted(int(h.text) for h in pool._objs) == [1, 3, 5, 7]


def test_quit_can_be_undone():
    pool = ResourcePool(Holder)
    lease = pool.obtain()
    lease.quit()
    lease.quit(False)
    lease.release()
    assert pool.idle_count() == 1


def test_pool_size_limits_idle_objects():
    pool = ResourcePool(Holder, 2)
    leases = [pool.obtain() for _ in range(5)]
    for lease in leases:
        lease.release()
    assert pool.idle_count() == 2


def test_set_size_rejects_negative():
    pool = ResourcePool(Holder)
    with pytest.raises(ValueError):
        pool.set_size(-1)


def test_release_is_idempotent():
    pool = ResourcePool(Holder)
    lease = pool.obtain()
    lease.release()
    lease.release()
    assert lease.released is True
    assert pool.idle_count() == 1


def test_on_recycle_called_with_value():
    pool = ResourcePool(Holder)
    seen = []
    lease = pool.obtain(seen.append)
    value = lease.value
    lease.release()
    assert seen == [value]


def test_garbage_collected_lease_returns_to_pool():
    pool = ResourcePool(Holder)
    lease = pool.obtain()
    del lease
    gc.collect()
    assert pool.idle_count() == 1


def test_release_after_pool_is_gone():
    pool = ResourcePool(Holder)
    seen = []
    lease = pool.obtain(seen.append)
    del pool
    gc.collect()
    lease.release()
    assert seen == [lease.value]
    assert lease.released is True


def test_concurrent_use_keeps_reserved_object():
    pool = ResourcePool(Holder, 50)
    reserved = pool.obtain()
    reserved.value.text = RESERVED_TEXT
    clashes = []

    def run(num):
        for _ in range(200):
            with pool.obtain() as lease:
                if lease.value is reserved.value:
                    clashes.append(num)
                lease.value.text = f"keeped by thread:{num}"

    threads = [threading.Thread(target=run, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert clashes == []
    assert reserved.value.text == RESERVED_TEXT
    assert pool.idle_count() <= 50