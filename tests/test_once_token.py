import gc

import pytest

from ztoolkit.once_token import OnceToken


def test_constructed_callback_runs_immediately():
    calls = []
    OnceToken(lambda: calls.append("start"))
    assert calls == ["start"]


def test_destructed_runs_once_on_close():
    calls = []
    guard = OnceToken(lambda: calls.append("start"), lambda: calls.append("stop"))
    assert calls == ["start"]
    guard.close()
    guard.close()
    assert calls == ["start", "stop"]


def test_none_constructed_only_registers_teardown():
    calls = []
    guard = OnceToken(None, lambda: calls.append("stop"))
    assert calls == []
    guard.close()
    assert calls == ["stop"]


def test_context_manager_runs_teardown():
    calls = []
    with OnceToken(lambda: calls.append("start"), lambda: calls.append("stop")):
        assert calls == ["start"]
    assert calls == ["start", "stop"]


def test_teardown_runs_when_block_raises():
    calls = []
    with pytest.raises(RuntimeError):
        with OnceToken(None, lambda: calls.append("stop")):
            raise RuntimeError("boom")
    assert calls == ["stop"]


def test_teardown_runs_on_collection():
    calls = []
    guard = OnceToken(None, lambda: calls.append("stop"))
    del guard
    gc.collect()
    assert calls == ["stop"]


def test_failing_constructor_skips_teardown():
    calls = []

    def fail():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        OnceToken(fail, lambda: calls.append("stop"))
    gc.collect()
    assert calls == []