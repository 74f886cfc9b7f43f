import threading
from collections.abc import Callable

import pytest

from mdispatch import (
    DispatchCache,
    OverloadResolver,
    Signature,
    SynchronizedDispatchCache,
    Thunk,
    ThunkCompiler,
)
from tests.mdispatch.dummies import AddOp, Dispatcher


@pytest.fixture()
def thunk() -> Thunk:
    candidate = OverloadResolver().resolve(Dispatcher, "handle", [AddOp])
    assert candidate is not None
    return ThunkCompiler().compile(Dispatcher, candidate)


@pytest.mark.parametrize("cache_type", [DispatchCache, SynchronizedDispatchCache])
def test_DispatchCache(cache_type: Callable[[], DispatchCache], thunk: Thunk) -> None:
    cache = cache_type()
    signature = Signature(5)
    assert cache.lookup(signature) is None
    assert signature not in cache
    assert len(cache) == 0

    cache.insert(signature, thunk)
    assert cache.lookup(signature) is thunk
    assert signature in cache
    assert 5 in cache
    assert "5" not in cache
    assert 2**70 not in cache
    assert -(2**70) not in cache
    assert len(cache) == 1


@pytest.mark.parametrize("cache_type", [DispatchCache, SynchronizedDispatchCache])
def test_DispatchCache_get_or_compile(
    cache_type: Callable[[], DispatchCache], thunk: Thunk
) -> None:
    cache = cache_type()
    calls: list[Signature] = []

    def compute() -> Thunk:
        calls.append(signature)
        return thunk

    signature = Signature(1)
    assert cache.get_or_compile(signature, compute) is thunk
    assert cache.get_or_compile(signature, compute) is thunk
    assert calls == [signature]

    # Misses are not cached
    assert cache.get_or_compile(Signature(2), lambda: None) is None
    assert Signature(2) not in cache
    assert len(cache) == 1


@pytest.mark.parametrize("cache_type", [DispatchCache, SynchronizedDispatchCache])
def test_DispatchCache_get_or_compile_error(cache_type: Callable[[], DispatchCache]) -> None:
    cache = cache_type()

    def compute() -> Thunk:
        raise TypeError("broken")

    with pytest.raises(TypeError, match="broken"):
        cache.get_or_compile(Signature(1), compute)
    assert len(cache) == 0


def test_SynchronizedDispatchCache_computes_outside_lock(thunk: Thunk) -> None:
    cache = SynchronizedDispatchCache()

    def compute() -> Thunk:
        # Reads and writes of other signatures must not block while computing.
        assert cache._lock.acquire(blocking=False)
        cache._lock.release()
        assert cache.lookup(Signature(2)) is None
        cache.insert(Signature(2), thunk)
        return thunk

    assert cache.get_or_compile(Signature(1), compute) is thunk
    assert len(cache) == 2


def test_SynchronizedDispatchCache_concurrent_misses(thunk: Thunk) -> None:
    cache = SynchronizedDispatchCache()
    n_threads = 8
    barrier = threading.Barrier(n_threads)
    results: list[Thunk | None] = [None] * n_threads

    def run(i: int) -> None:
        barrier.wait()
        results[i] = cache.get_or_compile(Signature(1), lambda: thunk)

    threads = [threading.Thread(target=run, args=(i,)) for i in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert all(result is thunk for result in results)
    assert len(cache) == 1
