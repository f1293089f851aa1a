# tests/unit/test_token_cache.py
import threading

from app.utils.token_cache import TokenCache


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _counting_fetch(ttl=3600):
    calls = []

    def fetch():
        calls.append(1)
        return f"token-{len(calls)}", ttl

    return fetch, calls


def test_token_is_reused_while_valid():
    fetch, calls = _counting_fetch()
    cache = TokenCache(fetch, skew_seconds=600, clock=Clock())
    assert cache.get() == "token-1"
    assert cache.get() == "token-1"
    assert len(calls) == 1


def test_token_refreshes_inside_skew_window():
    clock = Clock()
    fetch, calls = _counting_fetch(ttl=3600)
    cache = TokenCache(fetch, skew_seconds=600, clock=clock)
    cache.get()

    clock.now += 2999
    assert cache.get() == "token-1"
    clock.now += 1
    assert cache.get() == "token-2"
    assert len(calls) == 2


def test_invalidate_forces_refresh():
    fetch, calls = _counting_fetch()
    cache = TokenCache(fetch, clock=Clock())
    cache.get()
    cache.invalidate()
    assert not cache.is_valid()
    assert cache.get() == "token-2"


def test_concurrent_get_fetches_once():
    fetch, calls = _counting_fetch()
    cache = TokenCache(fetch)
    barrier = threading.Barrier(8)
    tokens = []

    def worker():
        barrier.wait()
        tokens.append(cache.get())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tokens == ["token-1"] * 8
    assert len(calls) == 1
