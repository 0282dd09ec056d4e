import threading

from battlescope.cache import WarmStartCache


def test_get_returns_base_until_published() -> None:
    cache = WarmStartCache(b"base")
    assert cache.get() == b"base"
    assert not cache.is_warm
    assert cache.publish_count == 0


def test_publish_replaces_snapshot() -> None:
    cache = WarmStartCache(b"base")
    cache.publish(b"warm")
    assert cache.get() == b"warm"
    assert cache.is_warm
    assert cache.base == b"base"


def test_publish_accepts_bytearray_without_aliasing() -> None:
    cache = WarmStartCache(b"base")
    buffer = bytearray(b"warm")
    cache.publish(buffer)
    buffer[:] = b"xxxx"
    assert cache.get() == b"warm"


def test_concurrent_publishes_leave_one_complete_snapshot() -> None:
    cache = WarmStartCache(b"base")
    candidates = [bytes([i]) * 64 for i in range(8)]

    def publisher(snapshot: bytes) -> None:
        for _ in range(200):
            cache.publish(snapshot)
            assert cache.get() in candidates

    threads = [threading.Thread(target=publisher, args=(c,)) for c in candidates]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert cache.get() in candidates
    assert cache.publish_count == 8 * 200
