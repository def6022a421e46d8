from allobricolage.api.rate_limit import MemoryRateLimitStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def test_counts_within_a_window():
    store = MemoryRateLimitStore(clock=FakeClock())

    counts = [await store.hit("ratelimit:test:1.2.3.4", 60) for _ in range(3)]

    assert counts == [1, 2, 3]


async def test_window_resets():
    clock = FakeClock()
    store = MemoryRateLimitStore(clock=clock)

    await store.hit("k", 60)
    await store.hit("k", 60)
    clock.now = 60.0

    assert await store.hit("k", 60) == 1


async def test_keys_are_independent():
    store = MemoryRateLimitStore(clock=FakeClock())

    await store.hit("a", 60)

    assert await store.hit("b", 60) == 1


async def test_expired_windows_are_dropped():
    clock = FakeClock()
    store = MemoryRateLimitStore(clock=clock)

    for n in range(50):
        await store.hit(f"ratelimit:analyze:10.0.0.{n}", 60)
    assert store.tracked_keys == 50

    clock.now = 61.0
    await store.hit("ratelimit:analyze:10.0.1.1", 60)

    assert store.tracked_keys == 1
