import asyncio
import pytest

from studycore.errors import ProviderError
from studycore.semantic import ResponseCache, make_cache_key


class Counter:
    def __init__(self, value=None, error=None, steps=3):
        self.calls = 0
        self.value = value if value is not None else {'questions': ['q1']}
        self.error = error
        self.steps = steps

    async def __call__(self):
        self.calls += 1
        for _ in range(self.steps):
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.value


def test_make_cache_key_is_order_independent():
    a = make_cache_key('doc', 'quiz_generation', {'locale': 'en', 'counts': {'mc': 5, 'written': 2}})
    b = make_cache_key('  doc\n', 'quiz_generation', {'counts': {'written': 2, 'mc': 5}, 'locale': 'en'})
    assert a == b
    assert a.startswith('quiz_generation:')


def test_make_cache_key_distinguishes_inputs():
    base = make_cache_key('doc', 'quiz_generation', {'locale': 'en'})
    assert make_cache_key('doc', 'exercise_generation', {'locale': 'en'}) != base
    assert make_cache_key('doc', 'quiz_generation', {'locale': 'fr'}) != base
    assert make_cache_key('other doc', 'quiz_generation', {'locale': 'en'}) != base
    assert make_cache_key('doc', 'quiz_generation') == make_cache_key('doc', 'quiz_generation', {})


def test_cached_value_is_returned_as_same_object(timer):
    cache = ResponseCache(clock=timer)
    compute = Counter()

    async def main():
        first = await cache.get_or_compute('k', 3600, compute)
        timer.advance(1800)
        second = await cache.get_or_compute('k', 3600, compute)
        return first, second

    first, second = asyncio.run(main())
    assert second is first
    assert compute.calls == 1
    assert cache.stats()['hits'] == 1


def test_concurrent_calls_share_one_compute(timer):
    cache = ResponseCache(clock=timer)
    compute = Counter()

    async def main():
        return await asyncio.gather(*(cache.get_or_compute('k', 60, compute) for _ in range(5)))

    results = asyncio.run(main())
    assert compute.calls == 1
    assert all(r is results[0] for r in results)
    assert cache.stats()['dedup_hits'] == 4
    assert cache.pending_count() == 0


def test_expired_entry_is_recomputed(timer):
    cache = ResponseCache(clock=timer)
    compute = Counter()

    async def main():
        await cache.get_or_compute('k', 60, compute)
        timer.advance(60)
        await cache.get_or_compute('k', 60, compute)
        assert compute.calls == 1
        timer.advance(0.001)
        await cache.get_or_compute('k', 60, compute)

    asyncio.run(main())
    assert compute.calls == 2


def test_failure_propagates_to_all_callers_and_is_not_cached(timer):
    cache = ResponseCache(clock=timer)
    failing = Counter(error=ProviderError('boom'))

    async def main():
        return await asyncio.gather(
            cache.get_or_compute('k', 60, failing),
            cache.get_or_compute('k', 60, failing),
            return_exceptions=True,
        )

    results = asyncio.run(main())
    assert failing.calls == 1
    assert all(isinstance(r, ProviderError) for r in results)
    assert len(cache) == 0
    assert not cache.is_pending('k')

    ok = Counter(value='fresh')
    assert asyncio.run(cache.get_or_compute('k', 60, ok)) == 'fresh'
    assert ok.calls == 1


def test_failed_compute_is_logged_as_error(timer, monkeypatch):
    from studycore.semantic import cache_manager
    logged = []
    monkeypatch.setattr(cache_manager, 'log_error', lambda error, context=None: logged.append((error, context)))
    cache = ResponseCache(clock=timer)
    error = ProviderError('boom')

    with pytest.raises(ProviderError):
        asyncio.run(cache.get_or_compute('k', 60, Counter(error=error)))

    assert logged == [(error, {'key': 'k', 'outcome': 'failed'})]


def test_joiner_sees_owner_cancellation(timer):
    cache = ResponseCache(clock=timer)

    async def main():
        started = asyncio.Event()

        async def compute():
            started.set()
            await asyncio.sleep(10)
            return 'never'

        owner = asyncio.ensure_future(cache.get_or_compute('k', 60, compute))
        await started.wait()
        joiner = asyncio.ensure_future(cache.get_or_compute('k', 60, compute))
        await asyncio.sleep(0)
        owner.cancel()
        return await asyncio.gather(owner, joiner, return_exceptions=True)

    results = asyncio.run(main())
    assert all(isinstance(r, asyncio.CancelledError) for r in results)
    assert cache.pending_count() == 0


def test_cancelling_owner_clears_pending(timer):
    cache = ResponseCache(clock=timer)

    async def main():
        started = asyncio.Event()

        async def compute():
            started.set()
            await asyncio.sleep(10)
            return 'never'

        owner = asyncio.ensure_future(cache.get_or_compute('k', 60, compute))
        await started.wait()
        assert cache.is_pending('k')
        owner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await owner
        await asyncio.sleep(0)
        assert not cache.is_pending('k')

    asyncio.run(main())
    assert len(cache) == 0


def test_cancelling_joiner_keeps_shared_compute(timer):
    cache = ResponseCache(clock=timer)

    async def main():
        gate = asyncio.Event()

        async def compute():
            await gate.wait()
            return 'value'

        owner = asyncio.ensure_future(cache.get_or_compute('k', 60, compute))
        await asyncio.sleep(0)
        joiner = asyncio.ensure_future(cache.get_or_compute('k', 60, compute))
        await asyncio.sleep(0)
        joiner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await joiner
        gate.set()
        return await owner

    assert asyncio.run(main()) == 'value'
    assert cache.get('k') == 'value'


def test_get_set_delete_and_ttl(timer):
    cache = ResponseCache(clock=timer)
    cache.set('a', 1, 10)
    cache.set('skip', 2, 0)
    assert cache.get('a') == 1
    assert cache.get('skip', 'missing') == 'missing'
    timer.advance(11)
    assert cache.get('a') is None
    cache.set('b', 2, 10)
    assert cache.delete('b') is True
    assert cache.delete('b') is False


def test_cleanup_removes_expired(timer):
    cache = ResponseCache(clock=timer)
    cache.set('short', 1, 5)
    cache.set('long', 2, 500)
    timer.advance(10)
    assert cache.cleanup() == 1
    assert len(cache) == 1
    assert cache.get('long') == 2


def test_lru_eviction(timer):
    cache = ResponseCache(max_entries=2, clock=timer)
    cache.set('a', 1, 60)
    cache.set('b', 2, 60)
    cache.get('a')
    cache.set('c', 3, 60)
    assert cache.get('b') is None
    assert cache.get('a') == 1
    assert cache.get('c') == 3
    assert cache.stats()['evictions'] == 1


def test_stats_and_clear(timer):
    cache = ResponseCache(clock=timer)
    cache.set('a', 1, 60)
    cache.get('a')
    cache.get('missing')
    stats = cache.stats()
    assert stats['hits'] == 1
    assert stats['misses'] == 1
    assert stats['hit_rate'] == pytest.approx(0.5)
    assert stats['size'] == 1
    cache.clear()
    assert len(cache) == 0
    assert cache.stats()['hits'] == 0
