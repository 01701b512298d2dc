"""Tests for the single-flight setting cache.

The cache is asynchronous; each test drives its own event loop with
``asyncio.run`` and counts calls made to a fake backend fetcher.
"""

from __future__ import annotations

import asyncio
import time

from budget_dashboard.records import Setting
from budget_dashboard.settings_cache import (
    SettingNotFoundError,
    SettingState,
    SettingValueCache,
    snapshot_fetcher,
    use_cached_setting,
)


class FakeBackend:
    """Records fetch calls and answers them after an optional delay."""

    def __init__(self, values=None, delay=0.01, fail=False):
        self.values = dict(values or {})
        self.delay = delay
        self.fail = fail
        self.calls = []
        self.concurrent = 0
        self.max_concurrent = 0

    async def fetch(self, key):
        self.calls.append(key)
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        try:
            await asyncio.sleep(self.delay)
            if self.fail:
                raise ConnectionError('backend unavailable')
            if key not in self.values:
                return None
            return {'success': True, 'data': {'key': key, 'value': self.values[key]}}
        finally:
            self.concurrent -= 1


def test_concurrent_reads_share_one_fetch():
    backend = FakeBackend({'rate': 0.75})

    async def scenario():
        cache = SettingValueCache(backend.fetch)
        first, second = await asyncio.gather(cache.read('rate', 0.7), cache.read('rate', 0.7))
        return cache, first, second

    cache, first, second = asyncio.run(scenario())
    assert backend.calls == ['rate']
    assert first == second == 0.75
    assert cache.state('rate') is SettingState.RESOLVED


def test_later_reads_are_served_from_memory():
    backend = FakeBackend({'rate': 0.75})

    async def scenario():
        cache = SettingValueCache(backend.fetch)
        await cache.read('rate', 0.7)
        return await cache.read('rate', 0.7)

    assert asyncio.run(scenario()) == 0.75
    assert backend.calls == ['rate']


def test_peek_returns_default_until_resolved():
    backend = FakeBackend({'rate': 0.75}, delay=0.05)

    async def scenario():
        cache = SettingValueCache(backend.fetch)
        reading = asyncio.ensure_future(cache.read('rate', 0.7))
        await asyncio.sleep(0)
        before = (cache.peek('rate', 0.7), cache.is_loading('rate'))
        await reading
        after = (cache.peek('rate', 0.7), cache.is_loading('rate'))
        return before, after

    before, after = asyncio.run(scenario())
    assert before == (0.7, True)
    assert after == (0.75, False)


def test_keys_are_cached_independently():
    backend = FakeBackend({'rate': 0.75, 'currency': 'CHF'})

    async def scenario():
        cache = SettingValueCache(backend.fetch)
        return await asyncio.gather(cache.read('rate'), cache.read('currency'), cache.read('rate'))

    assert asyncio.run(scenario()) == [0.75, 'CHF', 0.75]
    assert sorted(backend.calls) == ['currency', 'rate']


def test_refresh_calls_are_debounced_into_one_fetch():
    backend = FakeBackend({'rate': 0.8}, delay=0)

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.3)
        started = time.monotonic()
        first = asyncio.ensure_future(cache.refresh('rate', 0.7))
        await asyncio.sleep(0.05)
        second = asyncio.ensure_future(cache.refresh('rate', 0.7))
        await asyncio.sleep(0.05)
        third = asyncio.ensure_future(cache.refresh('rate', 0.7))
        await asyncio.sleep(0)
        assert backend.calls == []
        results = await asyncio.gather(first, second, third)
        return results, time.monotonic() - started

    results, elapsed = asyncio.run(scenario())
    assert backend.calls == ['rate']
    assert results == [0.8, 0.8, 0.8]
    # the single fetch only fires once the last call's window has elapsed
    assert elapsed >= 0.1 + 0.3 - 0.02


def test_refresh_picks_up_new_value():
    backend = FakeBackend({'rate': 0.7})

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01)
        initial = await cache.read('rate')
        backend.values['rate'] = 0.9
        refreshed = await cache.refresh('rate')
        return initial, refreshed, await cache.read('rate')

    assert asyncio.run(scenario()) == (0.7, 0.9, 0.9)
    assert backend.calls == ['rate', 'rate']


def test_refresh_waits_for_fetch_in_flight():
    backend = FakeBackend({'rate': 0.7}, delay=0.1)

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01)
        reading = asyncio.ensure_future(cache.read('rate'))
        await asyncio.sleep(0)
        await asyncio.gather(reading, cache.refresh('rate'))

    asyncio.run(scenario())
    assert backend.calls == ['rate', 'rate']
    assert backend.max_concurrent == 1


def test_queued_refresh_reports_loading_while_it_fetches():
    backend = FakeBackend({'rate': 0.7}, delay=0.1)

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01)
        reading = asyncio.ensure_future(cache.read('rate'))
        await asyncio.sleep(0)
        refreshing = asyncio.ensure_future(cache.refresh('rate'))
        await reading
        await asyncio.sleep(0.03)
        during = (cache.is_loading('rate'), cache.state('rate'), len(backend.calls))
        await refreshing
        return during, cache.state('rate')

    during, after = asyncio.run(scenario())
    assert during == (True, SettingState.FETCHING, 2)
    assert after is SettingState.RESOLVED


def test_failing_error_handler_does_not_break_the_cache():
    backend = FakeBackend({'rate': 0.75}, fail=True)
    seen = []

    def handler(key, exc):
        seen.append(key)
        raise RuntimeError('handler broke')

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01, on_error=handler)
        first = await cache.read('rate', 0.7)
        backend.fail = False
        refreshed = await cache.refresh('rate', 0.7)
        return first, refreshed, cache.state('rate')

    first, refreshed, state = asyncio.run(scenario())
    assert first == 0.7
    assert refreshed == 0.75
    assert state is SettingState.RESOLVED
    assert seen == ['rate']
    assert backend.calls == ['rate', 'rate']


def test_failing_error_handler_does_not_drop_queued_refresh():
    backend = FakeBackend({'rate': 0.75}, delay=0.05, fail=True)

    def handler(key, exc):
        backend.fail = False
        raise RuntimeError('handler broke')

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01, on_error=handler)
        reading = asyncio.ensure_future(cache.read('rate', 0.7))
        await asyncio.sleep(0)
        refreshed = await cache.refresh('rate', 0.7)
        return await reading, refreshed

    assert asyncio.run(scenario()) == (0.7, 0.75)
    assert backend.calls == ['rate', 'rate']


def test_failed_fetch_keeps_default_and_reports_error():
    backend = FakeBackend(fail=True)
    errors = []

    async def scenario():
        cache = SettingValueCache(backend.fetch, on_error=lambda key, exc: errors.append((key, exc)))
        value = await cache.read('rate', 0.7)
        again = await cache.read('rate', 0.7)
        return cache, value, again

    cache, value, again = asyncio.run(scenario())
    assert value == again == 0.7
    # no automatic retry
    assert backend.calls == ['rate']
    assert cache.state('rate') is SettingState.IDLE
    assert len(errors) == 1
    assert errors[0][0] == 'rate'
    assert isinstance(errors[0][1], ConnectionError)


def test_failed_refresh_keeps_previous_value():
    backend = FakeBackend({'rate': 0.75})
    errors = []

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01, on_error=lambda k, e: errors.append(k))
        await cache.read('rate', 0.7)
        backend.fail = True
        return await cache.refresh('rate', 0.7)

    assert asyncio.run(scenario()) == 0.75
    assert errors == ['rate']


def test_not_found_is_a_fetch_failure():
    backend = FakeBackend({})
    errors = []

    async def scenario():
        cache = SettingValueCache(backend.fetch, on_error=lambda key, exc: errors.append(exc))
        return await cache.read('missing', 'fallback')

    assert asyncio.run(scenario()) == 'fallback'
    assert isinstance(errors[0], SettingNotFoundError)
    assert errors[0].key == 'missing'


def test_result_arriving_after_close_is_discarded():
    backend = FakeBackend({'rate': 0.75}, delay=0.05)

    async def scenario():
        cache = SettingValueCache(backend.fetch)
        reading = asyncio.ensure_future(cache.read('rate', 0.7))
        await asyncio.sleep(0)
        cache.close()
        value = await reading
        return cache, value

    cache, value = asyncio.run(scenario())
    assert backend.calls == ['rate']
    assert value == 0.7
    assert cache.peek('rate', 'unset') == 'unset'
    assert cache.state('rate') is SettingState.FETCHING


def test_close_releases_pending_refreshes_without_fetching():
    backend = FakeBackend({'rate': 0.75})

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.2)
        pending = asyncio.ensure_future(cache.refresh('rate', 0.7))
        await asyncio.sleep(0.01)
        cache.close()
        value = await pending
        await asyncio.sleep(0.25)
        after_close = await cache.refresh('rate', 0.7)
        return value, after_close

    assert asyncio.run(scenario()) == (0.7, 0.7)
    assert backend.calls == []


def test_async_context_manager_closes_scope():
    backend = FakeBackend({'rate': 0.75})

    async def scenario():
        async with SettingValueCache(backend.fetch) as cache:
            value = await cache.read('rate', 0.7)
        return cache, value

    cache, value = asyncio.run(scenario())
    assert value == 0.75
    assert not cache.alive


def test_handle_starts_fetch_and_exposes_state():
    backend = FakeBackend({'rate': 0.75}, delay=0.02)

    async def scenario():
        cache = SettingValueCache(backend.fetch, debounce_seconds=0.01)
        handle = use_cached_setting(cache, 'rate', 0.7)
        await asyncio.sleep(0)
        seen = (handle.value, handle.loading)
        loaded = await handle.load()
        backend.values['rate'] = 0.8
        refreshed = await handle.refresh()
        return seen, loaded, refreshed, handle.value, handle.loading

    seen, loaded, refreshed, value, loading = asyncio.run(scenario())
    assert seen == (0.7, True)
    assert loaded == 0.75
    assert refreshed == value == 0.8
    assert loading is False
    assert backend.calls == ['rate', 'rate']


def test_handle_outside_event_loop_defers_fetch():
    backend = FakeBackend({'rate': 0.75})
    cache = SettingValueCache(backend.fetch)
    handle = cache.handle('rate', 0.7)
    assert handle.value == 0.7
    assert backend.calls == []
    assert asyncio.run(handle.load()) == 0.75


def test_snapshot_fetcher_and_setting_objects():
    settings = {'costPerKm': Setting('costPerKm', 0.7, True)}

    async def scenario():
        cache = SettingValueCache(snapshot_fetcher(settings))
        return await cache.read('costPerKm', 0.5), await cache.read('other', 1.0)

    assert asyncio.run(scenario()) == (0.7, 1.0)


def test_bare_values_are_accepted():
    async def fetch(key):
        return 42

    async def scenario():
        return await SettingValueCache(fetch).read('answer')

    assert asyncio.run(scenario()) == 42


def test_debounce_window_from_environment(monkeypatch):
    async def fetch(key):
        return None

    monkeypatch.setenv('BUDGET_DASHBOARD_DEBOUNCE_SECONDS', '0.05')
    assert SettingValueCache(fetch).debounce_seconds == 0.05
    monkeypatch.setenv('BUDGET_DASHBOARD_DEBOUNCE_SECONDS', 'soon')
    assert SettingValueCache(fetch).debounce_seconds == 0.3
    monkeypatch.delenv('BUDGET_DASHBOARD_DEBOUNCE_SECONDS')
    assert SettingValueCache(fetch, debounce_seconds=1).debounce_seconds == 1
