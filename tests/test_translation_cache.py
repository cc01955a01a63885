"""Test suite for the two-tier translation cache."""
import logging
import threading

from app.services.errors import StoreWriteError
from app.services.translation_cache import TranslationCacheLayer


class TestCacheEntryLifecycle:
    """ABSENT -> FRESH -> STALE, and FRESH -> invalidated -> ABSENT."""

    def test_absent(self, cache):
        assert cache.get('ru') is None

    def test_fresh_after_put(self, cache, clock):
        entry = cache.put('ru', {'greeting': 'Привет'})
        assert entry.last_updated == clock.now
        assert entry.ttl == 1800

        cached = cache.get('ru')
        assert cached.translations['greeting'] == 'Привет'

    def test_stale_after_ttl(self, cache, clock):
        cache.put('ru', {'greeting': 'Привет'})

        clock.advance(1800)
        assert cache.get('ru') is not None

        clock.advance(1)
        assert cache.get('ru') is None

    def test_invalidate(self, cache):
        cache.put('ru', {'greeting': 'Привет'})
        cache.invalidate('ru')
        assert cache.get('ru') is None

    def test_entries_are_read_only_copies(self, cache):
        source = {'greeting': 'Привет'}
        entry = cache.put('ru', source)
        source['greeting'] = 'changed'
        assert cache.get('ru').translations['greeting'] == 'Привет'
        assert entry.to_dict()['locale'] == 'ru'


class TestCacheKeys:

    def test_locale_and_category_entries_are_separate(self, cache):
        cache.put('ru', {'a': 'locale-wide'})
        cache.put('ru', {'b': 'orders only'}, category='orders')

        assert dict(cache.get('ru').translations) == {'a': 'locale-wide'}
        assert dict(cache.get('ru', 'orders').translations) == {'b': 'orders only'}
        assert cache.get('ru', 'auth') is None

    def test_invalidate_locale_drops_category_entries(self, cache):
        cache.put('ru', {'a': '1'})
        cache.put('ru', {'b': '2'}, category='orders')
        cache.put('en', {'a': 'one'})

        cache.invalidate('ru')

        assert cache.get('ru') is None
        assert cache.get('ru', 'orders') is None
        assert cache.get('en') is not None

    def test_invalidate_single_category(self, cache):
        cache.put('ru', {'a': '1'})
        cache.put('ru', {'b': '2'}, category='orders')

        cache.invalidate('ru', 'orders')

        assert cache.get('ru', 'orders') is None
        assert cache.get('ru') is not None


class TestSnapshotTier:

    def test_put_mirrors_snapshot(self, cache, store):
        cache.put('ru', {'greeting': 'Привет'})
        snapshot = store.get_snapshot('ru')
        assert snapshot.translations == {'greeting': 'Привет'}

    def test_cold_instance_hydrates_from_snapshot(self, cache, store, clock):
        cache.put('ru', {'greeting': 'Привет'})

        cold = TranslationCacheLayer(store, ttl=1800, clock=clock)
        entry = cold.get('ru')
        assert entry is not None
        assert entry.source == 'snapshot'
        assert entry.translations['greeting'] == 'Привет'

        # Now served from memory
        assert cold.get('ru').source == 'memory'

    def test_hit_log_names_the_tier(self, cache, store, clock, caplog):
        cache.put('ru', {'greeting': 'Привет'})
        cold = TranslationCacheLayer(store, ttl=1800, clock=clock)

        with caplog.at_level(logging.DEBUG, logger='app.services.translation_cache'):
            cold.get('ru')
            cold.get('ru')

        hits = [r.getMessage() for r in caplog.records if r.getMessage().startswith('Cache hit')]
        assert hits == [
            'Cache hit (snapshot) for translations:ru',
            'Cache hit (memory) for translations:ru',
        ]

    def test_stale_snapshot_is_a_miss(self, cache, store, clock):
        cache.put('ru', {'greeting': 'Привет'})
        clock.advance(1801)

        cold = TranslationCacheLayer(store, ttl=1800, clock=clock)
        assert cold.get('ru') is None

    def test_invalidate_removes_snapshot(self, cache, store, clock):
        cache.put('ru', {'greeting': 'Привет'})
        cache.invalidate('ru')

        assert store.get_snapshot('ru') is None
        cold = TranslationCacheLayer(store, ttl=1800, clock=clock)
        assert cold.get('ru') is None

    def test_snapshot_write_failure_keeps_memory_entry(self, store, clock, monkeypatch):
        def fail(*args, **kwargs):
            raise StoreWriteError('snapshot table unavailable')
        monkeypatch.setattr(store, 'save_snapshot', fail)

        cache = TranslationCacheLayer(store, ttl=1800, clock=clock)
        assert cache.put('ru', {'greeting': 'Привет'}) is not None
        assert cache.get('ru').translations['greeting'] == 'Привет'


class TestGenerations:

    def test_put_dropped_after_concurrent_invalidate(self, cache, store):
        generation = cache.generation('ru')
        cache.invalidate('ru')

        assert cache.put('ru', {'greeting': 'old'}, generation=generation) is None
        assert cache.get('ru') is None
        assert store.get_snapshot('ru') is None

    def test_put_with_current_generation(self, cache):
        generation = cache.generation('ru')
        assert cache.put('ru', {'greeting': 'Привет'}, generation=generation) is not None

    def test_clear(self, cache):
        cache.put('ru', {'a': '1'})
        cache.clear()
        # Snapshot still there, memory rebuilt from it
        assert cache.get('ru').source == 'snapshot'


class TestConcurrency:

    def test_readers_never_see_torn_entries(self, store, clock):
        store.save_snapshot = lambda *args, **kwargs: None
        store.get_snapshot = lambda *args, **kwargs: None
        cache = TranslationCacheLayer(store, ttl=1800, clock=clock)
        versions = [{f'k{i}': f'v{n}' for i in range(50)} for n in range(20)]
        errors = []

        def writer():
            for version in versions:
                cache.put('ru', version)

        def reader():
            for _ in range(200):
                entry = cache.get('ru')
                if entry is not None and len(set(entry.translations.values())) != 1:
                    errors.append(dict(entry.translations))

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
