"""Two-tier translation cache: in-process map backed by store snapshots.

Entry lifecycle:
    ABSENT -> FRESH -> STALE -> (refreshed) FRESH
    ABSENT -> FRESH -> (invalidated) ABSENT

An entry is stale once `now - last_updated > ttl`; stale entries are never
returned. Entries are keyed by locale, or by locale + category, and the two
never share a slot.

The in-memory map is guarded by a lock that is never held across a store
round trip: new entries are built first, then swapped in.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType

from app.services.errors import StoreWriteError
from app.utils.localization import generate_cache_key

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 30 * 60  # seconds


@dataclass(frozen=True)
class TranslationCacheEntry:
    """Flattened key -> value map of one locale (or locale + category)."""
    locale: str
    translations: MappingProxyType
    last_updated: float
    ttl: float
    category: str | None = None
    source: str = field(default='memory', compare=False)

    def is_stale(self, now: float) -> bool:
        return now - self.last_updated > self.ttl

    def to_dict(self):
        return {
            'locale': self.locale,
            'category': self.category,
            'translations': dict(self.translations),
            'last_updated': datetime.fromtimestamp(self.last_updated, tz=timezone.utc).isoformat(),
            'ttl': self.ttl,
        }


class TranslationCacheLayer:
    """Owns the in-memory cache map; directs the store to mirror snapshots.

    Constructed once per app (see `create_app`). `clear()` drops every
    in-memory entry on teardown.
    """

    def __init__(self, store, ttl=DEFAULT_CACHE_TTL, clock=time.time):
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self._entries = {}
        self._generations = {}
        self._lock = threading.Lock()

    def generation(self, locale: str) -> int:
        """Invalidation counter of a locale.

        Read it before loading from the store and pass it to `put`, so a
        load that raced with a write is dropped instead of cached.
        """
        with self._lock:
            return self._generations.get(locale, 0)

    def get(self, locale: str, category: str | None = None):
        """Return a fresh entry, hydrating from the snapshot on a memory miss.

        Returns None when the entry is absent or stale in both tiers.
        """
        cache_key = generate_cache_key(locale, category)
        now = self.clock()

        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is not None and entry.is_stale(now):
                del self._entries[cache_key]
                entry = None
            generation = self._generations.get(locale, 0)

        if entry is not None:
            logger.debug(f"Cache hit ({entry.source}) for {cache_key}")
            return entry

        snapshot = self.store.get_snapshot(locale, category)
        if snapshot is None:
            logger.debug(f"Cache miss for {cache_key}")
            return None

        entry = TranslationCacheEntry(
            locale=locale,
            category=category,
            translations=MappingProxyType(dict(snapshot.translations or {})),
            last_updated=float(snapshot.last_updated),
            ttl=float(snapshot.ttl),
            source='snapshot',
        )
        if entry.is_stale(now):
            logger.debug(f"Cache snapshot for {cache_key} is stale")
            return None

        with self._lock:
            if self._generations.get(locale, 0) != generation:
                return None
            # Later hits on this entry are served from memory
            self._entries[cache_key] = replace(entry, source='memory')
        logger.debug(f"Cache hit ({entry.source}) for {cache_key}")
        return entry

    def put(self, locale: str, translations: dict, category: str | None = None,
            generation: int | None = None):
        """Store a FRESH entry and mirror it to the snapshot table.

        Returns the new entry, or None when `generation` shows the locale
        was invalidated while the caller was loading. A failed snapshot
        write is logged; the in-memory entry is kept.
        """
        cache_key = generate_cache_key(locale, category)
        entry = TranslationCacheEntry(
            locale=locale,
            category=category,
            translations=MappingProxyType(dict(translations)),
            last_updated=self.clock(),
            ttl=self.ttl,
        )

        with self._lock:
            if generation is not None and self._generations.get(locale, 0) != generation:
                logger.debug(f"Dropping cache load for {cache_key}: invalidated meanwhile")
                return None
            self._entries[cache_key] = entry
            generation = self._generations.get(locale, 0)

        try:
            self.store.save_snapshot(
                locale, entry.translations, entry.last_updated, entry.ttl, category=category
            )
        except StoreWriteError as e:
            logger.warning(f"Cache snapshot for {cache_key} not persisted: {e}")
            return entry

        # A write may have invalidated the locale while the snapshot was saved
        with self._lock:
            raced = self._generations.get(locale, 0) != generation
        if raced:
            try:
                self.store.delete_snapshots(locale, category)
            except StoreWriteError as e:
                logger.warning(f"Raced cache snapshot for {cache_key} not removed: {e}")

        return entry

    def invalidate(self, locale: str, category: str | None = None) -> None:
        """Remove a cache entry from both tiers.

        Without a category every entry of the locale goes, locale-wide and
        per-category alike. Snapshot deletion failures propagate: a stale
        snapshot would otherwise be served again after a write.
        """
        with self._lock:
            self._generations[locale] = self._generations.get(locale, 0) + 1
            if category:
                self._entries.pop(generate_cache_key(locale, category), None)
            else:
                prefix = generate_cache_key(locale)
                for cache_key in list(self._entries):
                    if cache_key == prefix or cache_key.startswith(prefix + ':'):
                        del self._entries[cache_key]

        self.store.delete_snapshots(locale, category)
        logger.debug(f"Cache invalidated for {generate_cache_key(locale, category)}")

    def clear(self) -> None:
        """Drop every in-memory entry. Snapshots are left to expire."""
        with self._lock:
            self._entries.clear()
            self._generations.clear()
