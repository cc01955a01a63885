"""Translation store: chunked batch reads and writes over SQLAlchemy.

Two error policies, one per operation kind:

- READ paths (get, get_many, query_*, search, scan_all, get_snapshot)
  catch store errors, log them and degrade to None / {} / []. A missing
  translation then falls back to the key itself instead of failing.
  Reads called with `strict=True` raise StoreReadError instead.
- WRITE paths (put, put_many, delete, save_snapshot, delete_snapshots,
  purge_expired_snapshots) roll back and raise StoreWriteError. A lost
  write must never look like a success.

Batch sizes are a property of the store, not of the domain, so they are
passed in from the app config (STORE_BATCH_GET_LIMIT /
STORE_BATCH_WRITE_LIMIT).
"""

import logging
import math
import time

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models.translation import DEFAULT_CATEGORY, Translation, new_translation_id, utcnow
from app.models.translation_cache import TranslationCacheSnapshot, snapshot_keys
from app.services.errors import StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_GET_LIMIT = 100
DEFAULT_BATCH_WRITE_LIMIT = 25
DEFAULT_SEARCH_LIMIT = 50


def chunked(items, size):
    """Split a list into consecutive chunks of at most `size` items."""
    if size < 1:
        raise ValueError('Chunk size must be at least 1')
    return [items[i:i + size] for i in range(0, len(items), size)]


class TranslationStore:
    """Persistent store adapter for translations and cache snapshots."""

    def __init__(self, batch_get_limit=DEFAULT_BATCH_GET_LIMIT,
                 batch_write_limit=DEFAULT_BATCH_WRITE_LIMIT):
        for name, limit in (('batch_get_limit', batch_get_limit),
                            ('batch_write_limit', batch_write_limit)):
            if not isinstance(limit, int) or limit < 1:
                raise ValueError(f"{name} must be a positive integer, got {limit!r}")
        self.batch_get_limit = batch_get_limit
        self.batch_write_limit = batch_write_limit

    # ------------------------------------------------------------------
    # Reads (degrade on failure)
    # ------------------------------------------------------------------

    def get(self, key: str, locale: str, strict: bool = False):
        """Point read by (key, locale). Read path.

        With `strict=True` a store failure raises StoreReadError, so callers
        can tell an outage from a missing translation.
        """
        try:
            return Translation.query.filter_by(key=key, locale=locale).first()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error getting translation {key} [{locale}]: {e}")
            if strict:
                raise StoreReadError(f"Point read failed: {key} [{locale}]") from e
            return None

    def get_many(self, keys, locale: str, max_chunks=None) -> dict:
        """Fetch many keys of one locale, `batch_get_limit` keys per round trip.

        A failing chunk is logged and left out of the result. `max_chunks`
        bounds the number of round trips when a partial result is fine.
        Read path.
        """
        unique_keys = list(dict.fromkeys(keys))
        chunks = chunked(unique_keys, self.batch_get_limit) if unique_keys else []
        if max_chunks is not None and len(chunks) > max_chunks:
            logger.warning(
                f"get_many capped at {max_chunks} of {len(chunks)} chunks for locale {locale}"
            )
            chunks = chunks[:max_chunks]

        result = {}
        for index, chunk in enumerate(chunks):
            try:
                rows = self._fetch_chunk(chunk, locale)
            except SQLAlchemyError as e:
                self._rollback()
                logger.error(
                    f"Error getting translations chunk {index + 1}/{len(chunks)} "
                    f"({len(chunk)} keys, locale {locale}): {e}"
                )
                continue
            for translation in rows:
                result[translation.key] = translation
        return result

    def _fetch_chunk(self, keys, locale):
        return Translation.query.filter(
            Translation.locale == locale,
            Translation.key.in_(keys),
        ).all()

    def query_by_category(self, category: str, locale: str | None = None,
                          limit: int | None = None, strict: bool = False) -> list:
        """Range scan of the (locale, category, key) index. Read path.

        With `strict=True` a store failure raises StoreReadError instead of
        returning an empty list.
        """
        try:
            query = Translation.query.filter(Translation.category == category)
            if locale:
                query = query.filter(Translation.locale == locale)
            query = query.order_by(Translation.locale, Translation.key)
            if limit:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error getting translations for category {category}: {e}")
            if strict:
                raise StoreReadError(f"Category query failed: {category}") from e
            return []

    def query_by_locale(self, locale: str, category: str | None = None,
                        strict: bool = False) -> list:
        """Range scan of the (locale, category, key) index. Read path."""
        try:
            query = Translation.query.filter(Translation.locale == locale)
            if category:
                query = query.filter(Translation.category == category)
            return query.order_by(Translation.category, Translation.key).all()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error getting translations for locale {locale}: {e}")
            if strict:
                raise StoreReadError(f"Locale query failed: {locale}") from e
            return []

    def search(self, query: str, locale: str | None = None, category: str | None = None,
               limit: int = DEFAULT_SEARCH_LIMIT) -> list:
        """Case-insensitive substring search over keys and values.

        Full scan. Admin screens only, never the resolution path. Read path.
        """
        needle = (query or '').lower()
        try:
            q = Translation.query.filter(or_(
                Translation.key.icontains(needle, autoescape=True),
                Translation.value.icontains(needle, autoescape=True),
            ))
            if locale:
                q = q.filter(Translation.locale == locale)
            if category:
                q = q.filter(Translation.category == category)
            return q.order_by(Translation.key, Translation.locale).limit(limit).all()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error searching translations for {query!r}: {e}")
            return []

    def scan_all(self) -> list:
        """Every stored translation. For stats and admin jobs. Read path."""
        try:
            return Translation.query.order_by(Translation.locale, Translation.key).all()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error scanning translations: {e}")
            return []

    # ------------------------------------------------------------------
    # Writes (raise on failure)
    # ------------------------------------------------------------------

    def put(self, translation: Translation) -> Translation:
        """Upsert by (key, locale). `updated_at` is always set here. Write path."""
        try:
            record = self._apply(translation, utcnow())
            db.session.commit()
            return record
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error saving translation {translation.key} [{translation.locale}]: {e}")
            raise StoreWriteError(
                f"Could not save translation {translation.key} [{translation.locale}]"
            ) from e

    def put_many(self, translations) -> int:
        """Upsert translations in chunks of `batch_write_limit`. Write path.

        Chunks are committed one by one. The first failing chunk stops the
        batch and raises StoreWriteError with the count already written.
        Returns the number of translations written.
        """
        chunks = chunked(list(translations), self.batch_write_limit) if translations else []
        written = 0
        for index, chunk in enumerate(chunks):
            try:
                self._write_chunk(chunk)
            except SQLAlchemyError as e:
                self._rollback()
                logger.error(
                    f"Error saving translations chunk {index + 1}/{len(chunks)}, "
                    f"{written} written before failure: {e}"
                )
                raise StoreWriteError(
                    f"Batch write failed at chunk {index + 1} of {len(chunks)}",
                    written=written,
                ) from e
            written += len(chunk)
        return written

    def _write_chunk(self, chunk):
        now = utcnow()
        for translation in chunk:
            self._apply(translation, now)
        db.session.commit()

    def _apply(self, translation, now):
        existing = Translation.query.filter_by(
            key=translation.key, locale=translation.locale
        ).first()
        if existing is None:
            record = Translation(
                id=translation.id or new_translation_id(),
                key=translation.key,
                locale=translation.locale,
                created_at=translation.created_at or now,
            )
            db.session.add(record)
        else:
            record = existing

        record.value = translation.value
        record.category = translation.category or DEFAULT_CATEGORY
        record.description = translation.description
        record.variables = list(translation.variables or [])
        record.plural_forms_data = translation.plural_forms_data
        record.updated_at = now
        return record

    def delete(self, key: str, locale: str) -> None:
        """Delete by (key, locale). Deleting a missing row is a no-op. Write path."""
        try:
            Translation.query.filter_by(key=key, locale=locale).delete()
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error deleting translation {key} [{locale}]: {e}")
            raise StoreWriteError(f"Could not delete translation {key} [{locale}]") from e

    # ------------------------------------------------------------------
    # Cache snapshots
    # ------------------------------------------------------------------

    def get_snapshot(self, locale: str, category: str | None = None):
        """Snapshot row for a cache entry, or None. Read path."""
        pk, sk = snapshot_keys(locale, category)
        try:
            return db.session.get(TranslationCacheSnapshot, (pk, sk))
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error getting cache snapshot {pk}/{sk}: {e}")
            return None

    def save_snapshot(self, locale, translations, last_updated, ttl, category=None):
        """Write the snapshot row of a cache entry. Write path."""
        pk, sk = snapshot_keys(locale, category)
        try:
            snapshot = db.session.get(TranslationCacheSnapshot, (pk, sk))
            if snapshot is None:
                snapshot = TranslationCacheSnapshot(pk=pk, sk=sk)
                db.session.add(snapshot)
            snapshot.locale = locale
            snapshot.category = category
            snapshot.translations = dict(translations)
            snapshot.last_updated = last_updated
            snapshot.ttl = ttl
            snapshot.expires_at = int(math.ceil(last_updated + ttl))
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error saving cache snapshot {pk}/{sk}: {e}")
            raise StoreWriteError(f"Could not save cache snapshot {pk}/{sk}") from e

    def delete_snapshots(self, locale: str, category: str | None = None) -> None:
        """Delete one snapshot, or every snapshot of a locale. Write path."""
        try:
            query = TranslationCacheSnapshot.query
            if category:
                pk, sk = snapshot_keys(locale, category)
                query = query.filter_by(pk=pk, sk=sk)
            else:
                pk, _ = snapshot_keys(locale)
                query = query.filter_by(pk=pk)
            query.delete()
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error deleting cache snapshots for {locale}: {e}")
            raise StoreWriteError(f"Could not delete cache snapshots for {locale}") from e

    def purge_expired_snapshots(self, now: float | None = None) -> int:
        """Delete snapshot rows past their `expires_at`. Write path."""
        now = time.time() if now is None else now
        try:
            deleted = TranslationCacheSnapshot.query.filter(
                TranslationCacheSnapshot.expires_at < now
            ).delete()
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            logger.error(f"Error purging expired cache snapshots: {e}")
            raise StoreWriteError("Could not purge expired cache snapshots") from e
        if deleted:
            logger.info(f"Purged {deleted} expired cache snapshots")
        return deleted

    def _rollback(self):
        try:
            db.session.rollback()
        except SQLAlchemyError as e:
            logger.debug(f"Rollback failed: {e}")
