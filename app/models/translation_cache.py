"""Persisted snapshot of a translation cache entry."""
from app import db

SNAPSHOT_PARTITION_PREFIX = 'CACHE#'
SNAPSHOT_LOCALE_SORT_KEY = 'TRANSLATIONS'
SNAPSHOT_CATEGORY_SORT_PREFIX = 'CATEGORY#'


def snapshot_keys(locale, category=None):
    """Return the (pk, sk) pair of the snapshot row for a cache entry."""
    pk = f'{SNAPSHOT_PARTITION_PREFIX}{locale}'
    if category:
        return pk, f'{SNAPSHOT_CATEGORY_SORT_PREFIX}{category}'
    return pk, SNAPSHOT_LOCALE_SORT_KEY


class TranslationCacheSnapshot(db.Model):
    """Flattened key -> value map of one locale (or locale + category).

    Lets a cold process reuse a cache built by another instance. Rows
    whose `expires_at` has passed are ignored and purged.
    """
    __tablename__ = 'translation_cache'

    pk = db.Column(db.String(64), primary_key=True)
    sk = db.Column(db.String(128), primary_key=True)
    locale = db.Column(db.String(8), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=True)
    translations = db.Column(db.JSON, nullable=False, default=dict)
    last_updated = db.Column(db.Float, nullable=False)  # epoch seconds
    ttl = db.Column(db.Float, nullable=False)  # seconds
    expires_at = db.Column(db.Integer, nullable=False, index=True)  # epoch seconds

    def __repr__(self):
        return f'<TranslationCacheSnapshot {self.pk}/{self.sk}>'
