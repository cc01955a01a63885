"""Localization service: resolves translation keys for the mobile app.

Resolution never fails. When a key has no translation in the requested
locale nor in its fallback, the key itself is returned as the value, and
store outages degrade to the same result. Writes are the opposite: they
validate, raise on store failure, and invalidate the locale's cache before
returning.

Fallback is a single hop (ky -> ru, never ky -> ru -> en) to bound the
number of store round trips per request.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.constants.locales import default_registry
from app.models.translation import DEFAULT_CATEGORY, Translation
from app.services.errors import StoreReadError, StoreWriteError, ValidationError
from app.utils.localization import (
    PluralForms,
    extract_variables,
    interpolate,
    resolve_plural,
    validate_translation,
)

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    key: str
    locale: str
    value: str
    cached: bool = False
    variables: dict | None = None

    def to_dict(self):
        return {
            'key': self.key,
            'locale': self.locale,
            'value': self.value,
            'variables': self.variables,
            'cached': self.cached,
        }


@dataclass
class BulkTranslationResult:
    locale: str
    translations: dict
    missing: list
    cached: bool = False

    def to_dict(self):
        return {
            'locale': self.locale,
            'translations': dict(self.translations),
            'missing': list(self.missing),
            'cached': self.cached,
        }


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)

    def to_dict(self):
        return {'imported': self.imported, 'skipped': self.skipped, 'errors': list(self.errors)}


@dataclass
class LocalizationStats:
    total_translations: int
    by_locale: dict
    by_category: dict
    completeness: dict
    last_updated: str

    def to_dict(self):
        return {
            'total_translations': self.total_translations,
            'by_locale': dict(self.by_locale),
            'by_category': dict(self.by_category),
            'completeness': dict(self.completeness),
            'last_updated': self.last_updated,
        }


class LocalizationService:
    """Translation lookups, writes and cache maintenance.

    Args:
        store: TranslationStore used for all persistence
        cache: TranslationCacheLayer owning the in-memory cache
        registry: LocaleRegistry (defaults to the app-wide one)
    """

    def __init__(self, store, cache, registry=None):
        self.store = store
        self.cache = cache
        self.registry = registry or default_registry

    # ------------------------------------------------------------------
    # Resolution (never raises)
    # ------------------------------------------------------------------

    def resolve(self, key, locale=None, variables=None, count=None, fallback_locale=None):
        """Resolve one key to its localized value.

        Args:
            key: Translation key, e.g. 'orders.status.completed'
            locale: Requested locale; unsupported values use the default
            variables: Values for `{{name}}` placeholders
            count: Picks a plural form when the translation has them
            fallback_locale: Overrides the registry fallback

        Returns:
            TranslationResult; `value` is the key when nothing is found
        """
        locale = self.registry.normalize(locale)
        fallback = self._fallback_for(locale, fallback_locale)

        try:
            if count is not None:
                value, cached = self._resolve_plural(key, locale, fallback, count), False
            else:
                value, cached = self._resolve_value(key, locale, fallback)
        except Exception as e:
            logger.error(f"Translation error for {key} [{locale}]: {e}")
            return TranslationResult(key=key, locale=locale, value=key, variables=variables)

        if value is None:
            logger.debug(f"No translation for {key} [{locale}], returning key")
            value = key
        elif variables:
            value = interpolate(value, variables)

        return TranslationResult(
            key=key, locale=locale, value=value, cached=cached, variables=variables
        )

    def _resolve_value(self, key, locale, fallback):
        entry, hit = self._locale_entry(locale)
        cached = False
        if entry is not None:
            value = entry.translations.get(key)
            cached = hit and value is not None
        else:
            translation = self.store.get(key, locale)
            value = translation.value if translation else None

        if value is None and locale != fallback:
            values, fallback_hit = self._fallback_values([key], fallback)
            value = values.get(key)
            cached = fallback_hit and value is not None
        return value, cached

    def _resolve_plural(self, key, locale, fallback, count):
        # Cache entries hold flat values only, plural forms need the record
        translation = self.store.get(key, locale)
        if translation is None and locale != fallback:
            translation = self.store.get(key, fallback)
        if translation is None:
            return None

        forms = translation.plural_forms
        if forms is None:
            return translation.value
        # The requested locale picks the rule, also for a fallback record
        return resolve_plural(count, forms, locale, self.registry)

    def resolve_many(self, keys, locale=None, variables=None, fallback_locale=None):
        """Resolve several keys at once.

        Args:
            keys: Translation keys
            locale: Requested locale; unsupported values use the default
            variables: Optional {key: {name: value}} placeholder values
            fallback_locale: Overrides the registry fallback

        Returns:
            BulkTranslationResult; keys with no translation map to
            themselves and are listed in `missing`
        """
        keys = list(keys)
        locale = self.registry.normalize(locale)
        fallback = self._fallback_for(locale, fallback_locale)
        variables = variables or {}

        try:
            requested = list(dict.fromkeys(keys))
            entry, cached = self._locale_entry(locale)
            if entry is not None:
                found = {k: entry.translations[k] for k in requested if entry.translations.get(k)}
            else:
                found = {k: t.value for k, t in self.store.get_many(requested, locale).items()}

            absent = [k for k in requested if k not in found]
            if absent and locale != fallback:
                fallback_values, _ = self._fallback_values(absent, fallback)
                found.update(fallback_values)

            translations = {}
            missing = []
            for key in keys:
                value = found.get(key)
                if value:
                    key_variables = variables.get(key)
                    translations[key] = interpolate(value, key_variables) if key_variables else value
                else:
                    translations[key] = key
                    missing.append(key)

            return BulkTranslationResult(
                locale=locale, translations=translations, missing=missing, cached=cached
            )

        except Exception as e:
            logger.error(f"Bulk translation error [{locale}]: {e}")
            return BulkTranslationResult(
                locale=locale,
                translations={key: key for key in keys},
                missing=list(keys),
                cached=False,
            )

    def get_locale_translations(self, locale=None, category=None) -> dict:
        """Flat {key: value} of a whole locale or one of its categories.

        Served from the locale (or locale + category) cache entry, which is
        rebuilt on a miss.
        """
        locale = self.registry.normalize(locale)
        entry, _ = self._locale_entry(locale, category)
        if entry is not None:
            return dict(entry.translations)
        return {t.key: t.value for t in self.store.query_by_locale(locale, category)}

    def _locale_entry(self, locale, category=None):
        """Return (entry, was_cached). `entry` is None if it could not be built."""
        entry = self.cache.get(locale, category)
        if entry is not None:
            return entry, True
        return self._load_into_cache(locale, category), False

    def _load_into_cache(self, locale, category=None):
        generation = self.cache.generation(locale)
        try:
            rows = self.store.query_by_locale(locale, category, strict=True)
        except StoreReadError as e:
            # Do not cache an outage as an empty locale
            logger.warning(f"Cache rebuild skipped for {locale}: {e}")
            return None
        translations = {t.key: t.value for t in rows}
        return self.cache.put(locale, translations, category, generation=generation)

    def _fallback_values(self, keys, fallback):
        entry = self.cache.get(fallback)
        if entry is not None:
            return {k: entry.translations[k] for k in keys if entry.translations.get(k)}, True
        rows = self.store.get_many(keys, fallback)
        return {k: t.value for k, t in rows.items()}, False

    def _fallback_for(self, locale, fallback_locale):
        if fallback_locale and self.registry.is_supported(fallback_locale):
            return fallback_locale
        return self.registry.fallback_of(locale)

    # ------------------------------------------------------------------
    # Writes (raise, then invalidate)
    # ------------------------------------------------------------------

    def save(self, translation: Translation) -> Translation:
        """Validate, persist and invalidate the locale cache.

        Caller-supplied `variables` are discarded and recomputed from
        `value`. Raises ValidationError or StoreWriteError.
        """
        self._validate(translation)
        translation.refresh_variables()

        saved = self.store.put(translation)
        self.cache.invalidate(saved.locale)
        logger.info(f"Saved translation {saved.key} [{saved.locale}]")
        return saved

    def save_many(self, translations) -> int:
        """Validate all translations, then write them in batches.

        Nothing is written if any translation is invalid. Every affected
        locale is invalidated, even when a batch fails halfway.
        """
        translations = list(translations)
        for translation in translations:
            self._validate(translation)
            translation.refresh_variables()

        try:
            return self.store.put_many(translations)
        finally:
            for locale in sorted({t.locale for t in translations}):
                self.cache.invalidate(locale)

    def delete(self, key, locale) -> None:
        """Delete a translation. Deleting a missing one is not an error."""
        self.store.delete(key, locale)
        self.cache.invalidate(locale)
        logger.info(f"Deleted translation {key} [{locale}]")

    def import_translations(self, locale, translations: dict, category=DEFAULT_CATEGORY,
                            overwrite=False) -> ImportResult:
        """Import a flat {key: value} catalogue into one locale.

        Existing keys are skipped unless `overwrite` is set. Invalid values,
        and keys whose existence cannot be read, are reported in `errors` as
        "<key>: <message>" and not written. A failed batch stops the import;
        what was written before it is still counted in `imported`.
        """
        if not self.registry.is_supported(locale):
            raise ValidationError(f"Unsupported locale: {locale}", [f"Unsupported locale: {locale}"])

        result = ImportResult()
        to_save = []

        for key, value in translations.items():
            value = '' if value is None else str(value)

            if not overwrite:
                try:
                    existing = self.store.get(key, locale, strict=True)
                except StoreReadError as e:
                    # Unknown state: writing could clobber an existing value
                    result.errors.append(f"{key}: {e}")
                    continue
                if existing is not None:
                    result.skipped += 1
                    continue

            validation = validate_translation(key, value)
            if not validation.valid:
                result.errors.append(f"{key}: {', '.join(validation.errors)}")
                continue

            to_save.append(Translation(
                key=key,
                locale=locale,
                value=value,
                category=category or DEFAULT_CATEGORY,
                variables=extract_variables(value),
            ))

        if to_save:
            try:
                result.imported = self.store.put_many(to_save)
            except StoreWriteError as e:
                result.imported = e.written
                result.errors.append(f"batch write failed after {e.written} of {len(to_save)}: {e}")
            finally:
                self.cache.invalidate(locale)

        logger.info(
            f"Imported translations [{locale}]: imported={result.imported} "
            f"skipped={result.skipped} errors={len(result.errors)}"
        )
        return result

    def _validate(self, translation):
        errors = []
        if not translation.key or not translation.key.strip():
            errors.append('Translation key cannot be empty')
        if not self.registry.is_supported(translation.locale):
            errors.append(f'Unsupported locale: {translation.locale}')
        errors.extend(validate_translation(translation.key, translation.value).errors)
        if translation.plural_forms_data:
            try:
                PluralForms.from_dict(translation.plural_forms_data)
            except ValueError as e:
                errors.append(str(e))

        if errors:
            raise ValidationError(
                f"Translation validation failed for key {translation.key!r}: {', '.join(errors)}",
                errors,
            )

    # ------------------------------------------------------------------
    # Admin reads
    # ------------------------------------------------------------------

    def preload(self, locale, category=None) -> int:
        """Load a locale (or category) into both cache tiers.

        Always reloads, even over a fresh entry. Store read failures
        propagate as StoreReadError. Returns the number of keys cached.
        """
        generation = self.cache.generation(locale)
        rows = self.store.query_by_locale(locale, category, strict=True)
        translations = {t.key: t.value for t in rows}
        if self.cache.put(locale, translations, category, generation=generation) is None:
            logger.warning(f"Preload of {locale} superseded by a concurrent write")
        else:
            logger.info(f"Preloaded {len(translations)} translations [{locale}] category={category}")
        return len(translations)

    def export_all(self, locale, category=None) -> dict:
        """Flat {key: value} straight from the store."""
        return {t.key: t.value for t in self.store.query_by_locale(locale, category)}

    def search(self, query, locale=None, category=None, limit=50) -> list:
        return self.store.search(query, locale=locale, category=category, limit=limit)

    def get_translations_by_category(self, category, locale=None, limit=None) -> list:
        return self.store.query_by_category(category, locale=locale, limit=limit)

    def stats(self) -> LocalizationStats:
        """Counts per locale and category, and completeness per locale.

        Completeness is the share of all distinct keys (across every
        locale) that a locale translates, as a percentage.
        """
        items = self.store.scan_all()

        by_locale = {code: 0 for code in self.registry.supported_locales}
        by_category = {}
        keys_by_locale = {code: set() for code in self.registry.supported_locales}

        for item in items:
            category = item.category or DEFAULT_CATEGORY
            by_locale[item.locale] = by_locale.get(item.locale, 0) + 1
            by_category[category] = by_category.get(category, 0) + 1
            keys_by_locale.setdefault(item.locale, set()).add(item.key)

        all_keys = set().union(*keys_by_locale.values())
        completeness = {
            code: (len(keys) / len(all_keys) * 100) if all_keys else 0.0
            for code, keys in keys_by_locale.items()
        }

        return LocalizationStats(
            total_translations=len(items),
            by_locale=by_locale,
            by_category=by_category,
            completeness=completeness,
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
