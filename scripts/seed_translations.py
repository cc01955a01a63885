#!/usr/bin/env python3
"""Seed translations from JSON catalogues.

Reads one `<locale>.json` file per supported locale from a directory,
flattens nested objects into dotted keys and imports them.

Usage:
    python scripts/seed_translations.py <locales_dir> [--overwrite] [--normalize-keys]
"""

import json
import os
import sys

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app, get_localization_service
from app.constants.locales import SUPPORTED_LOCALES
from app.services.errors import LocalizationError
from app.utils.localization import flatten_translations, normalize_translation_key


def load_catalogue(locales_dir: str, locale: str) -> dict | None:
    """Load and flatten `<locale>.json`, or None if the file is missing."""
    path = os.path.join(locales_dir, f'{locale}.json')
    if not os.path.exists(path):
        return None
    with open(path, encoding='utf-8') as f:
        return flatten_translations(json.load(f))


def seed_translations(locales_dir: str, overwrite: bool = False,
                      normalize_keys: bool = False) -> dict:
    """Import every catalogue found in `locales_dir`.

    With `normalize_keys` every key is lower-cased and characters
    outside [a-z0-9._-] become underscores before import.

    Returns:
        {locale: ImportResult} for each imported locale
    """
    service = get_localization_service()
    results = {}

    print(f"🌱 Starting translation seeding from {locales_dir}")
    print(f"Overwrite existing: {overwrite}")

    for locale in SUPPORTED_LOCALES:
        catalogue = load_catalogue(locales_dir, locale)
        if catalogue is None:
            print(f"⚠️  No catalogue for {locale}, skipping")
            continue
        if normalize_keys:
            catalogue = {normalize_translation_key(k): v for k, v in catalogue.items()}

        try:
            result = service.import_translations(locale, catalogue, 'general', overwrite)
        except LocalizationError as e:
            print(f"❌ Error importing translations for {locale}: {e}")
            continue

        results[locale] = result
        print(f"✅ Locale {locale}: imported={result.imported} "
              f"skipped={result.skipped} errors={len(result.errors)}")
        for error in result.errors[:5]:
            print(f"   - {error}")

    purged = service.store.purge_expired_snapshots()
    print(f"🧹 Purged {purged} expired cache snapshots")
    print("🎉 Translation seeding complete!")
    return results


if __name__ == '__main__':
    args = [a for a in sys.argv[1:] if not a.startswith('--')]
    if len(args) != 1:
        print(__doc__)
        sys.exit(1)

    app = create_app(os.getenv('FLASK_ENV', 'development'))
    with app.app_context():
        seed_translations(
            args[0],
            overwrite='--overwrite' in sys.argv[1:],
            normalize_keys='--normalize-keys' in sys.argv[1:],
        )
