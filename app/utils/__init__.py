"""Shared utilities for the localization backend.

Pure helpers reused by the services and scripts.
"""

from app.utils.localization import (
    PluralForms,
    extract_variables,
    interpolate,
    resolve_plural,
    validate_translation,
    generate_cache_key,
    flatten_translations,
    normalize_translation_key,
    format_number,
    format_currency,
    format_date,
    format_time,
    format_datetime,
    get_relative_time,
)

__all__ = [
    'PluralForms',
    'extract_variables',
    'interpolate',
    'resolve_plural',
    'validate_translation',
    'generate_cache_key',
    'flatten_translations',
    'normalize_translation_key',
    'format_number',
    'format_currency',
    'format_date',
    'format_time',
    'format_datetime',
    'get_relative_time',
]
