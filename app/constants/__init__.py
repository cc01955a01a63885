"""Shared constants for the application."""

from app.constants.locales import (
    SUPPORTED_LOCALES,
    DEFAULT_LOCALE,
    FALLBACK_LOCALES,
    LOCALE_INFO,
    BABEL_LOCALES,
    CURRENCY_FORMATS,
    DATETIME_FORMATS,
    PluralClass,
    LocaleRegistry,
    default_registry,
)

__all__ = [
    'SUPPORTED_LOCALES',
    'DEFAULT_LOCALE',
    'FALLBACK_LOCALES',
    'LOCALE_INFO',
    'BABEL_LOCALES',
    'CURRENCY_FORMATS',
    'DATETIME_FORMATS',
    'PluralClass',
    'LocaleRegistry',
    'default_registry',
]
