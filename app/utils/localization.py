"""Text helpers for translations: placeholders, plurals, validation.

Placeholders use the `{{name}}` syntax. Numbers and dates are formatted
with Babel (CLDR data) using the per-locale tables in `app.constants.locales`.
Naive datetimes are treated as UTC, like the timestamps stored by the models.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import InvalidOperation
from typing import Optional

from babel import Locale
from babel import dates as babel_dates
from babel import numbers as babel_numbers

from app.constants.locales import (
    BABEL_LOCALES,
    CURRENCY_FORMATS,
    DATETIME_FORMATS,
    DEFAULT_LOCALE,
    PluralClass,
    default_registry,
)

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r'\{\{(\w+)\}\}')

PLURAL_CATEGORIES = ('zero', 'one', 'two', 'few', 'many', 'other')


@dataclass(frozen=True)
class PluralForms:
    """One string per plural category. `other` is always required."""
    other: str
    zero: Optional[str] = None
    one: Optional[str] = None
    two: Optional[str] = None
    few: Optional[str] = None
    many: Optional[str] = None

    def get(self, category: str) -> str:
        """Return the form for a category, or `other` when it is missing."""
        value = getattr(self, category, None) if category in PLURAL_CATEGORIES else None
        return value or self.other

    @classmethod
    def from_dict(cls, data: dict) -> 'PluralForms':
        if not data or not data.get('other'):
            raise ValueError("Plural forms require an 'other' form")
        unknown = set(data) - set(PLURAL_CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown plural categories: {', '.join(sorted(unknown))}")
        return cls(**{name: data[name] for name in PLURAL_CATEGORIES if data.get(name)})

    def to_dict(self) -> dict:
        return {
            name: getattr(self, name)
            for name in PLURAL_CATEGORIES
            if getattr(self, name) is not None
        }


@dataclass
class ValidationResult:
    valid: bool
    errors: list = field(default_factory=list)


def extract_variables(text: str) -> list:
    """Return distinct placeholder names in order of first appearance."""
    if not text:
        return []
    return list(dict.fromkeys(VARIABLE_PATTERN.findall(text)))


def interpolate(text: str, variables: dict | None = None) -> str:
    """Substitute `{{name}}` placeholders found in `variables`.

    Placeholders without a value are left as they are, so a missing
    variable shows up in the UI instead of disappearing.
    """
    if not variables:
        return text

    def replace(match):
        name = match.group(1)
        if name in variables and variables[name] is not None:
            return str(variables[name])
        return match.group(0)

    return VARIABLE_PATTERN.sub(replace, text)


def simple_plural_category(n) -> str:
    if n == 1:
        return 'one'
    return 'other'


def slavic_plural_category(n) -> str:
    if n % 10 == 1 and n % 100 != 11:
        return 'one'
    if 2 <= n % 10 <= 4 and (n % 100 < 10 or n % 100 >= 20):
        return 'few'
    return 'many'


PLURAL_RULES = {
    PluralClass.SIMPLE: simple_plural_category,
    PluralClass.SLAVIC: slavic_plural_category,
}


def resolve_plural(count, forms: PluralForms, locale: str, registry=None) -> str:
    """Pick the plural form of `forms` matching `count` in `locale`."""
    registry = registry or default_registry
    plural_class = registry.plural_class(locale)
    if plural_class is None:
        return forms.other
    category = PLURAL_RULES[plural_class](abs(count))
    return forms.get(category)


def validate_translation(key: str, value: str, variables: dict | None = None) -> ValidationResult:
    """Validate a translation value.

    The variable checks only run when `variables` is given: every supplied
    variable must be used by the value and every placeholder must have a
    supplied value. Resolution never goes through this check.
    """
    errors = []

    if not value or not str(value).strip():
        errors.append('Translation value cannot be empty')

    if variables is not None:
        extracted = extract_variables(value or '')
        for name in variables:
            if name not in extracted:
                errors.append(f'Unused variable: {name}')
        for name in extracted:
            if name not in variables:
                errors.append(f'Missing variable: {name}')

    return ValidationResult(valid=not errors, errors=errors)


def generate_cache_key(locale: str, category: str | None = None) -> str:
    """Cache key for a locale-wide entry, or a locale+category entry."""
    if category:
        return f'translations:{locale}:{category}'
    return f'translations:{locale}'


def flatten_translations(data: dict, prefix: str = '') -> dict:
    """Flatten a nested catalogue into dotted keys.

    >>> flatten_translations({'auth': {'login': 'Log in'}})
    {'auth.login': 'Log in'}
    """
    flat = {}
    for key, value in data.items():
        full_key = f'{prefix}.{key}' if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_translations(value, full_key))
        else:
            flat[full_key] = str(value)
    return flat


def normalize_translation_key(key: str) -> str:
    """Lower-case a key and replace anything outside [a-z0-9._-] with '_'."""
    return re.sub(r'[^a-z0-9._-]', '_', key.lower())


# ----------------------------------------------------------------------
# Number and date formatting
# ----------------------------------------------------------------------

def babel_locale(locale: str) -> Locale:
    """Babel locale of a supported code; other codes use the default locale."""
    return Locale.parse(BABEL_LOCALES.get(locale) or BABEL_LOCALES[DEFAULT_LOCALE])


def _table_entry(table, locale):
    return table.get(locale) or table[DEFAULT_LOCALE]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_number(value, locale: str, minimum_fraction_digits: int = 0,
                  maximum_fraction_digits: int = 3, use_grouping: bool = True) -> str:
    """Format a number with the locale's separators.

    Returns `str(value)` when Babel cannot format it.
    """
    integer_part = '#,##0' if use_grouping else '0'
    if maximum_fraction_digits == 0:
        pattern = integer_part
    else:
        required = '0' * minimum_fraction_digits
        optional = '#' * (maximum_fraction_digits - minimum_fraction_digits)
        pattern = f'{integer_part}.{required}{optional}'

    try:
        return babel_numbers.format_decimal(value, format=pattern, locale=babel_locale(locale))
    except (ValueError, TypeError, InvalidOperation) as e:
        logger.error(f"Error formatting number {value!r} [{locale}]: {e}")
        return str(value)


def format_currency(amount, locale: str) -> str:
    """Format an amount with up to 2 decimals and the locale's currency symbol.

    >>> format_currency(1500, 'en')
    '$1,500'
    """
    currency = _table_entry(CURRENCY_FORMATS, locale)
    number = format_number(amount, locale, minimum_fraction_digits=0, maximum_fraction_digits=2)
    separator = ' ' if currency['space'] else ''
    if currency['position'] == 'before':
        return f"{currency['symbol']}{separator}{number}"
    return f"{number}{separator}{currency['symbol']}"


def _format_with(value, locale, pattern_name, pattern=None):
    formats = _table_entry(DATETIME_FORMATS, locale)
    return babel_dates.format_datetime(
        _as_utc(value),
        format=pattern or formats[pattern_name],
        tzinfo=babel_dates.get_timezone(formats['timezone']),
        locale=babel_locale(locale),
    )


def format_date(value: datetime, locale: str, pattern: str | None = None) -> str:
    """Format the date part in the locale's timezone, e.g. '5 марта 2024 г.'."""
    try:
        return _format_with(value, locale, 'date_format', pattern)
    except (ValueError, TypeError, AttributeError, LookupError) as e:
        logger.error(f"Error formatting date {value!r} [{locale}]: {e}")
        return str(value)[:10]


def format_time(value: datetime, locale: str, pattern: str | None = None) -> str:
    try:
        return _format_with(value, locale, 'time_format', pattern)
    except (ValueError, TypeError, AttributeError, LookupError) as e:
        logger.error(f"Error formatting time {value!r} [{locale}]: {e}")
        return str(value)[11:16]


def format_datetime(value: datetime, locale: str, pattern: str | None = None) -> str:
    try:
        return _format_with(value, locale, 'datetime_format', pattern)
    except (ValueError, TypeError, AttributeError, LookupError) as e:
        logger.error(f"Error formatting datetime {value!r} [{locale}]: {e}")
        return str(value)[:16]


def get_relative_time(value: datetime, locale: str, base: datetime | None = None) -> str:
    """Describe `value` relative to `base` (default: now), e.g. '2 hours ago'.

    The largest unit with at least one whole step is used.
    """
    try:
        base = _as_utc(base) if base is not None else datetime.now(timezone.utc)
        return babel_dates.format_timedelta(
            _as_utc(value) - base,
            threshold=1,
            add_direction=True,
            locale=babel_locale(locale),
        )
    except (ValueError, TypeError, AttributeError, LookupError) as e:
        logger.error(f"Error formatting relative time {value!r} [{locale}]: {e}")
        return format_datetime(value, locale)
