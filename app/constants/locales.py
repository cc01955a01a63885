"""Locale constants: single source of truth for supported locales.

Must stay in sync with:
  mobile: the locale picker and bundled fallback catalogues

Adding a locale is a change to these tables only:
  1. add the code to SUPPORTED_LOCALES
  2. map it to its fallback in FALLBACK_LOCALES
  3. pick its plural class in PLURAL_CLASSES
"""

from enum import Enum


class PluralClass(Enum):
    """Grammatical rule family used to pick a plural form."""
    SIMPLE = 'simple'    # one / other
    SLAVIC = 'slavic'    # one / few / many


# The 3 locales served to the app (Kyrgyzstan market)
SUPPORTED_LOCALES = ('en', 'ru', 'ky')

# Russian is the primary language of the market, not English
DEFAULT_LOCALE = 'ru'

# Each locale falls back to exactly one other locale.
# A locale mapped to itself is terminal.
FALLBACK_LOCALES = {
    'ky': 'ru',
    'ru': 'en',
    'en': 'en',
}

PLURAL_CLASSES = {
    'en': PluralClass.SIMPLE,
    'ru': PluralClass.SLAVIC,
    'ky': PluralClass.SIMPLE,
}

LOCALE_INFO = {
    'en': {'code': 'en', 'name': 'English', 'native_name': 'English', 'direction': 'ltr',
           'currency': 'USD'},
    'ru': {'code': 'ru', 'name': 'Russian', 'native_name': 'Русский', 'direction': 'ltr',
           'currency': 'KGS'},
    'ky': {'code': 'ky', 'name': 'Kyrgyz', 'native_name': 'Кыргызча', 'direction': 'ltr',
           'currency': 'KGS'},
}

# CLDR locale used by Babel for numbers and dates
BABEL_LOCALES = {
    'en': 'en_US',
    'ru': 'ru_RU',
    'ky': 'ky_KG',
}

# The app shows som with a fixed local symbol instead of the CLDR one
CURRENCY_FORMATS = {
    'en': {'currency': 'USD', 'symbol': '$', 'position': 'before', 'space': False},
    'ru': {'currency': 'KGS', 'symbol': 'сом', 'position': 'after', 'space': True},
    'ky': {'currency': 'KGS', 'symbol': 'сом', 'position': 'after', 'space': True},
}

# CLDR date patterns; non-Latin letters are literal text
DATETIME_FORMATS = {
    'en': {
        'date_format': 'MMMM d, yyyy',
        'time_format': 'h:mm a',
        'datetime_format': 'MMMM d, yyyy h:mm a',
        'timezone': 'UTC',
    },
    'ru': {
        'date_format': 'd MMMM yyyy г.',
        'time_format': 'HH:mm',
        'datetime_format': 'd MMMM yyyy г., HH:mm',
        'timezone': 'Asia/Bishkek',
    },
    'ky': {
        'date_format': 'yyyy-жылдын d-MMMM',
        'time_format': 'HH:mm',
        'datetime_format': 'yyyy-жылдын d-MMMM, HH:mm',
        'timezone': 'Asia/Bishkek',
    },
}


class LocaleRegistry:
    """Lookup table for supported locales, fallbacks and plural classes.

    Pure lookups, no side effects. The constructor checks that the fallback
    map is total over the supported set and that every chain ends in a
    locale that falls back to itself.
    """

    def __init__(self, supported=SUPPORTED_LOCALES, default=DEFAULT_LOCALE,
                 fallbacks=None, plural_classes=None, info=None):
        self._supported = tuple(supported)
        self._default = default
        self._fallbacks = dict(FALLBACK_LOCALES if fallbacks is None else fallbacks)
        self._plural_classes = dict(PLURAL_CLASSES if plural_classes is None else plural_classes)
        self._info = dict(LOCALE_INFO if info is None else info)
        self._check()

    def _check(self):
        if self._default not in self._supported:
            raise ValueError(f"Default locale {self._default!r} is not supported")

        for code in self._supported:
            target = self._fallbacks.get(code)
            if target is None:
                raise ValueError(f"Locale {code!r} has no fallback")
            if target not in self._supported:
                raise ValueError(f"Fallback {target!r} of {code!r} is not supported")

        for code in self._supported:
            seen = {code}
            current = code
            while self._fallbacks[current] != current:
                current = self._fallbacks[current]
                if current in seen:
                    raise ValueError(f"Fallback chain from {code!r} is cyclic")
                seen.add(current)

    @property
    def supported_locales(self) -> tuple:
        return self._supported

    def is_supported(self, code) -> bool:
        return code in self._supported

    def default_locale(self) -> str:
        return self._default

    def fallback_of(self, locale: str) -> str:
        """Return the single fallback of a locale.

        Unknown codes are treated as the default locale.
        """
        if locale not in self._supported:
            locale = self._default
        return self._fallbacks[locale]

    def normalize(self, locale) -> str:
        """Return the locale if supported, otherwise the default locale."""
        if not locale or not self.is_supported(locale):
            return self._default
        return locale

    def plural_class(self, locale: str) -> PluralClass | None:
        return self._plural_classes.get(locale)

    def info(self, locale: str) -> dict | None:
        return self._info.get(locale)


default_registry = LocaleRegistry()
