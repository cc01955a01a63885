"""Test suite for the locale registry."""
import pytest

from app.constants.locales import (
    DEFAULT_LOCALE,
    SUPPORTED_LOCALES,
    LocaleRegistry,
    PluralClass,
    default_registry,
)


class TestLocaleRegistry:
    """Supported locales, default locale and fallback chain."""

    def test_supported_locales(self):
        for code in ('en', 'ru', 'ky'):
            assert default_registry.is_supported(code)

    def test_unsupported_locales(self):
        for code in ('de', 'EN', '', None, 'en-US'):
            assert not default_registry.is_supported(code)

    def test_default_locale_is_russian(self):
        assert default_registry.default_locale() == 'ru'
        assert DEFAULT_LOCALE == 'ru'
        # Not simply the first supported locale
        assert SUPPORTED_LOCALES[0] != DEFAULT_LOCALE

    def test_fallback_chain(self):
        assert default_registry.fallback_of('ky') == 'ru'
        assert default_registry.fallback_of('ru') == 'en'
        assert default_registry.fallback_of('en') == 'en'

    def test_fallback_of_unknown_uses_default(self):
        assert default_registry.fallback_of('xx') == default_registry.fallback_of('ru')

    def test_every_chain_terminates(self):
        for code in SUPPORTED_LOCALES:
            current, hops = code, 0
            while default_registry.fallback_of(current) != current:
                current = default_registry.fallback_of(current)
                hops += 1
                assert hops <= len(SUPPORTED_LOCALES)

    def test_normalize(self):
        assert default_registry.normalize('ky') == 'ky'
        assert default_registry.normalize('fr') == 'ru'
        assert default_registry.normalize(None) == 'ru'

    def test_plural_classes(self):
        assert default_registry.plural_class('ru') is PluralClass.SLAVIC
        assert default_registry.plural_class('en') is PluralClass.SIMPLE
        assert default_registry.plural_class('ky') is PluralClass.SIMPLE
        assert default_registry.plural_class('xx') is None

    def test_locale_info(self):
        assert default_registry.info('ky')['native_name'] == 'Кыргызча'
        assert default_registry.info('xx') is None


class TestRegistryConfiguration:
    """Adding a locale is a configuration change."""

    def test_new_locale_by_configuration(self):
        registry = LocaleRegistry(
            supported=('en', 'ru', 'ky', 'uz'),
            fallbacks={'ky': 'ru', 'uz': 'ru', 'ru': 'en', 'en': 'en'},
            plural_classes={'en': PluralClass.SIMPLE, 'ru': PluralClass.SLAVIC,
                            'ky': PluralClass.SIMPLE, 'uz': PluralClass.SIMPLE},
        )
        assert registry.is_supported('uz')
        assert registry.fallback_of('uz') == 'ru'

    def test_missing_fallback_rejected(self):
        with pytest.raises(ValueError):
            LocaleRegistry(fallbacks={'en': 'en', 'ru': 'en'})

    def test_cyclic_fallback_rejected(self):
        with pytest.raises(ValueError):
            LocaleRegistry(fallbacks={'en': 'ru', 'ru': 'ky', 'ky': 'en'})

    def test_unsupported_fallback_target_rejected(self):
        with pytest.raises(ValueError):
            LocaleRegistry(fallbacks={'en': 'en', 'ru': 'de', 'ky': 'ru'})

    def test_unsupported_default_rejected(self):
        with pytest.raises(ValueError):
            LocaleRegistry(default='de')
