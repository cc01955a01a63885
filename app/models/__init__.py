"""Database models for the localization service."""

from .translation import Translation
from .translation_cache import TranslationCacheSnapshot

__all__ = ['Translation', 'TranslationCacheSnapshot']
