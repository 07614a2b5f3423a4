"""
Locale resolution for translatable fields.

A translatable value is either a plain string (legacy, not translated) or a
mapping from locale code to string. Every translatable field goes through
``TranslationResolver.resolve`` before it leaves the service.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

from config import LocaleConfig

TRANSLATABLE_CONTENT_FIELDS = (
    'title',
    'description',
    'content',
    'excerpt',
    'meta_title',
    'meta_description',
)


class TranslationResolver:
    """
    Resolves translatable values to a display string.

    Resolution order for a locale mapping: the requested locale when present
    and non-empty, then the fallback locale (``en``), then ``""``. The
    resolver never raises, whatever shape the stored value has.
    """

    def __init__(self, locale_config: Optional[LocaleConfig] = None):
        self.locale_config = locale_config or LocaleConfig()

    @property
    def fallback_locale(self) -> str:
        return self.locale_config.fallback_locale

    def resolve(self, value: Any, locale: Optional[str]) -> str:
        if isinstance(value, str):
            return value
        if not isinstance(value, Mapping):
            return ""

        candidate = value.get(locale) if locale is not None else None
        if isinstance(candidate, str) and candidate:
            return candidate

        fallback = value.get(self.fallback_locale)
        if isinstance(fallback, str):
            return fallback
        return ""

    def resolve_fields(self, source: Any, fields: Iterable[str], locale: Optional[str]) -> Dict[str, str]:
        """Resolve several attributes (or mapping keys) of ``source`` at once."""
        resolved = {}
        for field in fields:
            if isinstance(source, Mapping):
                value = source.get(field)
            else:
                value = getattr(source, field, None)
            resolved[field] = self.resolve(value, locale)
        return resolved

    def is_supported(self, locale: Optional[str]) -> bool:
        return locale in self.locale_config.supported_locales

    def normalize_locale(self, locale: Optional[str]) -> str:
        """Map unknown or empty locale codes to the configured default."""
        if locale:
            locale = locale.strip().lower()
        if self.is_supported(locale):
            return locale
        return self.locale_config.default_locale
