# Internationalization Module
from .translations import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    get_text,
    normalize_language,
    reload_translations,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "get_text",
    "normalize_language",
    "reload_translations",
]
