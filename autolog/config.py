from __future__ import annotations

import os

SUPPORTED_LANGUAGES = ("en", "zh")


def normalize_currency(value: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValueError("Currency must be a 3-letter ISO 4217 code.")
    return normalized


def get_system_default_currency() -> str:
    raw = os.getenv("DEFAULT_CURRENCY", "USD")
    try:
        return normalize_currency(raw)
    except ValueError:
        return "USD"


def get_default_language() -> str:
    raw = os.getenv("DEFAULT_LANGUAGE", "en").strip().lower()
    if raw not in SUPPORTED_LANGUAGES:
        return "en"
    return raw


def get_page_size() -> int:
    raw = os.getenv("PAGE_SIZE", "20")
    try:
        value = int(raw)
    except ValueError:
        return 20
    return max(1, min(value, 200))


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./autolog.db")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
LOG_LEVEL = os.getenv("AUTOLOG_LOG_LEVEL", "INFO")
SYSTEM_DEFAULT_CURRENCY = get_system_default_currency()
DEFAULT_LANGUAGE = get_default_language()
PAGE_SIZE = get_page_size()
