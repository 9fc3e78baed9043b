"""
Application configuration and environment variable parsing.

This module provides a lightweight configuration class that reads
environment variables and exposes typed attributes.  Every field is read
when a ``Settings`` instance is created, so tests can either pass values
explicitly or patch the environment before calling ``get_settings``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import ValidationError

# Separator between addresses in a source list.  Chosen because it cannot
# appear unescaped inside a search url.
URL_DELIMITER = "|||"


def _env(name: str, default: Optional[str] = None):
    return field(default_factory=lambda: os.getenv(name, default))


def _env_bool(name: str, default: bool = False):
    def read() -> bool:
        value = os.getenv(name)
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    return field(default_factory=read)


def _env_int(name: str, default: int):
    def read() -> int:
        value = os.getenv(name)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            return default

    return field(default_factory=read)


def split_urls(value: Optional[str]) -> List[str]:
    """Split a delimiter-separated list of search addresses."""
    if not value:
        return []
    return [url.strip() for url in value.split(URL_DELIMITER) if url.strip()]


@dataclass
class Settings:
    """Configuration values loaded from environment variables."""

    SEARCH_URLS: Optional[str] = _env("SEARCH_URLS")
    NJUSKALO_URLS: Optional[str] = _env("NJUSKALO_URLS")

    SEEN_STORE: str = _env("SEEN_STORE", "upstash")
    UPSTASH_REDIS_REST_URL: Optional[str] = _env("UPSTASH_REDIS_REST_URL")
    UPSTASH_REDIS_REST_TOKEN: Optional[str] = _env("UPSTASH_REDIS_REST_TOKEN")
    SQLITE_DB: str = _env("SQLITE_DB", "seen.db")
    SEEN_IDS_KEY: str = _env("SEEN_IDS_KEY", "seen:ids")
    SEEN_FINGERPRINTS_KEY: str = _env("SEEN_FINGERPRINTS_KEY", "seen:fingerprints")
    SEEN_TTL_DAYS: int = _env_int("SEEN_TTL_DAYS", 30)

    TELEGRAM_BOT_TOKEN: Optional[str] = _env("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID: Optional[str] = _env("TELEGRAM_CHAT_ID")

    FETCH_ATTEMPTS: int = _env_int("FETCH_ATTEMPTS", 2)
    RETRY_DELAY_SECONDS: int = _env_int("RETRY_DELAY_SECONDS", 10)
    NAV_TIMEOUT_MS: int = _env_int("NAV_TIMEOUT_MS", 60_000)
    SELECTOR_TIMEOUT_MS: int = _env_int("SELECTOR_TIMEOUT_MS", 30_000)
    COOKIE_TIMEOUT_MS: int = _env_int("COOKIE_TIMEOUT_MS", 5_000)
    HEADLESS: bool = _env_bool("HEADLESS", True)

    MESSAGE_PACING_MS: int = _env_int("MESSAGE_PACING_MS", 500)
    SUMMARY_THRESHOLD: int = _env_int("SUMMARY_THRESHOLD", 5)

    @property
    def search_urls(self) -> List[str]:
        """All configured search addresses, in order, without duplicates."""
        urls: List[str] = []
        for url in split_urls(self.SEARCH_URLS) + split_urls(self.NJUSKALO_URLS):
            if url not in urls:
                urls.append(url)
        return urls

    @property
    def ttl_seconds(self) -> int:
        return self.SEEN_TTL_DAYS * 24 * 60 * 60

    def missing_required(self) -> List[str]:
        """Return the names of required settings that are not set."""
        missing: List[str] = []
        if not self.search_urls:
            missing.append("SEARCH_URLS")
        if self.SEEN_STORE.lower() == "sqlite":
            if not self.SQLITE_DB:
                missing.append("SQLITE_DB")
        else:
            for name in ("UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN"):
                if not getattr(self, name):
                    missing.append(name)
        for name in ("TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"):
            if not getattr(self, name):
                missing.append(name)
        return missing

    def validate(self) -> None:
        """Raise ``ValidationError`` if anything required is missing."""
        if self.SEEN_STORE.lower() not in {"upstash", "sqlite"}:
            raise ValidationError(f"Unknown SEEN_STORE backend: {self.SEEN_STORE}")
        missing = self.missing_required()
        if missing:
            raise ValidationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


def get_settings() -> Settings:
    """Factory function to create a new Settings instance.

    Using a function rather than a global instance ensures environment
    variables are read each time the settings are needed, which is
    useful for testing.
    """
    return Settings()
