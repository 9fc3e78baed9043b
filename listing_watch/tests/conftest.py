"""
Fixtures shared by the test modules.
"""

from __future__ import annotations

from typing import List

import pytest

from listing_watch.settings import Settings
from listing_watch.tests.fakes import MemorySeenStore, RecordingTransport


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SEARCH_URLS="https://www.njuskalo.hr/prodaja-kuca|||https://www.index.hr/oglasi/kuce",
        NJUSKALO_URLS="",
        SEEN_STORE="upstash",
        UPSTASH_REDIS_REST_URL="https://example.upstash.io",
        UPSTASH_REDIS_REST_TOKEN="token",
        TELEGRAM_BOT_TOKEN="123:abc",
        TELEGRAM_CHAT_ID="42",
        FETCH_ATTEMPTS=2,
        RETRY_DELAY_SECONDS=10,
        MESSAGE_PACING_MS=500,
        SUMMARY_THRESHOLD=5,
    )


@pytest.fixture
def events() -> List[str]:
    return []


@pytest.fixture
def store(events: List[str]) -> MemorySeenStore:
    return MemorySeenStore(events)


@pytest.fixture
def transport(events: List[str]) -> RecordingTransport:
    return RecordingTransport(events)
