"""
Exception types raised by the watcher.

Every failure that the run controller needs to classify derives from
``ListingWatchError``.  Anything else that escapes a run is treated as an
unexpected fatal error by the top-level handler in ``worker``.
"""

from __future__ import annotations


class ListingWatchError(Exception):
    """Base class for all watcher errors."""


class ValidationError(ListingWatchError):
    """Required configuration is missing or unusable."""


class UnsupportedSource(ValidationError):
    """A configured search address belongs to a site with no adapter."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Unsupported site: {address}")
        self.address = address


class SourceUnavailable(ListingWatchError):
    """A source could not be fetched after all attempts were used."""

    def __init__(self, address: str, attempts: int, cause: BaseException) -> None:
        super().__init__(f"Failed to scrape {address} after {attempts} attempts: {cause}")
        self.address = address
        self.attempts = attempts
        self.cause = cause


class StoreUnavailable(ListingWatchError):
    """The seen-state store could not be read or written."""


class NotifyFailure(ListingWatchError):
    """A message could not be delivered by the notification transport."""
