"""
Listing deduplication and classification.

A run produces one batch of listings per source.  This module merges those
batches and decides, against the persisted seen-state, which listings are
worth a notification:

* listings whose id was already recorded are dropped;
* listings with a new id whose content fingerprint was already recorded are
  reposts (a bumped or re-uploaded ad) and are recorded silently;
* everything else is genuinely new.

On the very first run nothing is considered new: the whole batch is seeded
so that deploying the watcher does not flood the chat with every listing
currently on the page.

Fingerprints are only compared with the *persisted* set, never with other
listings of the same batch, so two similar ads that both appear for the
first time in one run are both reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, List

from .models import Listing, fingerprint


@dataclass(frozen=True)
class Classification:
    """Result of classifying one aggregated batch."""

    first_run: bool
    seeded: List[Listing] = field(default_factory=list)
    already_seen: List[Listing] = field(default_factory=list)
    reposts: List[Listing] = field(default_factory=list)
    genuinely_new: List[Listing] = field(default_factory=list)

    @property
    def new_by_id(self) -> List[Listing]:
        """Listings whose ids must be recorded: reposts and new ones alike."""
        return self.reposts + self.genuinely_new

    @property
    def kind(self) -> str:
        if self.first_run:
            return "seeded"
        if self.genuinely_new:
            return "new-found"
        return "no-op"


def aggregate(batches: Iterable[Iterable[Listing]]) -> List[Listing]:
    """Merge per-source batches, keeping the first record seen for each id."""
    unique = {}
    for batch in batches:
        for listing in batch:
            if listing.id not in unique:
                unique[listing.id] = listing
    return list(unique.values())


def classify(
    listings: Iterable[Listing],
    is_first_run: bool,
    seen_ids: AbstractSet[str],
    seen_fingerprints: AbstractSet[str],
) -> Classification:
    """Classify a batch of listings against the persisted seen-state.

    Parameters
    ----------
    listings:
        Listings from every source, in source order.  Duplicate ids are
        collapsed to their first occurrence.
    is_first_run:
        True when the identity set has never been written.
    seen_ids, seen_fingerprints:
        Current contents of the two persisted sets.

    Returns
    -------
    Classification
        On a first run only ``seeded`` is populated.
    """
    batch = aggregate([listings])
    if is_first_run:
        return Classification(first_run=True, seeded=batch)

    already_seen: List[Listing] = []
    reposts: List[Listing] = []
    genuinely_new: List[Listing] = []
    for listing in batch:
        if listing.id in seen_ids:
            already_seen.append(listing)
        elif fingerprint(listing) in seen_fingerprints:
            reposts.append(listing)
        else:
            genuinely_new.append(listing)
    return Classification(
        first_run=False,
        already_seen=already_seen,
        reposts=reposts,
        genuinely_new=genuinely_new,
    )
