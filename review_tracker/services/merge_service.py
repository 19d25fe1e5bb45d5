"""Identity keys and upsert merging of review collections.

A review's identity is its explicit ``id`` when the source supplies one,
otherwise the fingerprint (author, date, first 50 characters of content).
The fingerprint can merge two distinct reviews that share author, date and a
long common opening, and it misses a match when the upstream text is edited
between fetches. Both are accepted; no stronger identity is attempted.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Optional

from review_tracker.models.review import IdentityKey, PluginRecord, Review
from review_tracker.services.normalize import clean_plugin_name, format_plugin_name


def identity_key(review: Review) -> IdentityKey:
    return review.identity_key()


def upsert_reviews(existing: Iterable[Review], new: Iterable[Review]) -> List[Review]:
    """Merge ``new`` into ``existing``: colliding keys take the newer value.

    Every existing review survives unless a new one reproduces its key. Order
    is first-seen order of keys.
    """
    by_key: Dict[IdentityKey, Review] = {}
    for review in existing:
        by_key[identity_key(review)] = review
    for review in new:
        by_key[identity_key(review)] = review
    return list(by_key.values())


def reconcile_plugin(
    existing: Optional[PluginRecord],
    slug: str,
    new_reviews: Iterable[Review],
    *,
    name: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> PluginRecord:
    """Fold a fresh batch of reviews into a plugin record (or create one)."""
    now = now or dt.datetime.now(dt.timezone.utc)
    slug = slug.strip().lower()
    cleaned = clean_plugin_name(name) if name else None
    if not cleaned:
        cleaned = (existing.name if existing and existing.name else None) or format_plugin_name(slug)
    prior = existing.reviews if existing is not None else []
    merged = upsert_reviews(prior, new_reviews)
    return PluginRecord(
        slug=slug,
        name=cleaned,
        reviews=merged,
        lastUpdated=now,
        totalReviews=len(merged),
    )
