from review_tracker.errors import ValidationError

from ..base import Extractor
from .feed_spider import FeedExtractor
from .listing_spider import ListingExtractor

EXTRACTORS = {
    ListingExtractor.mode: ListingExtractor,
    FeedExtractor.mode: FeedExtractor,
}


def select_extractor(mode: str) -> Extractor:
    """Return the extraction strategy for a feed shape ("listing" or "syndication")."""
    try:
        return EXTRACTORS[mode]()
    except KeyError:
        raise ValidationError(f"Unknown feed mode: {mode!r}. Expected one of: {', '.join(sorted(EXTRACTORS))}")


__all__ = ["EXTRACTORS", "FeedExtractor", "ListingExtractor", "select_extractor"]
