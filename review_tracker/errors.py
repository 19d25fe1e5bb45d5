"""Error taxonomy shared by the ingestion engine, the store and the API layer."""

from __future__ import annotations

from typing import List, Optional


class ReviewTrackerError(Exception):
    """Base class for all review tracker errors."""


class TransportExhausted(ReviewTrackerError):
    """Every proxy route failed for a single resource URL."""

    def __init__(self, url: str, last_error: Optional[BaseException] = None, attempts: Optional[List[str]] = None) -> None:
        self.url = url
        self.last_error = last_error
        self.attempts = list(attempts or [])
        detail = f"{last_error}" if last_error is not None else "no proxy routes configured"
        super().__init__(f"All proxy routes failed for {url}. Last error: {detail}")


class ExtractionFragmentError(ReviewTrackerError):
    """One fragment of a document was malformed and could not be extracted."""


class ParseDocumentError(ReviewTrackerError):
    """A whole document could not be parsed (e.g. invalid XML)."""


class ValidationError(ReviewTrackerError, ValueError):
    """Malformed import payload or invalid plugin slug."""


class NotFound(ReviewTrackerError, LookupError):
    """The plugin lookup endpoint returned a non-success answer."""


class RefreshInProgress(ReviewTrackerError):
    """A reconciliation run is already in flight for this slug."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"A refresh for '{slug}' is already running")


class RefreshFailed(ReviewTrackerError):
    """Terminal failure of a reconciliation run."""
