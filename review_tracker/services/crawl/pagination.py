from __future__ import annotations

import asyncio
import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from review_tracker.config import LISTING_URL_TEMPLATE, PAGE_SIZE
from review_tracker.errors import ParseDocumentError, RefreshFailed, TransportExhausted
from review_tracker.models.review import Review
from review_tracker.services.normalize import normalize

from .base import Extractor
from .transport import TransportResolver

logger = logging.getLogger(__name__)

FIRST_PAGE_WARNING = (
    "Failed to fetch the first page of reviews; every proxy route failed. "
    "The relay services may be down or rate limiting this client."
)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class PaginationOutcome:
    reviews: List[Review] = field(default_factory=list)
    pages_planned: int = 0
    pages_fetched: List[int] = field(default_factory=list)
    pages_failed: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def extract_reviews(
    extractor: Extractor, document: str, *, source_url: Optional[str] = None, today: Optional[dt.date] = None
) -> List[Review]:
    """Run one extractor over a document and keep the fragments that normalize."""
    reviews: List[Review] = []
    for raw in extractor.extract(document, source_url=source_url):
        try:
            review = normalize(raw, today)
        except (ValueError, OverflowError) as exc:
            logger.warning(
                "Skipping unnormalizable %s fragment %d from %s: %r", raw.mode, raw.position, source_url or "<document>", exc
            )
            continue
        if review is not None:
            reviews.append(review)
    return reviews


class PaginationDriver:
    """Sequential page walker for listing-mode review pages.

    State: idle -> fetching(page=1..min(total_pages, max_pages)) -> done.
    A minimum delay separates successive page fetches.
    """

    def __init__(
        self,
        transport: TransportResolver,
        extractor: Extractor,
        *,
        url_template: str = LISTING_URL_TEMPLATE,
        page_size: int = PAGE_SIZE,
        max_pages: int = 10,
        delay: float = 2.0,
        sleep: Sleep = asyncio.sleep,
        today: Optional[dt.date] = None,
    ) -> None:
        self.transport = transport
        self.extractor = extractor
        self.url_template = url_template
        self.page_size = max(1, int(page_size))
        self.max_pages = max(1, int(max_pages))
        self.delay = max(0.0, float(delay))
        self.sleep = sleep
        self.today = today
        self.state = "idle"
        self.current_page = 0

    def total_pages(self, total_reviews: int) -> int:
        # Unknown totals still get one page so a fresh plugin is not skipped
        pages = math.ceil(max(0, int(total_reviews)) / self.page_size)
        return min(max(pages, 1), self.max_pages)

    async def run(self, slug: str, total_reviews: int) -> PaginationOutcome:
        outcome = PaginationOutcome(pages_planned=self.total_pages(total_reviews))
        parse_failures = 0
        self.state = "fetching"
        try:
            for page in range(1, outcome.pages_planned + 1):
                if page > 1 and self.delay:
                    await self.sleep(self.delay)
                self.current_page = page
                url = self.url_template.format(slug=slug, page=page)
                try:
                    fetched = await self.transport.fetch(url)
                except TransportExhausted as exc:
                    if page == 1:
                        logger.error("First page failed for %s: %s", slug, exc)
                        raise RefreshFailed(f"{FIRST_PAGE_WARNING} ({exc})") from exc
                    logger.warning("Skipping page %d for %s: %s", page, slug, exc)
                    outcome.pages_failed.append(page)
                    outcome.warnings.append(f"Page {page} skipped: {exc}")
                    continue

                try:
                    page_reviews = extract_reviews(self.extractor, fetched.body, source_url=url, today=self.today)
                except ParseDocumentError as exc:
                    parse_failures += 1
                    logger.warning("Could not parse page %d for %s: %s", page, slug, exc)
                    outcome.pages_failed.append(page)
                    outcome.warnings.append(f"Page {page} unparseable: {exc}")
                    continue

                logger.info("Page %d/%d for %s: %d reviews", page, outcome.pages_planned, slug, len(page_reviews))
                outcome.pages_fetched.append(page)
                outcome.reviews.extend(page_reviews)
        finally:
            self.state = "done"
            self.current_page = 0

        if not outcome.pages_fetched:
            raise RefreshFailed(
                f"None of the {outcome.pages_planned} review pages for '{slug}' could be fetched and parsed"
                f" ({parse_failures} unparseable)"
            )
        return outcome
