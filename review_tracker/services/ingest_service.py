"""Reconciliation runs: fetch, extract, normalize, then upsert into the store.

Public entrypoints on ``ReviewIngestService``:
- refresh(slug, mode) -> RefreshResult  (one run; never commits partial state)
- start_refresh(slug, mode) -> asyncio.Task[RefreshResult]
- add_plugin(slug, mode) -> RefreshResult  (validates the slug first)
- remove_plugin(slug) -> bool  (refused while a run is in flight)

Only one run per slug may be in flight; a second request raises
RefreshInProgress. The store's per-slug lock guards the final
load-merge-save.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set

import httpx

from review_tracker.config import FEED_URL_TEMPLATE, LISTING_URL_TEMPLATE, Settings, get_settings
from review_tracker.db.store import PluginStore, get_store
from review_tracker.errors import (
    NotFound,
    ParseDocumentError,
    RefreshFailed,
    RefreshInProgress,
    TransportExhausted,
    ValidationError,
)
from review_tracker.models.review import FeedMode, PluginInfo, PluginRecord, Review
from review_tracker.services.crawl.pagination import PaginationDriver, extract_reviews
from review_tracker.services.crawl.spiders import select_extractor
from review_tracker.services.crawl.transport import TransportResolver
from review_tracker.services.merge_service import reconcile_plugin
from review_tracker.services.plugin_info_service import lookup_plugin

logger = logging.getLogger(__name__)

Lookup = Callable[..., Awaitable[PluginInfo]]


@dataclass
class RefreshResult:
    slug: str
    ok: bool
    record: Optional[PluginRecord] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    fetched: int = 0
    created: bool = False


def normalize_slug(slug: Optional[str]) -> str:
    s = (slug or "").strip().lower()
    if not s:
        raise ValidationError("Please enter a plugin slug")
    return s


class ReviewIngestService:
    def __init__(
        self,
        store: PluginStore,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        lookup: Lookup = lookup_plugin,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Optional[dt.date] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.client = client
        self.lookup = lookup
        self.sleep = sleep
        self.today = today
        self._in_flight: Set[str] = set()

    def transport(self) -> TransportResolver:
        return TransportResolver(
            self.settings.proxy_templates,
            client=self.client,
            timeout=self.settings.http_timeout,
            user_agent=self.settings.user_agent,
        )

    def is_running(self, slug: str) -> bool:
        return slug.strip().lower() in self._in_flight

    # --- Public API ---
    async def add_plugin(self, slug: str, mode: FeedMode = "syndication") -> RefreshResult:
        """Start tracking a plugin: validate it exists upstream, then run a first refresh."""
        slug = normalize_slug(slug)
        if self.store.load(slug) is not None:
            raise ValidationError(f"Plugin '{slug}' is already added")
        info = await self.lookup(slug, client=self.client)
        return await self.refresh(slug, mode, info=info)

    async def remove_plugin(self, slug: str) -> bool:
        """Drop the whole record; refused while a run for the slug is in flight."""
        slug = normalize_slug(slug)
        if slug in self._in_flight:
            raise RefreshInProgress(slug)
        async with self.store.lock(slug):
            return self.store.delete(slug)

    def start_refresh(self, slug: str, mode: FeedMode = "syndication") -> "asyncio.Task[RefreshResult]":
        """Schedule a run on the current event loop and return its task."""
        return asyncio.ensure_future(self.refresh(slug, mode))

    async def refresh(self, slug: str, mode: FeedMode = "syndication", *, info: Optional[PluginInfo] = None) -> RefreshResult:
        slug = normalize_slug(slug)
        extractor = select_extractor(mode)
        if slug in self._in_flight:
            raise RefreshInProgress(slug)
        self._in_flight.add(slug)
        try:
            if info is None:
                info = await self._safe_lookup(slug)
            try:
                reviews, warnings = await self._collect(slug, mode, extractor, info)
            except (RefreshFailed, TransportExhausted, ParseDocumentError) as exc:
                logger.error("Refresh of %s (%s) failed: %s", slug, mode, exc)
                return RefreshResult(slug=slug, ok=False, error=f"Failed to fetch reviews: {exc}")

            async with self.store.lock(slug):
                existing = self.store.load(slug)
                record = reconcile_plugin(existing, slug, reviews, name=info.name if info else None)
                self.store.save(record)
            action = "refreshed" if existing is not None else "fetched"
            logger.info("%s %d reviews for %s (%d stored)", action.capitalize(), len(reviews), slug, record.totalReviews)
            return RefreshResult(
                slug=slug,
                ok=True,
                record=record,
                warnings=warnings,
                fetched=len(reviews),
                created=existing is None,
            )
        finally:
            self._in_flight.discard(slug)

    # --- Internals ---
    async def _safe_lookup(self, slug: str) -> Optional[PluginInfo]:
        try:
            return await self.lookup(slug, client=self.client)
        except NotFound as exc:
            logger.warning("Lookup failed for %s, using slug-derived name: %s", slug, exc)
            return None

    async def _collect(self, slug: str, mode: str, extractor, info: Optional[PluginInfo]):
        transport = self.transport()
        if mode == "syndication":
            url = FEED_URL_TEMPLATE.format(slug=slug)
            fetched = await transport.fetch(url)
            reviews: List[Review] = extract_reviews(extractor, fetched.body, source_url=url, today=self.today)
            logger.info("Parsed %d reviews from feed %s via %s", len(reviews), url, fetched.route.label)
            return reviews, []

        total = info.num_ratings if info else 0
        if not total:
            existing = self.store.load(slug)
            total = existing.totalReviews if existing else 0
        driver = PaginationDriver(
            transport,
            extractor,
            url_template=LISTING_URL_TEMPLATE,
            page_size=self.settings.page_size,
            max_pages=self.settings.max_pages,
            delay=self.settings.page_delay,
            sleep=self.sleep,
            today=self.today,
        )
        outcome = await driver.run(slug, total)
        return outcome.reviews, outcome.warnings


_service: Optional[ReviewIngestService] = None


def get_ingest_service() -> ReviewIngestService:
    """Process-wide service bound to the configured store (shares in-flight markers)."""
    global _service
    if _service is None:
        _service = ReviewIngestService(get_store())
    return _service


def set_ingest_service(service: Optional[ReviewIngestService]) -> None:
    global _service
    _service = service
