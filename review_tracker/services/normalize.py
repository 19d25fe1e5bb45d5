"""Field normalization for extracted review fragments.

Turns the loosely typed strings produced by the extractors into a ``Review``:
a calendar date, an integer rating in 1..5, and length-bounded text.
Also hosts the plugin display-name helpers shared by ingestion and import.
"""

from __future__ import annotations

import datetime as dt
import logging
import re
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning
from dateutil import parser as dparser
from dateutil.relativedelta import relativedelta

from review_tracker.models.review import (
    ANONYMOUS,
    MAX_AUTHOR_CHARS,
    MAX_CONTENT_CHARS,
    MAX_TITLE_CHARS,
    Review,
)
from review_tracker.services.crawl.base import RawReview

logger = logging.getLogger(__name__)

DEFAULT_RATING = 5
MIN_CONTENT_CHARS = 11

RATING_PATTERN = re.compile(r"(\d)\s*(?:out of|/)\s*5|(\d)\s*stars?", re.IGNORECASE)
ISO_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})")
RELATIVE_DATE_PATTERN = re.compile(r"(\d+)\s+(days?|weeks?|months?|years?)\s+ago", re.IGNORECASE)
FEED_BOILERPLATE_PATTERNS = [
    re.compile(r"Replies:\s*\d+\s*Rating:\s*\d+\s*stars?", re.IGNORECASE),
    re.compile(r"Rating:\s*\d+\s*stars?\s*Replies:\s*\d+", re.IGNORECASE),
]
NAME_SEPARATOR = re.compile(r"\s*[–—-]\s*")
_WS = re.compile(r"\s+")

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


def strip_markup(text: Optional[str]) -> str:
    """Remove tags, decode character entities and collapse whitespace."""
    if not text:
        return ""
    if "<" in text or "&" in text:
        soup = BeautifulSoup(text, "html.parser")
        text = soup.get_text(" ", strip=True)
    return _WS.sub(" ", text).strip()


def truncate(text: Optional[str], limit: int) -> str:
    return (text or "")[:limit]


def parse_rating(text: Optional[str]) -> int:
    """First 'N out of 5', 'N/5' or 'N star(s)' match; 5 when nothing usable matches."""
    m = RATING_PATTERN.search(text or "")
    if not m:
        return DEFAULT_RATING
    value = int(m.group(1) or m.group(2))
    if 1 <= value <= 5:
        return value
    return DEFAULT_RATING


def parse_listing_date(text: Optional[str], today: Optional[dt.date] = None) -> dt.date:
    """Absolute YYYY-MM-DD, else '<N> days/weeks/months/years ago', else today."""
    today = today or dt.date.today()
    t = text or ""
    m = ISO_DATE_PATTERN.search(t)
    if m:
        try:
            return dt.date.fromisoformat(m.group(1))
        except ValueError:
            logger.debug("Ignoring invalid absolute date %r", m.group(1))
    m = RELATIVE_DATE_PATTERN.search(t)
    if m:
        amount = int(m.group(1))
        unit = m.group(2).lower()
        try:
            if unit.startswith("day"):
                return today - dt.timedelta(days=amount)
            if unit.startswith("week"):
                return today - dt.timedelta(days=7 * amount)
            if unit.startswith("month"):
                return today - relativedelta(months=amount)
            return today - relativedelta(years=amount)
        except (ValueError, OverflowError):
            logger.debug("Relative date %r is out of range, using %s", t, today)
    return today


def parse_feed_date(text: Optional[str], today: Optional[dt.date] = None) -> dt.date:
    """Publication date of a feed item (RFC 822 and friends); today on failure."""
    today = today or dt.date.today()
    t = (text or "").strip()
    if not t:
        return today
    try:
        parsed = dparser.parse(t)
    except (ValueError, OverflowError):
        logger.debug("Unparseable pubDate %r, using %s", t, today)
        return today
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc)
    return parsed.date()


def clean_feed_content(text: Optional[str]) -> str:
    cleaned = strip_markup(text)
    for pattern in FEED_BOILERPLATE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return _WS.sub(" ", cleaned).strip()


def clean_plugin_name(name: Optional[str]) -> Optional[str]:
    """Decode entities and keep the part before the first dash-like separator.

    >>> clean_plugin_name("Foo Bar &#8211; Best Plugin Ever")
    'Foo Bar'
    """
    if not name:
        return name
    decoded = strip_markup(name)
    return NAME_SEPARATOR.split(decoded, maxsplit=1)[0].strip()


def format_plugin_name(slug: str) -> str:
    """Slug -> title-cased words, used when the lookup has no name."""
    return " ".join(w[:1].upper() + w[1:] for w in slug.split("-"))


def normalize(raw: RawReview, today: Optional[dt.date] = None) -> Optional[Review]:
    """Build a ``Review`` from a raw bundle, or ``None`` if it does not qualify."""
    today = today or dt.date.today()
    if raw.mode == "syndication":
        title = strip_markup(raw.title)
        body = strip_markup(raw.content)
        rating = parse_rating(f"{title} {body}")
        content = clean_feed_content(raw.content)
        date = parse_feed_date(raw.date_text, today)
        review_id = (raw.guid or "").strip() or None
    else:
        title = strip_markup(raw.title)
        rating = parse_rating(strip_markup(raw.rating_text))
        content = strip_markup(raw.content) or title
        date = parse_listing_date(strip_markup(raw.date_text), today)
        review_id = None

    if not content or len(content) < MIN_CONTENT_CHARS or rating <= 0:
        return None

    author = strip_markup(raw.author) or ANONYMOUS
    return Review(
        date=date,
        rating=rating,
        content=truncate(content, MAX_CONTENT_CHARS),
        author=truncate(author, MAX_AUTHOR_CHARS),
        reviewUrl=(raw.link or "").strip() or None,
        title=truncate(title, MAX_TITLE_CHARS) or None,
        id=review_id,
    )
