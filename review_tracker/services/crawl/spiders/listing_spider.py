from __future__ import annotations

from typing import Iterator, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser, Node

from review_tracker.config import SITE_BASE_URL
from review_tracker.errors import ExtractionFragmentError, ParseDocumentError

from ..base import Extractor, RawReview


class ListingExtractor(Extractor):
    """Selector-driven extractor for bbPress-style review topic listings.

    Each topic row yields a rating widget, a title anchor (also the review
    link), a "Started by" attribution and a date fragment that is either an
    absolute date or a relative "N weeks ago" phrase.

    Selectors (CSS):
      - entry_sel: top-level topic fragments (fallback_entry_sels when none match)
      - rating_sel: rating widget inside an entry (text or title/aria-label attrs)
      - title_sel: anchor carrying the topic title and permalink
      - author_sel / date_sel: attribution and date inside the topic meta
      - content_sel: optional explicit body text
    """

    mode = "listing"

    def __init__(
        self,
        *,
        base_url: str = SITE_BASE_URL,
        entry_sel: str = ".bbp-topic",
        fallback_entry_sels: tuple = ("li.bbp-body > ul", "ul.topic"),
        rating_sel: str = ".wporg-ratings",
        title_sel: str = ".bbp-topic-permalink, .bbp-topic-title a",
        title_container_sel: str = ".bbp-topic-title",
        author_sel: str = ".bbp-topic-meta .bbp-topic-started-by, .bbp-topic-started-by",
        date_sel: str = ".bbp-topic-meta .bbp-topic-started-in, .bbp-topic-started-in, .bbp-topic-freshness",
        content_sel: str = ".bbp-topic-content, .entry-content",
    ) -> None:
        self.base_url = base_url
        self.entry_sel = entry_sel
        self.fallback_entry_sels = fallback_entry_sels
        self.rating_sel = rating_sel
        self.title_sel = title_sel
        self.title_container_sel = title_container_sel
        self.author_sel = author_sel
        self.date_sel = date_sel
        self.content_sel = content_sel

    def _fragments(self, document: str) -> Iterator[Node]:
        if not document or not document.strip():
            raise ParseDocumentError("Empty listing document")
        doc = HTMLParser(document)
        entries = doc.css(self.entry_sel)
        for sel in self.fallback_entry_sels:
            if entries:
                break
            entries = doc.css(sel)
        for entry in entries or []:
            yield entry

    def _extract_fragment(self, entry: Node) -> RawReview:
        title_node = entry.css_first(self.title_sel)
        if title_node is None:
            container = entry.css_first(self.title_container_sel)
            if container is None:
                raise ExtractionFragmentError("topic has no title anchor")
            title = container.text(strip=True)
            href = None
        else:
            title = title_node.text(strip=True)
            href = title_node.attributes.get("href")

        return RawReview(
            mode=self.mode,
            title=title,
            rating_text=self._rating_text(entry),
            author=self._author(entry),
            date_text=self._text(entry, self.date_sel),
            content=self._text(entry, self.content_sel),
            link=self._absolute(href),
        )

    # --- Internals ---
    @staticmethod
    def _text(entry: Node, selector: str) -> Optional[str]:
        node = entry.css_first(selector)
        if node is None:
            return None
        return node.text(separator=" ", strip=True) or None

    def _rating_text(self, entry: Node) -> Optional[str]:
        node = entry.css_first(self.rating_sel)
        if node is None:
            return None
        attrs = node.attributes
        parts = [node.text(separator=" ", strip=True)]
        for attr in ("title", "aria-label"):
            if attrs.get(attr):
                parts.append(attrs[attr])
        if attrs.get("data-rating"):
            parts.append(f"{attrs['data-rating']} out of 5")
        return " ".join(p for p in parts if p) or None

    def _author(self, entry: Node) -> Optional[str]:
        text = self._text(entry, self.author_sel)
        if not text:
            return None
        return text.replace("Started by:", "").strip() or None

    def _absolute(self, href: Optional[str]) -> Optional[str]:
        if not href:
            return None
        href = href.strip()
        if href.startswith("http"):
            return href
        return urljoin(self.base_url + "/", href)
