from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from review_tracker.errors import ExtractionFragmentError, ParseDocumentError

from ..base import Extractor, RawReview

DC_NS = "http://purl.org/dc/elements/1.1/"


class FeedExtractor(Extractor):
    """RSS review feed extractor (one ``<item>`` per review).

    The feed carries no rating field; the normalizer infers it from the
    title and description text.
    """

    mode = "syndication"

    def _fragments(self, document: str) -> Iterator[ET.Element]:
        if not document or not document.strip():
            raise ParseDocumentError("Empty feed document")
        try:
            root = ET.fromstring(document.strip())
        except ET.ParseError as exc:
            raise ParseDocumentError(f"Failed to parse RSS feed XML: {exc}") from exc
        for item in root.iter("item"):
            yield item

    def _extract_fragment(self, item: ET.Element) -> RawReview:
        title = (item.findtext("title") or "").strip()
        description = (item.findtext("description") or "").strip()
        if not title and not description:
            raise ExtractionFragmentError("item has neither title nor description")
        return RawReview(
            mode=self.mode,
            title=title or None,
            author=self._creator(item),
            date_text=(item.findtext("pubDate") or "").strip() or None,
            content=description or None,
            link=(item.findtext("link") or "").strip() or None,
            guid=(item.findtext("guid") or "").strip() or None,
        )

    @staticmethod
    def _creator(item: ET.Element) -> Optional[str]:
        for tag in (f"{{{DC_NS}}}creator", "creator", "author"):
            value = (item.findtext(tag) or "").strip()
            if value:
                return value
        return None
