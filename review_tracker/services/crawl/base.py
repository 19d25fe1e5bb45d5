from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Optional

from review_tracker.errors import ExtractionFragmentError

logger = logging.getLogger(__name__)


@dataclass
class RawReview:
    """Loosely typed field candidates pulled from one source fragment."""

    mode: str
    title: Optional[str] = None
    rating_text: Optional[str] = None
    author: Optional[str] = None
    date_text: Optional[str] = None
    content: Optional[str] = None
    link: Optional[str] = None
    guid: Optional[str] = None
    source_url: Optional[str] = None
    position: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Extractor:
    """Extraction rule contract.

    Subclasses implement ``_fragments()`` to split a document into source
    fragments and ``_extract_fragment()`` to turn one fragment into a
    ``RawReview``. ``extract()`` drives both lazily in document order and
    skips fragments that fail, so one malformed entry never aborts a pass.
    """

    mode: str = "base"

    def extract(self, document: str, *, source_url: Optional[str] = None) -> Iterator[RawReview]:
        for index, fragment in enumerate(self._fragments(document)):
            try:
                raw = self._extract_fragment(fragment)
            except ExtractionFragmentError as exc:
                logger.warning("Skipping %s fragment %d from %s: %s", self.mode, index, source_url or "<document>", exc)
                continue
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed %s fragment %d from %s: %r", self.mode, index, source_url or "<document>", exc
                )
                continue
            raw.source_url = source_url
            raw.position = index
            yield raw

    def _fragments(self, document: str) -> Iterator[Any]:
        raise NotImplementedError

    def _extract_fragment(self, fragment: Any) -> RawReview:
        raise NotImplementedError
