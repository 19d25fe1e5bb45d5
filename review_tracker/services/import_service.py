"""Export / import of the tracked plugin collection.

Format: a UTF-8 JSON array of PluginRecord objects
(slug, name, reviews, lastUpdated, totalReviews).

Contract for import:
- Input: any JSON array whose elements each have a non-empty ``slug`` string
  and a ``reviews`` array (possibly empty). Each review must validate as a
  Review.
- Errors: ValidationError for any malformed element; the whole payload is
  rejected before the store is touched.
- Merge: every element is upserted with the same engine as a live refresh.
  Names are re-cleaned when present, otherwise looked up (slug-derived name
  when the lookup fails). ``lastUpdated`` becomes the import time.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from review_tracker.db.store import PluginStore
from review_tracker.errors import NotFound, ValidationError
from review_tracker.models.review import ImportSummary, PluginInfo, Review
from review_tracker.services.merge_service import reconcile_plugin
from review_tracker.services.plugin_info_service import lookup_plugin

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "wordpress-plugin-reviews.json"


def export_records(store: PluginStore) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in store.list_records()]


def dumps_export(store: PluginStore) -> str:
    return json.dumps(export_records(store), ensure_ascii=False, indent=2)


def loads_import(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Failed to parse JSON file: {exc}") from exc


def validate_import_payload(data: Any) -> List[Tuple[str, Optional[str], List[Review]]]:
    """Check the whole payload up front; returns (slug, name, reviews) per element."""
    if not isinstance(data, list):
        raise ValidationError("Invalid data format: expected a JSON array of plugins")
    parsed: List[Tuple[str, Optional[str], List[Review]]] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValidationError(f"Invalid data format: element {index} is not an object")
        slug = item.get("slug")
        if not isinstance(slug, str) or not slug.strip():
            raise ValidationError(f"Invalid data format: element {index} has no slug")
        reviews_raw = item.get("reviews")
        if not isinstance(reviews_raw, list):
            raise ValidationError(f"Invalid data format: plugin '{slug}' has no reviews array")
        try:
            reviews = [Review.model_validate(r) for r in reviews_raw]
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid review in plugin '{slug}': {exc}") from exc
        name = item.get("name")
        parsed.append((slug.strip().lower(), name if isinstance(name, str) and name.strip() else None, reviews))
    return parsed


async def import_records(
    store: PluginStore,
    data: Any,
    *,
    lookup: Callable[..., Awaitable[PluginInfo]] = lookup_plugin,
    now: Optional[dt.datetime] = None,
) -> ImportSummary:
    parsed = validate_import_payload(data)
    now = now or dt.datetime.now(dt.timezone.utc)
    summary = ImportSummary()

    for slug, name, reviews in parsed:
        if name is None:
            try:
                info = await lookup(slug)
                name = info.name
            except NotFound:
                logger.info("No upstream name for imported plugin %s", slug)
        async with store.lock(slug):
            existing = store.load(slug)
            record = reconcile_plugin(existing, slug, reviews, name=name, now=now)
            store.save(record)
        if existing is None:
            summary.plugins_created += 1
        else:
            summary.plugins_merged += 1
        summary.reviews_total += record.totalReviews
        summary.slugs.append(slug)

    logger.info("Imported %d plugins (%d new)", len(parsed), summary.plugins_created)
    return summary
