"""Keyed plugin record store.

The engine only needs load-by-slug / save-by-slug; the storage medium is
pluggable. ``JsonFileStore`` keeps the whole collection as a UTF-8 JSON array
(the same shape as the export format) and rewrites it atomically on save.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from typing import Dict, Iterable, List, Optional

from review_tracker.config import get_settings
from review_tracker.models.review import PluginRecord

logger = logging.getLogger(__name__)


class PluginStore:
    """Abstract keyed store of PluginRecords (slug is the only key)."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, slug: str) -> asyncio.Lock:
        """Critical section for the read-then-write of one slug."""
        key = slug.strip().lower()
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def load(self, slug: str) -> Optional[PluginRecord]:
        raise NotImplementedError

    def save(self, record: PluginRecord) -> None:
        raise NotImplementedError

    def delete(self, slug: str) -> bool:
        raise NotImplementedError

    def list_records(self) -> List[PluginRecord]:
        raise NotImplementedError

    def __contains__(self, slug: str) -> bool:
        return self.load(slug) is not None


class MemoryStore(PluginStore):
    def __init__(self, records: Optional[Iterable[PluginRecord]] = None) -> None:
        super().__init__()
        self._records: Dict[str, PluginRecord] = {}
        for rec in records or []:
            self._records[rec.slug] = rec

    def load(self, slug: str) -> Optional[PluginRecord]:
        return self._records.get(slug.strip().lower())

    def save(self, record: PluginRecord) -> None:
        self._records[record.slug] = record

    def delete(self, slug: str) -> bool:
        return self._records.pop(slug.strip().lower(), None) is not None

    def list_records(self) -> List[PluginRecord]:
        return list(self._records.values())


class JsonFileStore(MemoryStore):
    """MemoryStore persisted to a JSON array file after every change."""

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self._read()

    def _read(self) -> None:
        if not os.path.isfile(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        if not text.strip():
            return
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Store file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise RuntimeError(f"Store file {self.path} must contain a JSON array")
        for item in data:
            rec = PluginRecord.model_validate(item)
            self._records[rec.slug] = rec
        logger.debug("Loaded %d plugin records from %s", len(self._records), self.path)

    def _write(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        payload = [r.to_dict() for r in self._records.values()]
        fd, tmp_path = tempfile.mkstemp(prefix=".plugins-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def save(self, record: PluginRecord) -> None:
        super().save(record)
        self._write()

    def delete(self, slug: str) -> bool:
        removed = super().delete(slug)
        if removed:
            self._write()
        return removed


_store: Optional[PluginStore] = None


def get_store() -> PluginStore:
    """Return the process-wide store configured by REVIEW_STORE_PATH."""
    global _store
    if _store is None:
        _store = JsonFileStore(get_settings().resolved_store_path)
    return _store


def set_store(store: Optional[PluginStore]) -> None:
    global _store
    _store = store


def close_store() -> None:
    set_store(None)
