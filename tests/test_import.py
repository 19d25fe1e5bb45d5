import asyncio
import datetime as dt
import json

import pytest

from review_tracker.db.store import MemoryStore
from review_tracker.errors import ValidationError
from review_tracker.models.review import PluginRecord, Review
from review_tracker.services.import_service import dumps_export, import_records, loads_import

from conftest import fake_lookup

NOW = dt.datetime(2024, 4, 1, tzinfo=dt.timezone.utc)


def _review(author, content, **kw):
    return Review(date="2024-01-01", rating=4, content=content, author=author, **kw)


def _populated_store():
    return MemoryStore(
        [
            PluginRecord(
                slug="example-forms",
                name="Example Forms",
                reviews=[_review("alice", "Setup was painless and quick"), _review("bob", "Needs more templates", id="guid-2")],
            ),
            PluginRecord(slug="empty-plugin", name="Empty Plugin", reviews=[]),
        ]
    )


def test_export_then_import_round_trip():
    source = _populated_store()
    text = dumps_export(source)
    assert json.loads(text)[0]["slug"] == "example-forms"

    target = MemoryStore()
    summary = asyncio.run(import_records(target, loads_import(text), lookup=fake_lookup({}), now=NOW))
    assert summary.plugins_created == 2
    assert summary.slugs == ["example-forms", "empty-plugin"]
    for rec in source.list_records():
        imported = target.load(rec.slug)
        assert imported.identity_keys() == rec.identity_keys()
        assert imported.name == rec.name
        assert imported.lastUpdated == NOW


def test_import_merges_into_existing_records():
    store = _populated_store()
    payload = [
        {
            "slug": "Example-Forms",
            "name": "Example Forms &#8211; Builder",
            "reviews": [
                {"date": "2024-01-01", "rating": 1, "content": "Needs more templates", "author": "bob", "id": "guid-2"},
                {"date": "2024-02-10", "rating": 5, "content": "Much better after the update"},
            ],
        }
    ]
    summary = asyncio.run(import_records(store, payload, lookup=fake_lookup({}), now=NOW))
    assert summary.plugins_merged == 1
    record = store.load("example-forms")
    assert record.totalReviews == 3
    assert [r.rating for r in record.reviews if r.id == "guid-2"] == [1]
    assert record.reviews[-1].author == "Anonymous"


def test_missing_name_uses_lookup_then_slug():
    store = MemoryStore()
    payload = [{"slug": "known-plugin", "reviews": []}, {"slug": "unknown-plugin", "reviews": []}]
    lookup = fake_lookup({"known-plugin": "Known Plugin"})
    asyncio.run(import_records(store, payload, lookup=lookup, now=NOW))
    assert store.load("known-plugin").name == "Known Plugin"
    assert store.load("unknown-plugin").name == "Unknown Plugin"


@pytest.mark.parametrize(
    "payload",
    [
        [{"slug": "x"}],
        {"slug": "x", "reviews": []},
        [{"slug": "", "reviews": []}],
        ["not-an-object"],
        [{"slug": "fine", "reviews": []}, {"slug": "bad", "reviews": [{"date": "2024-01-01", "rating": 9, "content": "x"}]}],
    ],
)
def test_malformed_payload_is_rejected_without_changes(payload):
    store = _populated_store()
    before = {r.slug: r for r in store.list_records()}
    with pytest.raises(ValidationError):
        asyncio.run(import_records(store, payload, lookup=fake_lookup({}), now=NOW))
    assert {r.slug: r for r in store.list_records()} == before
    assert store.load("fine") is None


def test_loads_import_rejects_invalid_json():
    with pytest.raises(ValidationError):
        loads_import("[{not json")
