import datetime as dt
from pathlib import Path

import httpx
import pytest

from review_tracker.config import Settings
from review_tracker.errors import NotFound
from review_tracker.models.review import PluginInfo

FIXTURES = Path(__file__).parent / "fixtures"

TODAY = dt.date(2024, 3, 31)


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def fake_lookup(names=None, num_ratings=0):
    """Async stand-in for lookup_plugin; unknown slugs raise NotFound."""
    names = names or {}

    async def _lookup(slug, client=None):
        if slug not in names:
            raise NotFound(f"Plugin '{slug}' does not exist")
        return PluginInfo(slug=slug, name=names[slug], num_ratings=num_ratings)

    return _lookup


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def settings():
    return Settings(store_path="unused.json", proxy_templates=["{raw}"], page_delay=2.0, max_pages=10)


@pytest.fixture
def sleeper():
    return SleepRecorder()
