import os

import pytest

from review_tracker import config
from review_tracker.config import DEFAULT_PROXY_TEMPLATES, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("REVIEW_"):
            monkeypatch.delenv(key)
    # no .env seeding during these tests
    monkeypatch.setattr(config, "_load_env_from_file", lambda: None)
    config.reset_settings()
    yield
    config.reset_settings()


def test_defaults():
    s = Settings.from_env()
    assert s.proxy_templates == DEFAULT_PROXY_TEMPLATES
    assert s.page_delay == 2.0
    assert s.max_pages == 10
    assert s.page_size == 30
    assert s.resolved_store_path.endswith(os.path.join("data", "plugins.json"))


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("REVIEW_STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.setenv("REVIEW_PROXY_TEMPLATES", "https://a.example/?u={url}\n{raw}")
    monkeypatch.setenv("REVIEW_PAGE_DELAY", "0.5")
    monkeypatch.setenv("REVIEW_MAX_PAGES", "3")
    s = config.get_settings()
    assert s.resolved_store_path == str(tmp_path / "store.json")
    assert s.proxy_templates == ["https://a.example/?u={url}", "{raw}"]
    assert s.page_delay == 0.5
    assert s.max_pages == 3
    assert config.get_settings() is s


def test_invalid_values(monkeypatch):
    monkeypatch.setenv("REVIEW_PROXY_TEMPLATES", "https://no-placeholder.example/")
    with pytest.raises(RuntimeError):
        Settings.from_env()
    monkeypatch.setenv("REVIEW_PROXY_TEMPLATES", "{raw}")
    monkeypatch.setenv("REVIEW_PAGE_DELAY", "soon")
    with pytest.raises(RuntimeError):
        Settings.from_env()
