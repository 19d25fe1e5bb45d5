"""Runtime settings for the review tracker.

Configuration via environment variables (optionally seeded from a .env file at
the project root):

- REVIEW_STORE_PATH (default: data/plugins.json)
- REVIEW_PROXY_TEMPLATES: comma/newline separated list, each containing {url}
- REVIEW_HTTP_TIMEOUT (seconds, default 15)
- REVIEW_PAGE_DELAY (seconds between listing pages, default 2)
- REVIEW_MAX_PAGES (default 10)
- REVIEW_USER_AGENT
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

LISTING_URL_TEMPLATE = "https://wordpress.org/support/plugin/{slug}/reviews/page/{page}/"
FEED_URL_TEMPLATE = "https://wordpress.org/support/plugin/{slug}/reviews/feed/"
INFO_URL_TEMPLATE = "https://api.wordpress.org/plugins/info/1.0/{slug}.json"
SITE_BASE_URL = "https://wordpress.org"

# Listing pages hold 30 topics each
PAGE_SIZE = 30

DEFAULT_PROXY_TEMPLATES = [
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
]

DEFAULT_USER_AGENT = "PluginReviewTracker/0.1 (+https://wordpress.org/plugins/)"


def _load_env_from_file() -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    env_path = os.path.join(PROJECT_ROOT, ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#"):
                continue
            if "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val


def _split_templates(raw: str) -> List[str]:
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid value for {name}: {raw!r} (expected a number)") from exc


@dataclass
class Settings:
    store_path: str = os.path.join("data", "plugins.json")
    proxy_templates: List[str] = field(default_factory=lambda: list(DEFAULT_PROXY_TEMPLATES))
    http_timeout: float = 15.0
    page_delay: float = 2.0
    max_pages: int = 10
    page_size: int = PAGE_SIZE
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def resolved_store_path(self) -> str:
        if os.path.isabs(self.store_path):
            return self.store_path
        return os.path.join(PROJECT_ROOT, self.store_path)

    @classmethod
    def from_env(cls) -> "Settings":
        _load_env_from_file()
        templates = _split_templates(os.getenv("REVIEW_PROXY_TEMPLATES") or "")
        for t in templates:
            if "{url}" not in t and "{raw}" not in t:
                raise RuntimeError(
                    f"Proxy template {t!r} must contain a {{url}} or {{raw}} placeholder.\n"
                    "Example: REVIEW_PROXY_TEMPLATES='https://corsproxy.io/?{url}'"
                )
        return cls(
            store_path=os.getenv("REVIEW_STORE_PATH") or os.path.join("data", "plugins.json"),
            proxy_templates=templates or list(DEFAULT_PROXY_TEMPLATES),
            http_timeout=_float_env("REVIEW_HTTP_TIMEOUT", 15.0),
            page_delay=_float_env("REVIEW_PAGE_DELAY", 2.0),
            max_pages=int(_float_env("REVIEW_MAX_PAGES", 10)),
            user_agent=os.getenv("REVIEW_USER_AGENT") or DEFAULT_USER_AGENT,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
