"""Plugin lookup against the public plugin info endpoint.

Success yields at least a display name; any non-success answer (HTTP error,
network failure, non-JSON body, or an ``error`` field in the JSON) means the
plugin does not exist and raises ``NotFound``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from review_tracker.config import INFO_URL_TEMPLATE, get_settings
from review_tracker.errors import NotFound
from review_tracker.models.review import PluginInfo
from review_tracker.services.normalize import clean_plugin_name

logger = logging.getLogger(__name__)


async def lookup_plugin(slug: str, *, client: Optional[httpx.AsyncClient] = None) -> PluginInfo:
    slug = (slug or "").strip().lower()
    if not slug:
        raise NotFound("Empty plugin slug")
    url = INFO_URL_TEMPLATE.format(slug=slug)
    if client is not None:
        return await _lookup_with(client, slug, url)
    settings = get_settings()
    async with httpx.AsyncClient(
        timeout=settings.http_timeout, headers={"User-Agent": settings.user_agent}, follow_redirects=True
    ) as own_client:
        return await _lookup_with(own_client, slug, url)


async def _lookup_with(client: httpx.AsyncClient, slug: str, url: str) -> PluginInfo:
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.info("Plugin lookup failed for %s: %r", slug, exc)
        raise NotFound(f"Plugin '{slug}' does not exist") from exc
    except ValueError as exc:
        logger.info("Plugin lookup for %s returned a non-JSON body", slug)
        raise NotFound(f"Plugin '{slug}' does not exist") from exc

    if not isinstance(data, dict) or data.get("error") or not data.get("name"):
        raise NotFound(f"Plugin '{slug}' does not exist")

    try:
        num_ratings = int(data.get("num_ratings") or 0)
    except (TypeError, ValueError):
        num_ratings = 0
    return PluginInfo(slug=slug, name=clean_plugin_name(str(data["name"])), num_ratings=num_ratings, exists=True)
