import asyncio

import httpx
import pytest

from review_tracker.errors import TransportExhausted
from review_tracker.services.crawl.transport import ProxyRoute, TransportResolver

from conftest import make_client

TARGET = "https://wordpress.org/support/plugin/demo/reviews/feed/"
ROUTES = [
    "https://first.example/get?url={url}",
    "https://second.example/?{url}",
    "https://third.example/proxy?quest={url}",
]


def test_route_build_encodes_target():
    route = ProxyRoute("https://proxy.example/raw?url={url}")
    built = route.build("https://wordpress.org/a b/?x=1&y=2")
    assert built == "https://proxy.example/raw?url=https%3A%2F%2Fwordpress.org%2Fa%20b%2F%3Fx%3D1%26y%3D2"
    assert route.label == "proxy.example"
    assert ProxyRoute("{raw}").build(TARGET) == TARGET


def test_falls_back_to_next_route_in_order():
    seen = []

    def handler(request):
        seen.append(request.url.host)
        if request.url.host == "first.example":
            return httpx.Response(503, text="busy")
        if request.url.host == "second.example":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, text="<rss/>")

    async def go():
        async with make_client(handler) as client:
            return await TransportResolver(ROUTES, client=client).fetch(TARGET)

    result = asyncio.run(go())
    assert result.body == "<rss/>"
    assert result.route.label == "third.example"
    assert seen == ["first.example", "second.example", "third.example"]


def test_first_success_stops_iteration():
    seen = []

    def handler(request):
        seen.append(request.url.host)
        return httpx.Response(200, text="ok")

    async def go():
        async with make_client(handler) as client:
            return await TransportResolver(ROUTES, client=client).fetch(TARGET)

    assert asyncio.run(go()).body == "ok"
    assert seen == ["first.example"]


def test_all_routes_failing_raises_with_last_error():
    seen = []

    def handler(request):
        seen.append(request.url.host)
        if request.url.host == "third.example":
            return httpx.Response(429, text="slow down")
        return httpx.Response(500)

    async def go():
        async with make_client(handler) as client:
            await TransportResolver(ROUTES, client=client).fetch(TARGET)

    with pytest.raises(TransportExhausted) as ei:
        asyncio.run(go())
    exc = ei.value
    assert exc.url == TARGET
    assert isinstance(exc.last_error, httpx.HTTPStatusError)
    assert exc.last_error.response.status_code == 429
    assert len(exc.attempts) == 3
    # each route is tried exactly once
    assert seen == ["first.example", "second.example", "third.example"]
