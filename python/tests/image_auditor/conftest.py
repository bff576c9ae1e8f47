from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Union

import httpx
import pytest

Route = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeSite:
    """URL ごとに応答を登録できる httpx.MockTransport のラッパー。"""

    def __init__(self) -> None:
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []
        self.delay = 0.0
        self.in_flight = 0
        self.peak_in_flight = 0

    def add(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def add_html(self, url: str, html: str, status_code: int = 200) -> None:
        self.add(url, httpx.Response(status_code, text=html, headers={"content-type": "text/html"}))

    def add_xml(self, url: str, xml: str) -> None:
        self.add(url, httpx.Response(200, text=xml, headers={"content-type": "application/xml"}))

    def add_image(self, url: str, *, status_code: int = 200, length: int | None = 1024) -> None:
        headers = {"content-type": "image/jpeg"}
        if length is not None:
            headers["content-length"] = str(length)
        self.add(url, httpx.Response(status_code, headers=headers))

    def requested(self, method: str | None = None) -> List[str]:
        return [
            str(request.url)
            for request in self.requests
            if method is None or request.method == method
        ]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            route = self._lookup(request.url)
            if route is None:
                return httpx.Response(404)
            if isinstance(route, Exception):
                raise route
            if callable(route):
                return route(request)
            # HEAD には本文を返さない
            if request.method == "HEAD":
                return httpx.Response(route.status_code, headers=route.headers)
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        finally:
            self.in_flight -= 1

    def _lookup(self, url: httpx.URL) -> Route | None:
        key = str(url)
        if key in self.routes:
            return self.routes[key]
        # "https://example.com" と "https://example.com/" は同じページとして扱う
        if url.path in ("", "/") and not url.query:
            alternate = key[:-1] if key.endswith("/") else key + "/"
            return self.routes.get(alternate)
        return None

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle), follow_redirects=True)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()
