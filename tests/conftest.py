import json
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest

from trendhunter import timeframes

FROZEN_NOW = datetime(2024, 9, 13, 12, 30, tzinfo=timezone.utc)


class FakeClock:
    """Synthetic monotonic clock; sleep() advances it and is recorded."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


Handler = Callable[[httpx.Request], httpx.Response]


class FakeTrendsServer:
    """
    Routes requests by URL path to handlers and records every request.

    The landing and explore pages answer 200 unless overridden, so the
    session bootstrap succeeds by default.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Handler | list[Handler]] = {
            "/": lambda request: httpx.Response(200, text="<html></html>"),
            "/trends/explore": lambda request: httpx.Response(200, text="<html></html>"),
        }

    def route(self, path: str, *handlers: Handler) -> None:
        """Register handlers for a path; several are used in turn, the last repeats."""
        self.routes[path] = list(handlers) if len(handlers) > 1 else handlers[0]

    def hits(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="not found")
        if isinstance(handler, list):
            handler = handler.pop(0) if len(handler) > 1 else handler[0]
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def status(code: int, **kwargs: Any) -> Handler:
    return lambda request: httpx.Response(code, **kwargs)


def protected_json(payload: Any, content_type: str = "application/json; charset=utf-8") -> Handler:
    body = ")]}',\n" + json.dumps(payload)
    return lambda request: httpx.Response(200, text=body, headers={"content-type": content_type})


def embed_page(widget: dict[str, Any]) -> Handler:
    """An explore embed page carrying the widget as an escaped JSON.parse literal."""
    literal = json.dumps(widget).replace('"', "\\x22")
    html = f"<html><script>var widget = JSON.parse( '{literal}' );</script></html>"
    return lambda request: httpx.Response(200, text=html, headers={"content-type": "text/html"})


def widget_request(*keywords: str, time: str = "today 12-m") -> dict[str, Any]:
    return {
        "time": time,
        "resolution": "WEEK",
        "locale": "en-US",
        "comparisonItem": [
            {
                "geo": {},
                "complexKeywordsRestriction": {"keyword": [{"type": "BROAD", "value": kw}]},
            }
            for kw in keywords
        ],
        "requestOptions": {"property": "", "backend": "IZG", "category": 0},
        "userConfig": {"userType": "USER_TYPE_LEGIT_USER"},
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def server() -> FakeTrendsServer:
    return FakeTrendsServer()


@pytest.fixture
def frozen_now(monkeypatch: pytest.MonkeyPatch) -> datetime:
    monkeypatch.setattr(timeframes, "utcnow", lambda: FROZEN_NOW)
    return FROZEN_NOW
