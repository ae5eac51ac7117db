"""Fake upstream REST API served through httpx.MockTransport."""

import json
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

import httpx
import pytest
import pytest_asyncio

from tests.consts import UPSTREAM_URL

Handler = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """
    Route table of canned upstream responses.

    Routes match on (method, path) only; a handler can inspect query params.
    A route registered with several responses serves them in order and then
    keeps repeating the last one. Every request is recorded in `calls`.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.calls: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status_code: int = 200,
        handler: Optional[Handler] = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> "FakeUpstream":
        if handler is None:
            if content is not None:
                response = httpx.Response(status_code, content=content, headers=headers)
            elif json_body is None and status_code == 204:
                response = httpx.Response(204)
            else:
                response = httpx.Response(status_code, json=json_body, headers=headers)
            handler = _static(response)
        self.routes.setdefault((method.upper(), path), []).append(handler)
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handlers = self.routes.get((request.method, request.url.path))
        if not handlers:
            return httpx.Response(404, json={"detail": f"No fake route for {request.method} {request.url.path}"})
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        return handler(request)

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if c.method == method.upper() and c.url.path == path]

    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [(c.method, c.url.path) for c in self.calls if c.method != "GET"]


def _static(response: httpx.Response) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            response.status_code,
            content=response.content,
            headers=response.headers,
        )

    return handler


def request_json(request: httpx.Request) -> Any:
    """Decoded JSON body of a recorded request."""
    return json.loads(request.content) if request.content else None


def paginated(results: List[dict], next_url: Optional[str] = None, count: Optional[int] = None) -> dict:
    """DRF-style paginated body."""
    return {
        "count": len(results) if count is None else count,
        "next": next_url,
        "previous": None,
        "results": results,
    }


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def mock_transport(upstream) -> httpx.MockTransport:
    return httpx.MockTransport(upstream.handle)


@pytest_asyncio.fixture
async def http_client(mock_transport):
    """Async httpx client pointed at the fake upstream."""
    async with httpx.AsyncClient(base_url=UPSTREAM_URL, transport=mock_transport) as client:
        yield client
