"""
Fake courier endpoints for the carrier integration tests
"""
from collections import defaultdict
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeCourierApi:
    """
    Route table for httpx.MockTransport.

    Each (method, path) holds a queue of responses; the last one is repeated
    once the queue is down to a single entry. Every request is recorded.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Responder]] = defaultdict(list)
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Responder) -> "FakeCourierApi":
        self.routes[(method.upper(), path)].extend(responses)
        return self

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(599, text=f"unexpected {request.method} {request.url.path}")
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(responder):
            return responder(request)
        # Fresh copy, the client mutates the response it receives
        return httpx.Response(responder.status_code, headers=responder.headers, content=responder.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeCourierApi:
    return FakeCourierApi()
