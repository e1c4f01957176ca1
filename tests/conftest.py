"""Shared fixtures: a scripted fake etcd server behind ``httpx.MockTransport``."""

from typing import Any, Dict, List, Optional

import httpx
import pytest

from etcd_sdk import Client, Watch


class FakeEtcd:
    """Answers requests from a queue of responses.

    Queue items are ``httpx.Response`` objects, exceptions (raised as
    if the network failed) or callables taking the request.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: List[Any] = []

    def queue(self, *items: Any) -> None:
        self.responses.extend(items)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    def wait_indexes(self) -> List[Optional[str]]:
        return [r.url.params.get("waitIndex") for r in self.requests]


def node_reply(key: str, value: str, index: int, action: str = "set",
               headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    body = {
        "action": action,
        "node": {"key": key, "value": value, "modifiedIndex": index, "createdIndex": index},
    }
    return httpx.Response(200, json=body, headers=headers)


def error_reply(code: int, message: str = "error", index: int = 0, status: int = 400) -> httpx.Response:
    body = {"errorCode": code, "message": message, "cause": "test", "index": index}
    return httpx.Response(status, json=body)


def timeout() -> httpx.ReadTimeout:
    return httpx.ReadTimeout("timed out")


@pytest.fixture
def fake():
    return FakeEtcd()


@pytest.fixture
def watch(fake):
    w = Watch("127.0.0.1", 2379, http_transport=httpx.MockTransport(fake))
    yield w
    w.close()


@pytest.fixture
def client(fake):
    c = Client("127.0.0.1", 2379, http_transport=httpx.MockTransport(fake))
    yield c
    c.close()
