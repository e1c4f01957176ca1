"""Tests for one-shot key operations."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import FakeEtcd, error_reply, node_reply
from etcd_sdk import ReplyError, TransportError, Watch
from etcd_sdk import endpoints


def form(request):
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestClient:
    """Tests for Client key operations."""

    def test_get(self, client, fake):
        fake.queue(node_reply("/message", "hello", 7, action="get"))

        reply = client.get("/message")

        request = fake.requests[0]
        assert request.method == "GET"
        assert str(request.url) == "http://127.0.0.1:2379/v2/keys/message"
        assert reply.value == "hello"

    def test_get_recursive_sorted(self, client, fake):
        fake.queue(node_reply("/dir", "", 7, action="get"))

        client.get("/dir", recursive=True, sort=True)

        params = fake.requests[0].url.params
        assert params["recursive"] == "true"
        assert params["sorted"] == "true"

    def test_set(self, client, fake):
        fake.queue(node_reply("/message", "hello", 8))

        reply = client.set("/message", "hello")

        request = fake.requests[0]
        assert request.method == "PUT"
        assert form(request) == {"value": "hello"}
        assert reply.modified_index == 8

    def test_set_with_ttl(self, client, fake):
        fake.queue(node_reply("/lock", "me", 9))

        client.set("/lock", "me", ttl=30)

        assert form(fake.requests[0]) == {"value": "me", "ttl": "30"}

    def test_create_requires_absent_key(self, client, fake):
        fake.queue(error_reply(endpoints.NODE_EXIST, "Key already exists", status=412))

        with pytest.raises(ReplyError) as info:
            client.create("/message", "hello")

        assert fake.requests[0].url.params["prevExist"] == "false"
        assert info.value.error_code == endpoints.NODE_EXIST

    def test_update_requires_existing_key(self, client, fake):
        fake.queue(node_reply("/message", "bye", 10, action="update"))

        client.update("/message", "bye")

        assert fake.requests[0].url.params["prevExist"] == "true"

    def test_mkdir(self, client, fake):
        fake.queue(httpx.Response(201, json={"action": "set", "node": {"key": "/d", "dir": True,
                                                                      "modifiedIndex": 11}}))

        reply = client.mkdir("/d")

        assert form(fake.requests[0]) == {"dir": "true"}
        assert reply.node.dir

    def test_delete_recursive(self, client, fake):
        fake.queue(node_reply("/d", "", 12, action="delete"))

        client.delete("/d", recursive=True)

        request = fake.requests[0]
        assert request.method == "DELETE"
        assert request.url.params["recursive"] == "true"
        assert request.url.params["dir"] == "true"

    def test_ls(self, client, fake):
        body = {"action": "get", "node": {"key": "/", "dir": True, "nodes": [
            {"key": "/a", "value": "1"},
            {"key": "/b", "dir": True, "nodes": [{"key": "/b/c", "value": "2"}]},
        ]}}
        fake.queue(httpx.Response(200, text=json.dumps(body)))

        assert client.ls("/") == {"/a": "1", "/b/c": "2"}
        assert fake.requests[0].url.params["recursive"] == "true"

    def test_missing_key_raises_reply_error(self, client, fake):
        fake.queue(error_reply(endpoints.KEY_NOT_FOUND, "Key not found", status=404))

        with pytest.raises(ReplyError) as info:
            client.get("/nope")

        assert info.value.error_code == endpoints.KEY_NOT_FOUND

    def test_transport_failure(self, client, fake):
        fake.queue(httpx.ConnectError("refused"))

        with pytest.raises(TransportError):
            client.get("/message")

    def test_key_is_quoted(self, client, fake):
        fake.queue(node_reply("/my key", "v", 1, action="get"))

        client.get("my key")

        assert fake.requests[0].url.raw_path == b"/v2/keys/my%20key"

    def test_empty_key_rejected(self, client):
        with pytest.raises(ValueError):
            client.get("")

    def test_watch_factory(self, client, fake):
        fake.queue(node_reply("/message", "x", 5))

        with client.watch(max_failures=3) as watch:
            assert isinstance(watch, Watch)
            assert watch.max_failures == 3
            assert watch.url_prefix == client.url_prefix
            assert watch._transport is not client._transport
            watch.run_once("/message", lambda reply: None)

        assert fake.requests[0].url.params["wait"] == "true"

    def test_watch_factory_with_separate_transport(self, client, fake):
        """A watch given its own transport never touches the client's."""
        watch_fake = FakeEtcd()
        watch_fake.queue(node_reply("/message", "x", 5))
        fake.queue(node_reply("/message", "x", 5, action="get"))

        watch = client.watch(http_transport=httpx.MockTransport(watch_fake))
        watch.run_once("/message", lambda reply: None)
        watch.close()

        assert len(watch_fake.requests) == 1
        assert fake.requests == []
        assert client.get("/message").value == "x"


def test_watch_rejects_zero_budget():
    with pytest.raises(ValueError):
        Watch(max_failures=0)
