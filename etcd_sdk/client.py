"""HTTP client for the etcd v2 keys API.

This module defines the :class:`Client` class which wraps the one-shot
key operations (get, set, delete, directory listing...).  Each call is
a single blocking request decoded into a :class:`~etcd_sdk.reply.Reply`;
no state is kept between calls.

Usage example::

    from etcd_sdk import Client

    client = Client("127.0.0.1", 2379)
    client.set("/message", "hello")
    print(client.get("/message").value)      # "hello"
    print(client.ls("/"))                    # {"/message": "hello"}

    watch = client.watch()                   # independent connection
    watch.run("/message", print)

Server side errors (missing key, failed precondition...) are raised as
:class:`~etcd_sdk.exceptions.ReplyError`; check ``error_code`` against
the constants in :mod:`etcd_sdk.endpoints`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from .config import ClientConfig
from .reply import KvPairs, Reply
from .transport import Transport, quote_key
from .watch import Watch

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class Client:
    """Client for the etcd keys API.

    Parameters
    ----------
    host: str
        etcd client host (ignored when ``config`` is given).
    port: int
        etcd client port (ignored when ``config`` is given).
    config: ClientConfig, optional
        Full connection settings, e.g. from :meth:`ClientConfig.from_env`.
    http_transport: httpx.BaseTransport, optional
        Low level transport forwarded to httpx (also used by watches
        created through :meth:`watch`).
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 2379,
        config: Optional[ClientConfig] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config or ClientConfig(host=host, port=port)
        self.url_prefix = self.config.url_prefix
        self._http_transport = http_transport
        self._transport = Transport(timeout=self.config.timeout, http_transport=http_transport)
        logger.debug("Client initialized with url_prefix=%s", self.url_prefix)

    def _key_url(self, key: str, params: Optional[Dict[str, str]] = None) -> str:
        if not key:
            raise ValueError("key must be provided")
        url = self.url_prefix + quote_key(key)
        if params:
            url += "?" + urlencode(params)
        return url

    def _send(self, verb: str, key: str, fields: Optional[Dict[str, Any]] = None,
              params: Optional[Dict[str, str]] = None) -> Reply:
        url = self._key_url(key, params)
        if verb == "GET":
            body = self._transport.get(url)
        else:
            form = {k: str(v) for k, v in (fields or {}).items() if v is not None}
            body = self._transport.set_or_post(url, verb, form)
        return Reply(body)

    def get(self, key: str, recursive: bool = False, sort: bool = False) -> Reply:
        """Read a key or directory."""
        params: Dict[str, str] = {}
        if recursive:
            params["recursive"] = _flag(True)
        if sort:
            params["sorted"] = _flag(True)
        logger.debug("Getting %s", key)
        return self._send("GET", key, params=params)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> Reply:
        """Create or overwrite ``key``."""
        logger.debug("Setting %s", key)
        return self._send("PUT", key, {"value": value, "ttl": ttl})

    def create(self, key: str, value: str, ttl: Optional[int] = None) -> Reply:
        """Create ``key``; fails with ``NODE_EXIST`` (105) if it exists."""
        return self._send("PUT", key, {"value": value, "ttl": ttl},
                          params={"prevExist": _flag(False)})

    def update(self, key: str, value: str, ttl: Optional[int] = None) -> Reply:
        """Overwrite an existing ``key``; fails with ``KEY_NOT_FOUND`` (100) otherwise."""
        return self._send("PUT", key, {"value": value, "ttl": ttl},
                          params={"prevExist": _flag(True)})

    def mkdir(self, key: str, ttl: Optional[int] = None) -> Reply:
        """Create a directory."""
        return self._send("PUT", key, {"dir": _flag(True), "ttl": ttl})

    def delete(self, key: str, recursive: bool = False) -> Reply:
        """Delete a key, or a whole directory when ``recursive`` is set."""
        params: Dict[str, str] = {}
        if recursive:
            params["recursive"] = _flag(True)
            params["dir"] = _flag(True)
        logger.debug("Deleting %s (recursive=%s)", key, recursive)
        return self._send("DELETE", key, params=params)

    def ls(self, key: str) -> KvPairs:
        """Return ``{key: value}`` for every leaf below ``key``."""
        return self.get(key, recursive=True).get_all()

    def watch(self, max_failures: Optional[int] = None,
              http_transport: Optional[httpx.BaseTransport] = None) -> Watch:
        """Create a :class:`Watch` with the same settings and its own connection.

        The watch always gets its own ``httpx.Client``.  When the client
        was built with an injected ``http_transport`` and none is passed
        here, that same low level transport is reused, so closing the
        watch also closes it for this client; pass a separate
        ``http_transport`` to keep them independent.
        """
        return Watch(config=self.config, max_failures=max_failures,
                     http_transport=http_transport or self._http_transport)

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
