"""Blocking HTTP transport used by the client and the watch engine.

:class:`Transport` performs exactly one request at a time on a single
``httpx.Client`` which is reused across calls to amortize connection
setup.  It never interprets HTTP status codes: etcd reports errors in
JSON bodies (with 4xx statuses), so the body is always handed back and
decoding is left to :class:`~etcd_sdk.reply.Reply`.  Only failures of
the request itself are raised, as :class:`~etcd_sdk.exceptions.TransportError`.

Response headers can be captured on demand (see
:meth:`Transport.enable_header_capture`); the watch engine uses this to
read ``X-Etcd-Index`` while recovering from a stale index.

A transport is not thread safe.  Give each watch its own instance.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote

import httpx

from .exceptions import ClientError, TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "etcd-sdk-python/0.1"

# distinguishes "no read timeout given" from an explicit None
_UNSET: Any = object()


def quote_key(key: str) -> str:
    """Percent-encode a key path, keeping ``/`` separators; ensures a leading ``/``."""
    if not key.startswith("/"):
        key = "/" + key
    return quote(key, safe="/")


class Transport:
    """Single-request-at-a-time HTTP transport.

    Parameters
    ----------
    timeout: float
        Connect/write/pool timeout in seconds, and the read timeout when
        ``read_timeout`` is not given.
    read_timeout: float, optional
        Read timeout in seconds.  Long polls pass ``None`` to wait until
        the server answers.
    http_transport: httpx.BaseTransport, optional
        Low level transport handed to ``httpx.Client`` (tests inject an
        ``httpx.MockTransport`` here).
    """

    def __init__(
        self,
        timeout: float = 10.0,
        read_timeout: Any = _UNSET,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        read = timeout if read_timeout is _UNSET else read_timeout
        try:
            self._http = httpx.Client(
                timeout=httpx.Timeout(timeout, read=read),
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=http_transport,
            )
        except Exception as exc:
            raise ClientError(str(exc)) from exc
        self._capture_headers = False
        self._headers: Optional[httpx.Headers] = None

    def _request(self, method: str, url: str, **kwargs) -> str:
        """Internal helper for sending HTTP requests."""
        self._headers = None
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.debug("Request failed: %s", exc)
            raise TransportError(type(exc).__name__, f"Failed {method} {url}: {exc}") from exc
        if self._capture_headers:
            self._headers = response.headers
        return response.text

    def get(self, url: str) -> str:
        """Issue a GET and return the response body."""
        return self._request("GET", url)

    def set_or_post(self, url: str, verb: str, fields: Optional[Dict[str, str]] = None) -> str:
        """Issue ``verb`` (PUT, POST, DELETE...) with form encoded ``fields``.

        An empty ``fields`` mapping sends no body at all.
        """
        if fields:
            return self._request(verb.upper(), url, data=fields)
        return self._request(verb.upper(), url)

    def enable_header_capture(self, on_off: bool) -> None:
        """Turn response header capture on or off for subsequent requests."""
        self._capture_headers = on_off

    def captured_headers(self) -> Optional[httpx.Headers]:
        """Headers of the last request made while capture was enabled."""
        return self._headers

    @staticmethod
    def url_encode(value: str) -> str:
        return quote(value, safe="")

    @staticmethod
    def url_decode(value: str) -> str:
        return unquote(value)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
