"""Exception hierarchy for the etcd SDK.

Every error raised by the package derives from :class:`EtcdError`:

- :class:`TransportError` -- the HTTP request itself failed (connect,
  DNS, timeout...).
- :class:`ReplyError` -- the server answered, but the body encodes an
  error (``errorCode``) or could not be decoded at all.
- :class:`ClientError` -- terminal conditions raised to the caller, such
  as a transport that could not be created or a watch that ran out of
  retries.
"""

from __future__ import annotations

from typing import Optional


class EtcdError(Exception):
    """Base class for all SDK errors."""


class TransportError(EtcdError):
    """A single HTTP request failed before a response was received.

    ``code`` is the name of the underlying httpx exception
    (``"ConnectError"``, ``"ReadTimeout"``...).
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{message} [code: {code}]")
        self.code = code
        self.message = message


class ReplyError(EtcdError):
    """The response body encodes a server-side error.

    ``error_code`` is ``None`` when the body was empty or not valid
    JSON; otherwise it holds the server's numeric ``errorCode``.
    """

    def __init__(self, error_code: Optional[int], message: str,
                 cause: str = "", index: int = 0) -> None:
        text = message if error_code is None else f"{message} (errorCode {error_code})"
        if cause:
            text = f"{text}: {cause}"
        super().__init__(text)
        self.error_code = error_code
        self.message = message
        self.cause = cause
        self.index = index


class ClientError(EtcdError):
    """Terminal client-side failure."""
