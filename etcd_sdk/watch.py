"""Long-poll watch on a key or directory.

A :class:`Watch` repeatedly issues ``GET <prefix><key>?wait=true``
requests which the server holds open until the key (or anything below
a directory) changes.  Each answer is decoded, handed to a user
callback and its ``modifiedIndex`` becomes the cursor: the next request
asks for ``waitIndex=<cursor + 1>`` so no change is missed or delivered
twice.

When the cursor has aged out of the server's event history the server
answers with error 401 ("event index cleared").  The engine then
fetches the current state with a plain GET, delivers it to the callback
as a snapshot and resumes from the ``X-Etcd-Index`` header of that
response.

Usage example::

    from etcd_sdk import Watch

    def on_change(reply):
        print(reply.action, reply.key, reply.value)

    watch = Watch("127.0.0.1", 2379)
    watch.run("/config", on_change)      # blocks until stopped or failed

:meth:`Watch.run` keeps going across transient failures, up to
``max_failures`` in a row.  :meth:`Watch.run_once` performs a single
poll and leaves rescheduling to the caller; the cursor is kept on the
instance so the next call resumes where the previous one stopped.

Instances are not thread safe, except for :meth:`Watch.stop`.  Use one
instance (and therefore one HTTP connection) per concurrent watch.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from . import endpoints
from .config import ClientConfig
from .exceptions import ClientError, EtcdError, ReplyError, TransportError
from .reply import Reply
from .transport import Transport, quote_key

logger = logging.getLogger(__name__)

Callback = Callable[[Reply], None]


@dataclass
class RecoveryResult:
    """Outcome of a stale index recovery.

    ``index`` is the value parsed from ``X-Etcd-Index`` (``None`` when the
    header was missing or malformed, in which case the cursor is left
    alone).  ``error`` holds the transport or decode failure when
    ``ok`` is false.
    """

    ok: bool
    reply: Optional[Reply] = None
    index: Optional[int] = None
    error: Optional[EtcdError] = None


def parse_etcd_index(headers: Optional[httpx.Headers]) -> Optional[int]:
    """Return the integer value of the first ``X-Etcd-Index`` header, if any."""
    if headers is None:
        return None
    values = headers.get_list(endpoints.ETCD_INDEX_HEADER)
    if not values:
        return None
    try:
        return int(values[0].strip())
    except ValueError:
        logger.warning("Ignoring malformed %s header: %r", endpoints.ETCD_INDEX_HEADER, values[0])
        return None


class Watch:
    """Watch engine for one key or directory at a time.

    Parameters
    ----------
    host: str
        etcd client host (ignored when ``config`` is given).
    port: int
        etcd client port (ignored when ``config`` is given).
    config: ClientConfig, optional
        Full connection settings.
    max_failures: int, optional
        Consecutive failures tolerated by :meth:`run`.  Defaults to
        ``config.max_failures`` (5).
    http_transport: httpx.BaseTransport, optional
        Low level transport forwarded to httpx.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 2379,
        config: Optional[ClientConfig] = None,
        max_failures: Optional[int] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config or ClientConfig(host=host, port=port)
        self.max_failures = max_failures if max_failures is not None else self.config.max_failures
        if self.max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        self.url_prefix = self.config.url_prefix
        # a watch owns its own connection; long polls wait on the server
        self._transport = Transport(
            timeout=self.config.timeout,
            read_timeout=self.config.watch_timeout,
            http_transport=http_transport,
        )
        self._index = 0
        self._stopped = threading.Event()
        logger.debug("Watch initialized with url_prefix=%s", self.url_prefix)

    @property
    def index(self) -> int:
        """Last observed index (0 when nothing has been observed yet)."""
        return self._index

    def stop(self) -> None:
        """Ask a running :meth:`run` / :meth:`run_once` to return.

        Safe to call from another thread or a signal handler.  A long
        poll already in flight is not interrupted: the flag is honoured
        when it returns, before the callback is invoked, so the pending
        change is not consumed and the cursor does not advance.

        The flag is only cleared when a :meth:`run` / :meth:`run_once`
        call exits.  Calling ``stop`` while no call is running therefore
        makes the next call return immediately without a request; this
        lets a stop issued just before ``run`` starts take effect.
        """
        logger.info("Stopping watch on %s", self.url_prefix)
        self._stopped.set()

    # ----------------------------------------------------------------------
    # URL / cursor bookkeeping
    #
    def _key_url(self, key: str) -> str:
        return self.url_prefix + quote_key(key)

    def _watch_url(self, key: str) -> str:
        url = self._key_url(key) + endpoints.WAIT_QUERY
        if self._index:
            url += endpoints.WAIT_INDEX_PARAM + str(self._index + 1)
        return url

    def _begin(self, key: str, prev_index: int) -> None:
        if not key:
            raise ValueError("key must be provided")
        if prev_index < 0:
            raise ValueError("prev_index must not be negative")
        if prev_index:
            self._index = prev_index

    def _deliver(self, reply: Reply, callback: Callback) -> None:
        callback(reply)
        self._index = reply.modified_index
        logger.debug("Observed change on %s at index %s", reply.key, self._index)

    # ----------------------------------------------------------------------
    # Stale index recovery
    #
    def _recover(self, key: str, callback: Callback) -> RecoveryResult:
        """Fetch the current state, deliver it and reseed the cursor.

        Transport and decode failures are reported in the result rather
        than raised.  Exceptions raised by ``callback`` propagate.
        """
        logger.warning("Index %s on %s was cleared; fetching current state", self._index, key)
        self._transport.enable_header_capture(True)
        try:
            reply = Reply(self._transport.get(self._key_url(key)))
            headers = self._transport.captured_headers()
        except EtcdError as exc:
            return RecoveryResult(ok=False, error=exc)
        finally:
            self._transport.enable_header_capture(False)

        if self._stopped.is_set():
            return RecoveryResult(ok=False)
        callback(reply)

        index = parse_etcd_index(headers)
        if index is not None:
            self._index = index
        logger.debug("Recovered %s; resuming after index %s", key, self._index)
        return RecoveryResult(ok=True, reply=reply, index=index)

    # ----------------------------------------------------------------------
    # Public API
    #
    def run(self, key: str, callback: Callback, prev_index: int = 0) -> None:
        """Watch ``key`` and deliver every change to ``callback``.

        Blocks until :meth:`stop` is called (returns normally) or until
        ``max_failures`` consecutive iterations fail (raises
        :class:`ClientError`).  A successful iteration restores the full
        budget.  A cleared index is recovered (see module docs) but
        still consumes one unit of budget.

        Parameters
        ----------
        key: str
            Key or directory to watch, e.g. ``"/config"``.
        callback: Callable[[Reply], None]
            Invoked synchronously on this thread for every change.
            Exceptions it raises propagate out of ``run``.
        prev_index: int
            Index already known to the caller; the watch starts after
            it.  ``0`` resumes from the cursor kept on this instance, or
            waits for the next change if there is none.
        """
        self._begin(key, prev_index)
        failures_left = self.max_failures
        logger.info("Starting watch on %s (index=%s)", key, self._index)
        try:
            while failures_left > 0:
                if self._stopped.is_set():
                    logger.info("Watch on %s stopped", key)
                    return
                url = self._watch_url(key)
                try:
                    reply = Reply(self._transport.get(url))
                except ReplyError as exc:
                    if exc.error_code == endpoints.EVENT_INDEX_CLEARED:
                        result = self._recover(key, callback)
                        if result.error is not None:
                            logger.warning("Recovery of %s failed (%d retries left): %s",
                                           key, failures_left - 1, result.error)
                    else:
                        logger.warning("Watch on %s got an error reply: %s", key, exc)
                    failures_left -= 1
                    continue
                except TransportError as exc:
                    failures_left -= 1
                    logger.warning("Watch on %s failed (%d retries left): %s", key, failures_left, exc)
                    continue

                if self._stopped.is_set():
                    logger.info("Watch on %s stopped", key)
                    return
                self._deliver(reply, callback)
                failures_left = self.max_failures
        finally:
            self._stopped.clear()

        logger.error("Watch on %s gave up after %d consecutive failures", key, self.max_failures)
        raise ClientError("watch failed or timedout")

    def run_once(self, key: str, callback: Callback, prev_index: int = 0) -> Optional[Reply]:
        """Wait for a single change on ``key`` and return.

        Same request as :meth:`run`, without the retry loop.  A cleared
        index is recovered (the snapshot is delivered and returned)
        whether or not recovery succeeds.  Any other failure is raised
        as :class:`ClientError`.

        Returns the reply passed to ``callback``, or ``None`` when
        nothing was delivered.
        """
        self._begin(key, prev_index)
        try:
            if self._stopped.is_set():
                return None
            url = self._watch_url(key)
            try:
                reply = Reply(self._transport.get(url))
            except ReplyError as exc:
                if exc.error_code == endpoints.EVENT_INDEX_CLEARED:
                    result = self._recover(key, callback)
                    if result.error is not None:
                        logger.warning("Recovery of %s failed: %s", key, result.error)
                    return result.reply
                raise ClientError(f"failed with {exc}") from exc
            except TransportError as exc:
                raise ClientError(f"failed with {exc}") from exc

            if self._stopped.is_set():
                return None
            self._deliver(reply, callback)
            return reply
        finally:
            self._stopped.clear()

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "Watch":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
