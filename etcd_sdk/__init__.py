"""
Top-level package for the etcd Python SDK.

This package provides a client for the etcd v2 keys API over HTTP and a
long-poll watch engine that keeps a subscription alive across transient
failures and cleared event history.  It lets you focus on:
- reading and writing keys and directories
- reacting to changes on a key or a subtree

High-level imports (recommended):

    from etcd_sdk import Client, Watch

One-shot key operations:

    client = Client("127.0.0.1", 2379)
    client.set("/message", "hello")
    client.get("/message").value

Watching for changes (blocks; call ``watch.stop()`` from elsewhere to end):

    watch = client.watch()
    watch.run("/message", lambda reply: print(reply.value))

Errors:

    from etcd_sdk import ClientError, ReplyError, TransportError
"""

from .client import Client  # noqa: F401
from .config import MAX_FAILURES, ClientConfig  # noqa: F401
from .exceptions import ClientError, EtcdError, ReplyError, TransportError  # noqa: F401
from .reply import Node, Reply  # noqa: F401
from .transport import Transport  # noqa: F401
from .watch import RecoveryResult, Watch  # noqa: F401

__all__ = [
    "Client",
    "Watch",
    "RecoveryResult",
    # decoding
    "Reply",
    "Node",
    # plumbing
    "Transport",
    "ClientConfig",
    "MAX_FAILURES",
    # errors
    "EtcdError",
    "ClientError",
    "ReplyError",
    "TransportError",
]
