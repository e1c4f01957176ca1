"""API endpoint definitions.

This module defines the URL pieces of the etcd v2 keys API used by the
SDK.  Paths are joined to the ``<scheme>://<host>:<port>`` root built
from :class:`~etcd_sdk.config.ClientConfig`; keys are appended to
:data:`KEYS_PREFIX` verbatim (they already start with ``/``).

Keeping these values in one place makes it easy to audit and update
the API surface when the server changes.
"""

KEYS_PREFIX = "/v2/keys"
"""Root of the keys namespace.  ``<prefix><key>`` addresses a key or directory."""

WAIT_QUERY = "?wait=true"
"""Long-poll qualifier.  The server holds the request until the key changes."""

WAIT_INDEX_PARAM = "&waitIndex="
"""Appended to :data:`WAIT_QUERY` with ``cursor + 1`` to resume after a known index."""

ETCD_INDEX_HEADER = "X-Etcd-Index"
"""Response header carrying the current cluster index.  Used during stale index recovery."""

# Error codes found in the ``errorCode`` field of error bodies.

KEY_NOT_FOUND = 100
"""The key does not exist."""

TEST_FAILED = 101
"""A compare-and-swap precondition (``prevExist``, ``prevValue``...) failed."""

NOT_FILE = 102
"""The operation requires a key but the path is a directory."""

NODE_EXIST = 105
"""The key already exists (``prevExist=false``)."""

EVENT_INDEX_CLEARED = 401
"""The requested ``waitIndex`` fell out of the server's event history."""
