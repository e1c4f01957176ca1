"""Decoding of etcd v2 JSON replies.

Every keys API response is a JSON object.  Successful replies look
like::

    {"action": "set",
     "node": {"key": "/message", "value": "hello",
              "modifiedIndex": 42, "createdIndex": 42},
     "prevNode": {...}}

Directory listings nest child nodes under ``node["nodes"]``.  Errors
are reported in the body rather than through the HTTP status::

    {"errorCode": 401, "message": "The event in requested index is outdated and cleared",
     "cause": "the requested history has been cleared [1008/7]", "index": 2007}

:class:`Reply` raises :class:`~etcd_sdk.exceptions.ReplyError` for such
bodies so that callers can branch on ``error_code``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import ReplyError

logger = logging.getLogger(__name__)

KvPairs = Dict[str, str]


@dataclass
class Node:
    key: str = ""
    value: Optional[str] = None
    dir: bool = False
    created_index: int = 0
    modified_index: int = 0
    ttl: Optional[int] = None
    expiration: Optional[str] = None
    nodes: List["Node"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            key=str(data.get("key", "")),
            value=data.get("value"),
            dir=bool(data.get("dir", False)),
            created_index=int(data.get("createdIndex", 0)),
            modified_index=int(data.get("modifiedIndex", 0)),
            ttl=data.get("ttl"),
            expiration=data.get("expiration"),
            nodes=[cls.from_dict(child) for child in data.get("nodes") or []],
        )

    def collect(self, out: KvPairs) -> None:
        """Add every leaf below (and including) this node to ``out``."""
        if not self.dir:
            out[self.key] = self.value if self.value is not None else ""
            return
        for child in self.nodes:
            child.collect(out)


class Reply:
    """A decoded keys API response.

    Parameters
    ----------
    body: str
        Raw response body.

    Raises
    ------
    ReplyError
        If the body encodes a server error (``error_code`` set) or is
        not a JSON object (``error_code`` is ``None``).
    """

    def __init__(self, body: str) -> None:
        self.raw = body
        if not body or not body.strip():
            raise ReplyError(None, "empty reply")
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise ReplyError(None, "malformed reply", cause=str(exc)) from exc
        if not isinstance(data, dict):
            raise ReplyError(None, "malformed reply", cause="expected a JSON object")

        try:
            if "errorCode" in data:
                error = ReplyError(
                    int(data["errorCode"]),
                    str(data.get("message", "")),
                    cause=str(data.get("cause", "")),
                    index=int(data.get("index") or 0),
                )
            else:
                error = None
                node = Node.from_dict(data.get("node") or {})
                prev = data.get("prevNode")
                prev_node = Node.from_dict(prev) if prev else None
        except (TypeError, ValueError, AttributeError) as exc:
            raise ReplyError(None, "malformed reply", cause=str(exc)) from exc

        if error is not None:
            logger.debug("Error reply %s: %s", error.error_code, error.message)
            raise error

        self.data: Dict[str, Any] = data
        self.action: str = str(data.get("action", ""))
        self.node = node
        self.prev_node: Optional[Node] = prev_node

    @property
    def modified_index(self) -> int:
        """Index of the mutation this reply describes (0 if unknown)."""
        return self.node.modified_index

    @property
    def key(self) -> str:
        return self.node.key

    @property
    def value(self) -> Optional[str]:
        return self.node.value

    def get_all(self) -> KvPairs:
        """Flatten the node tree into ``{key: value}`` for every leaf."""
        out: KvPairs = {}
        self.node.collect(out)
        return out

    def __repr__(self) -> str:
        return f"Reply(action={self.action!r}, key={self.key!r}, modified_index={self.modified_index})"
