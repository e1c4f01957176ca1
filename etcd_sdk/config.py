"""Connection settings shared by :class:`~etcd_sdk.client.Client` and
:class:`~etcd_sdk.watch.Watch`.

Settings are plain constructor arguments.  :meth:`ClientConfig.from_env`
is a convenience for processes configured through the environment::

    ETCD_HOST=10.0.0.5 ETCD_PORT=2379 python my_service.py
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from . import endpoints

MAX_FAILURES = 5
"""Consecutive non-recovering failures tolerated by :meth:`Watch.run`."""


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or raw.strip() == "" or raw.strip().lower() == "none":
        return None
    return float(raw)


@dataclass
class ClientConfig:
    host: str = "127.0.0.1"
    port: int = 2379
    scheme: str = "http"
    timeout: float = 10.0
    watch_timeout: Optional[float] = None  # read timeout of long polls; None waits forever
    max_failures: int = MAX_FAILURES

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must be provided")
        if self.max_failures < 1:
            raise ValueError("max_failures must be at least 1")

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def url_prefix(self) -> str:
        """Prefix every key is appended to, e.g. ``http://host:2379/v2/keys``."""
        return self.base_url + endpoints.KEYS_PREFIX

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        """Build a config from ``ETCD_*`` environment variables.

        Unset variables keep the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("ETCD_HOST", defaults.host),
            port=int(env.get("ETCD_PORT", defaults.port)),
            scheme=env.get("ETCD_SCHEME", defaults.scheme),
            timeout=float(env.get("ETCD_TIMEOUT", defaults.timeout)),
            watch_timeout=_optional_float(env.get("ETCD_WATCH_TIMEOUT")),
            max_failures=int(env.get("ETCD_MAX_FAILURES", defaults.max_failures)),
        )
