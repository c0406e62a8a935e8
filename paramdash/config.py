from __future__ import annotations

import os
from dataclasses import dataclass

from paramdash.constants import NAMESPACE_STORAGE_KEY, URI_STORAGE_KEY
from paramdash.core.selection import KeyValueStore


@dataclass
class ConnectionSettings:
    """Where the robot's rosbridge lives and which node namespace to tune."""

    uri: str = "ws://localhost:9090"
    namespace: str = ""

    @classmethod
    def from_env(cls) -> "ConnectionSettings":
        uri = os.getenv("PARAMDASH_ROSBRIDGE_URI", "ws://localhost:9090")
        namespace = os.getenv("PARAMDASH_NAMESPACE", "")
        return cls(uri=uri, namespace=normalize_namespace(namespace))

    @classmethod
    def load(cls, store: KeyValueStore, defaults: "ConnectionSettings | None" = None) -> "ConnectionSettings":
        """Saved settings win over the defaults (environment by default)."""
        base = defaults or cls.from_env()
        uri = store.get(URI_STORAGE_KEY) or base.uri
        namespace = store.get(NAMESPACE_STORAGE_KEY)
        return cls(
            uri=uri,
            namespace=normalize_namespace(namespace if namespace is not None else base.namespace),
        )

    def save(self, store: KeyValueStore) -> None:
        store.put(URI_STORAGE_KEY, self.uri)
        store.put(NAMESPACE_STORAGE_KEY, self.namespace)

    @property
    def host_port(self) -> tuple[str, int]:
        """Host and port parsed from a ``ws://host:port`` URI."""
        rest = self.uri.split("://", 1)[-1].split("/", 1)[0]
        host, sep, port = rest.rpartition(":")
        if not sep:
            return rest, 9090
        return host, int(port)


def normalize_namespace(namespace: str) -> str:
    """``robot1`` and ``/robot1/`` both become ``/robot1``; empty stays empty."""
    ns = namespace.strip().strip("/")
    return f"/{ns}" if ns else ""
