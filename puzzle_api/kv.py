"""
Key-value store abstraction for the player registry.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis


class KeyValueStore(Protocol):
    """Minimal string key-value interface."""

    def get(self, key: str) -> Optional[str]:
        ...

    def put_if_absent(self, key: str, value: str) -> bool:
        """Store ``value`` only if ``key`` is unset. Returns False if it was set."""
        ...


@dataclass
class InMemoryKeyValueStore:
    """Dict-backed store for testing/dev."""

    items: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def put_if_absent(self, key: str, value: str) -> bool:
        if key in self.items:
            return False
        self.items[key] = value
        return True

    def reset(self) -> None:
        self.items.clear()


@dataclass
class RedisKeyValueStore:
    """Redis-backed store; every key is namespaced under ``key_prefix``."""

    url: str
    key_prefix: str = "puzzle:player:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(self._key(key))
        if value is None:
            return None
        return value.decode("utf-8")

    def put_if_absent(self, key: str, value: str) -> bool:
        return bool(self.client.set(self._key(key), value, nx=True))
