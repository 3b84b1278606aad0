"""
Thin wrapper over the Redis client shared by every store adapter.

Records are JSON documents; secondary indexes are Redis sets. Every call is a
separate round trip, there is no transaction or pipeline around a logical
operation.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Set

import redis


class KeyValueStore:
    """JSON + set helpers over a ``redis.Redis`` client (decoded responses)."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "KeyValueStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    # -- strings ------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str, *, only_if_absent: bool = False) -> bool:
        """Write a string. With ``only_if_absent`` returns False if the key existed."""
        return bool(self.client.set(key, value, nx=only_if_absent))

    # -- JSON documents -----------------------------------------------------

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def get_many_json(self, keys: Iterable[str]) -> List[Optional[Any]]:
        """Fetch several documents in one MGET; missing keys come back as None."""
        keys = list(keys)
        if not keys:
            return []
        return [None if raw is None else json.loads(raw) for raw in self.client.mget(keys)]

    def set_json(self, key: str, value: Any) -> None:
        self.client.set(key, json.dumps(value))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(self.client.delete(*keys))

    # -- sets ---------------------------------------------------------------

    def add_to_set(self, key: str, *members: str) -> None:
        if members:
            self.client.sadd(key, *members)

    def remove_from_set(self, key: str, *members: str) -> None:
        if members:
            self.client.srem(key, *members)

    def members(self, key: str) -> Set[str]:
        return set(self.client.smembers(key))

    def intersect(self, *keys: str) -> Set[str]:
        return set(self.client.sinter(list(keys)))

    def ping(self) -> bool:
        return bool(self.client.ping())
