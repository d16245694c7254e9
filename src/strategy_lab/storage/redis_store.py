"""Redis-backed session store.

Keys are namespaced under a configurable prefix (default
``strategy_lab:``) as ``<prefix><storage_key>:<encoded session_id>`` so
several environments can share one Redis instance.  The ``:`` separator cannot
occur inside a storage key or a percent-encoded session id, so distinct
keys never collide.

A single ``SET`` replaces the whole value, which Redis applies atomically;
no client-side locking is needed.
"""

from __future__ import annotations

import logging
from typing import Any

import redis

from strategy_lab.core.errors import InvalidKeyError, NotFoundError
from strategy_lab.core.models import StepRecord

from .session_store import (
    StoreKey,
    _new_record,
    decode_session_id,
    deserialize_record,
    serialize_record,
)

logger = logging.getLogger(__name__)


def _record_key(prefix: str, key: StoreKey) -> str:
    return f"{prefix}{key.storage_key}:{key.encoded_session}"


class RedisSessionStore:
    """Synchronous Redis session store.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
        prefix: Key namespace prefix. Defaults to ``"strategy_lab:"``.
        client: Pre-built client (tests inject a mock here).
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "strategy_lab:",
        client: redis.Redis | None = None,
    ) -> None:
        self._url = redis_url
        self._prefix = prefix
        self._redis = client

    @property
    def redis(self) -> redis.Redis:
        """Return the Redis client, connecting lazily on first use."""
        if self._redis is None:
            self._redis = redis.Redis.from_url(self._url, decode_responses=False)
            logger.info("Redis connected: %s", self._url.split("@")[-1])
        return self._redis

    def close(self) -> None:
        if self._redis is not None:
            self._redis.close()
            self._redis = None

    def put(self, storage_key: str, session_id: str, payload: Any) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        record = _new_record(key, payload)
        self.redis.set(_record_key(self._prefix, key), serialize_record(record))
        logger.debug("RedisSessionStore: set %s", key.flat)
        return record

    def get(self, storage_key: str, session_id: str) -> StepRecord:
        key = StoreKey.of(storage_key, session_id)
        raw = self.redis.get(_record_key(self._prefix, key))
        if raw is None:
            raise NotFoundError(storage_key, session_id)
        return deserialize_record(raw)

    def has(self, storage_key: str, session_id: str) -> bool:
        try:
            key = StoreKey.of(storage_key, session_id)
        except InvalidKeyError:
            return False
        return bool(self.redis.exists(_record_key(self._prefix, key)))

    def sessions(self, storage_key: str) -> list[str]:
        StoreKey.of(storage_key, "x")  # validate namespace
        head = f"{self._prefix}{storage_key}:"
        found: list[str] = []
        for raw in self.redis.scan_iter(match=f"{head}*", count=100):
            name = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            found.append(decode_session_id(name[len(head):]))
        return sorted(found)
