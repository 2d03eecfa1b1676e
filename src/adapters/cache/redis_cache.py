"""
Redis trust cache adapter - Implements TrustCache protocol via redis-py.

Entries are existence markers for trusted (username, device) pairs. The
cache is never authoritative: a lost or evicted entry costs one account
lookup, nothing more.
"""

import logging

from redis import Redis

logger = logging.getLogger(__name__)


class RedisTrustCache:
    """
    Implements TrustCache protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: Redis, ttl_seconds: int = 0) -> None:
        """
        Args:
            client: redis client created with decode_responses=True
            ttl_seconds: expiry for written entries, 0 for none
        """
        self._client = client
        self._ttl = ttl_seconds or None

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = 0, socket_timeout: float = 5.0) -> "RedisTrustCache":
        client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, ttl_seconds)

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value, ex=self._ttl)

    def remove(self, key: str) -> None:
        self._client.delete(key)

    def exists(self, key: str) -> bool:
        return bool(self._client.exists(key))

    def ping(self) -> bool:
        return bool(self._client.ping())

    def close(self) -> None:
        self._client.close()
        logger.info("Redis trust cache closed")
