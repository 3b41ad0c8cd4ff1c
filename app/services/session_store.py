"""
Ephemeral key/value storage with a per-entry time-to-live.

Holds instant-trial answer keys. Nothing here outlives its TTL and nothing is
written to the durable database.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)

class SessionStore(Protocol):
    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def get(self, key: str) -> Optional[Any]: ...

    def delete(self, key: str) -> None: ...

class InMemorySessionStore:
    """Process-local TTL store; expired entries vanish on read and on ``purge_expired``"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed"""
        now = self._clock()
        with self._lock:
            expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired trial sessions")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

class RedisSessionStore:
    """TTL store on Redis; values are JSON encoded and expiry is left to Redis"""

    def __init__(self, client: redis.Redis, prefix: str = "trial:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "trial:") -> "RedisSessionStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.client.set(self._key(key), json.dumps(value), ex=ttl_seconds)

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))
