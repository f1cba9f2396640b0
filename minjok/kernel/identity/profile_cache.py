"""
Short-lived cache of "bearer token -> current actor".

Purely a latency optimisation for bursts of requests from one client. An
entry may be up to ``ttl`` seconds stale, so role changes take effect after
at most one TTL window (or immediately via ``invalidate_profile``).
"""

import hashlib
import time
import uuid
from typing import Callable, Optional

from cachetools import TTLCache

from minjok.kernel.identity.actor import Actor


class ProfileCache:
    """TTL cache of resolved actors, keyed by a hash of the bearer token."""

    def __init__(
        self,
        ttl: float = 5.0,
        maxsize: int = 1024,
        enabled: bool = True,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.enabled = enabled
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    @staticmethod
    def _key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[Actor]:
        if not self.enabled:
            return None
        return self._entries.get(self._key(token))

    def put(self, token: str, actor: Actor) -> None:
        if self.enabled:
            self._entries[self._key(token)] = actor

    def invalidate_profile(self, profile_id: uuid.UUID) -> None:
        """Drop every cached session of one profile."""
        stale = [key for key, actor in list(self._entries.items()) if actor.id == profile_id]
        for key in stale:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
