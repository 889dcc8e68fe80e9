"""Check-in ledger.

Append-only set of (event, ticket) pairs admitted at the door. Membership
is local state only; no chain write records a check-in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as aioredis

from eventbase.core.config import Settings, get_settings
from eventbase.services.verification.schemas import CheckInKey

logger = logging.getLogger(__name__)


class CheckInLedger(ABC):
    """Capability interface for check-in storage."""

    @abstractmethod
    async def contains(self, key: CheckInKey) -> bool:
        ...

    @abstractmethod
    async def insert(self, key: CheckInKey) -> bool:
        """Record a check-in.

        Returns:
            True if the key was new, False if it was already present
        """
        ...

    @abstractmethod
    async def size(self, event_id: str | None = None) -> int:
        """Number of check-ins, optionally for one event."""
        ...


class InMemoryCheckInLedger(CheckInLedger):
    """Process-local ledger. Lost on restart."""

    def __init__(self) -> None:
        self._keys: set[CheckInKey] = set()

    async def contains(self, key: CheckInKey) -> bool:
        return key in self._keys

    async def insert(self, key: CheckInKey) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    async def size(self, event_id: str | None = None) -> int:
        if event_id is None:
            return len(self._keys)
        return sum(1 for key in self._keys if key.event_id == str(event_id))


class RedisCheckInLedger(CheckInLedger):
    """Ledger persisted in Redis, one set per event.

    The client is any asyncio Redis client exposing ``sadd``, ``sismember``
    and ``scard`` (e.g. ``redis.asyncio.Redis``).
    """

    def __init__(self, redis_client: Any, prefix: str = "checkin:"):
        """Initialize Redis ledger.

        Args:
            redis_client: Async Redis client
            prefix: Key prefix; each event maps to ``<prefix><event_id>``
        """
        self.redis_client = redis_client
        self.prefix = prefix
        self._events_key = f"{prefix}events"

    def _event_key(self, event_id: str) -> str:
        return f"{self.prefix}{event_id}"

    async def contains(self, key: CheckInKey) -> bool:
        return bool(await self.redis_client.sismember(self._event_key(key.event_id), key.token_id))

    async def insert(self, key: CheckInKey) -> bool:
        added = await self.redis_client.sadd(self._event_key(key.event_id), key.token_id)
        await self.redis_client.sadd(self._events_key, key.event_id)
        return bool(added)

    async def size(self, event_id: str | None = None) -> int:
        if event_id is not None:
            return int(await self.redis_client.scard(self._event_key(str(event_id))))

        total = 0
        for member in await self.redis_client.smembers(self._events_key):
            event = member.decode() if isinstance(member, bytes) else str(member)
            total += int(await self.redis_client.scard(self._event_key(event)))
        return total


def build_checkin_ledger(settings: Settings | None = None) -> CheckInLedger:
    """Ledger for the configured ``checkin_ledger_backend``."""
    settings = settings or get_settings()
    if settings.checkin_ledger_backend == "redis":
        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        logger.info(f"Check-in ledger backed by Redis at {settings.redis_host}:{settings.redis_port}")
        return RedisCheckInLedger(client, prefix=settings.checkin_ledger_prefix)
    return InMemoryCheckInLedger()
