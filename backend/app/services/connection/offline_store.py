"""
Offline Signal Store

Per-user Redis list of signals addressed to users with no live connection.

Keys:
    offline_signal:{user_id} -> list of JSON-encoded Signal, oldest first

The whole list shares one expiry, reset on every enqueue to the TTL of the
signal just queued: 30 seconds for call-control signals, 24 hours for
contact notifications. A call signal therefore never outlives its call.
Draining reads and deletes the list in one MULTI/EXEC, so a signal is handed
out at most once.
"""
import logging
from typing import Awaitable, Callable, List

import redis.asyncio as redis
from pydantic import ValidationError

from app.config.constants import OFFLINE_CALL_SIGNAL_TTL_SEC, OFFLINE_CONTACT_SIGNAL_TTL_SEC
from app.config.redis import get_redis
from app.schemas.signal import Signal

logger = logging.getLogger(__name__)

RedisFactory = Callable[[], Awaitable[redis.Redis]]


class OfflineSignalStore:
    """Durable handoff of signals for disconnected users."""

    KEY_PREFIX = "offline_signal:"

    def __init__(self, redis_factory: RedisFactory = get_redis):
        self._redis_factory = redis_factory

    @classmethod
    def key_for(cls, user_id: str) -> str:
        return f"{cls.KEY_PREFIX}{user_id}"

    @staticmethod
    def ttl_for(signal: Signal) -> int:
        if signal.is_contact_notification:
            return OFFLINE_CONTACT_SIGNAL_TTL_SEC
        return OFFLINE_CALL_SIGNAL_TTL_SEC

    async def enqueue(self, user_id: str, signal: Signal) -> int:
        """
        Append a signal to the tail of the user's queue.

        The queue expiry is reset to the signal's TTL in the same transaction.

        Returns:
            Queue length after the append
        """
        r = await self._redis_factory()
        key = self.key_for(user_id)
        ttl = self.ttl_for(signal)

        async with r.pipeline(transaction=True) as pipe:
            pipe.rpush(key, signal.model_dump_json(exclude_none=True))
            pipe.expire(key, ttl)
            length, _ = await pipe.execute()

        logger.info(f"[OfflineStore] Queued {signal.type} for {user_id} (ttl={ttl}s, size={length})")
        return length

    async def drain(self, user_id: str) -> List[Signal]:
        """Return all queued signals in insertion order and clear the queue."""
        r = await self._redis_factory()
        key = self.key_for(user_id)

        async with r.pipeline(transaction=True) as pipe:
            pipe.lrange(key, 0, -1)
            pipe.delete(key)
            raw_items, _ = await pipe.execute()

        signals = []
        for raw in raw_items or []:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            try:
                signals.append(Signal.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"[OfflineStore] Skipping malformed signal for {user_id}: {e}")

        if signals:
            logger.info(f"[OfflineStore] Drained {len(signals)} signal(s) for {user_id}")
        return signals

    async def pending_count(self, user_id: str) -> int:
        r = await self._redis_factory()
        return await r.llen(self.key_for(user_id))
