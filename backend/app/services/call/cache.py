"""
Call Session Cache

Redis projection of in-flight calls plus the pre-minted callee credential.

Keys:
    call:{call_id}        hash {room_name, caller_id, callee_id, caller_name,
                           callee_name, call_type, status, started_at,
                           answered_at, ended_at, duration}, TTL 5 min
    call:token:{call_id}  callee media credential, TTL 5 min

The projection is advisory. A miss means "ask the database"; it is never
consulted when deciding whether a transition is allowed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis

from app.config.constants import CALL_CACHE_TTL_SEC, CALLEE_TOKEN_TTL_SEC
from app.config.redis import get_redis
from app.models.call import Call

logger = logging.getLogger(__name__)

_TIME_FIELDS = ("started_at", "answered_at", "ended_at")


def _encode_time(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _decode_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class CallSnapshot:
    """Cached subset of a Call row."""
    id: str
    room_name: str
    caller_id: str
    callee_id: str
    caller_name: str
    callee_name: str
    call_type: str
    status: str
    started_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration: int = 0

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.caller_id, self.callee_id)

    def to_dict(self):
        return {
            "id": self.id,
            "room_name": self.room_name,
            "caller_id": self.caller_id,
            "callee_id": self.callee_id,
            "caller_name": self.caller_name,
            "callee_name": self.callee_name,
            "call_type": self.call_type,
            "status": self.status,
            "started_at": self.started_at,
            "answered_at": self.answered_at,
            "ended_at": self.ended_at,
            "duration": self.duration,
        }


class CallSessionCache:
    """Read-through cache for call metadata and the callee credential."""

    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[redis.Redis]] = get_redis,
        ttl: int = CALL_CACHE_TTL_SEC,
        token_ttl: int = CALLEE_TOKEN_TTL_SEC,
    ):
        self._redis_factory = redis_factory
        self._ttl = ttl
        self._token_ttl = token_ttl

    @staticmethod
    def call_key(call_id: str) -> str:
        return f"call:{call_id}"

    @staticmethod
    def token_key(call_id: str) -> str:
        return f"call:token:{call_id}"

    # === Call projection ===

    async def store(self, call: Call) -> None:
        r = await self._redis_factory()
        key = self.call_key(call.id)
        async with r.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping={
                "room_name": call.room_name,
                "caller_id": call.caller_id,
                "callee_id": call.callee_id,
                "caller_name": call.caller_name or "",
                "callee_name": call.callee_name or "",
                "call_type": call.call_type,
                "status": call.status,
                "started_at": _encode_time(call.started_at),
                "answered_at": _encode_time(call.answered_at),
                "ended_at": _encode_time(call.ended_at),
                "duration": call.duration or 0,
            })
            pipe.expire(key, self._ttl)
            await pipe.execute()

    async def get(self, call_id: str) -> Optional[CallSnapshot]:
        r = await self._redis_factory()
        data = await r.hgetall(self.call_key(call_id))
        if not data:
            return None
        data = {
            (k.decode() if isinstance(k, bytes) else k): (v.decode() if isinstance(v, bytes) else v)
            for k, v in data.items()
        }
        try:
            for field_name in _TIME_FIELDS:
                data[field_name] = _decode_time(data.get(field_name))
            data["duration"] = int(data.get("duration") or 0)
            return CallSnapshot(id=call_id, **data)
        except (TypeError, ValueError) as e:
            logger.warning(f"[CallCache] Ignoring malformed entry for {call_id}: {e}")
            return None

    async def clear(self, call_id: str) -> None:
        r = await self._redis_factory()
        await r.delete(self.call_key(call_id))

    # === Callee credential ===

    async def store_callee_token(self, call_id: str, token: str) -> None:
        r = await self._redis_factory()
        await r.set(self.token_key(call_id), token, ex=self._token_ttl)

    async def get_callee_token(self, call_id: str) -> Optional[str]:
        r = await self._redis_factory()
        token = await r.get(self.token_key(call_id))
        if isinstance(token, bytes):
            token = token.decode()
        return token

    async def discard_callee_token(self, call_id: str) -> None:
        r = await self._redis_factory()
        await r.delete(self.token_key(call_id))
