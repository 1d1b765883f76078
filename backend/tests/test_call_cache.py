from datetime import datetime

from app.config.constants import CALL_CACHE_TTL_SEC, CALLEE_TOKEN_TTL_SEC
from app.models.call import Call, CallStatus
from app.services.call import CallSessionCache


def sample_call(status: CallStatus = CallStatus.RINGING) -> Call:
    return Call(
        id="7d0c1d9e-2f4a-4a57-9d0b-1f2b3c4d5e6f",
        room_name="room_0123456789abcdef0123456789abcdef",
        caller_id="caller-1",
        callee_id="callee-1",
        caller_name="alice",
        callee_name="bob",
        call_type="video",
        status=status.value,
    )


async def test_store_and_get_round_trip_with_ttl(fake_redis):
    cache = CallSessionCache()
    call = sample_call()

    await cache.store(call)
    snapshot = await cache.get(call.id)

    assert snapshot.to_dict() == {
        "id": call.id,
        "room_name": call.room_name,
        "caller_id": "caller-1",
        "callee_id": "callee-1",
        "caller_name": "alice",
        "callee_name": "bob",
        "call_type": "video",
        "status": "ringing",
        "started_at": None,
        "answered_at": None,
        "ended_at": None,
        "duration": 0,
    }
    ttl = await fake_redis.ttl(cache.call_key(call.id))
    assert 0 < ttl <= CALL_CACHE_TTL_SEC


async def test_store_overwrites_status():
    cache = CallSessionCache()
    await cache.store(sample_call(CallStatus.RINGING))
    await cache.store(sample_call(CallStatus.ANSWERED))

    snapshot = await cache.get(sample_call().id)

    assert snapshot.status == "answered"


async def test_ended_call_keeps_timestamps_and_duration():
    cache = CallSessionCache()
    call = sample_call(CallStatus.ENDED)
    call.started_at = datetime(2024, 1, 1, 12, 0, 0)
    call.answered_at = datetime(2024, 1, 1, 12, 0, 10)
    call.ended_at = datetime(2024, 1, 1, 12, 0, 40)
    call.duration = 30

    await cache.store(call)
    snapshot = await cache.get(call.id)

    assert snapshot.started_at == call.started_at
    assert snapshot.answered_at == call.answered_at
    assert snapshot.ended_at == call.ended_at
    assert snapshot.duration == 30


async def test_miss_returns_none():
    assert await CallSessionCache().get("missing") is None


async def test_malformed_entry_is_a_miss(fake_redis):
    cache = CallSessionCache()
    await fake_redis.hset(cache.call_key("c1"), mapping={"status": "ringing", "unexpected": "x"})

    assert await cache.get("c1") is None


async def test_callee_token_lifecycle(fake_redis):
    cache = CallSessionCache()

    await cache.store_callee_token("c1", "token-value")
    ttl = await fake_redis.ttl(cache.token_key("c1"))
    assert 0 < ttl <= CALLEE_TOKEN_TTL_SEC
    assert await cache.get_callee_token("c1") == "token-value"

    await cache.discard_callee_token("c1")
    assert await cache.get_callee_token("c1") is None


async def test_snapshot_party_check():
    cache = CallSessionCache()
    await cache.store(sample_call())

    snapshot = await cache.get(sample_call().id)

    assert snapshot.is_party("caller-1")
    assert snapshot.is_party("callee-1")
    assert not snapshot.is_party("someone-else")
