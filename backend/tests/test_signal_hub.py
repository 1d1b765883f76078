import asyncio

import pytest

from app.schemas.signal import Signal, SignalType
from app.services.connection import (
    DeliveryOutcome,
    HubNotRunningError,
    OfflineSignalStore,
    SignalHub,
)
from tests.helpers import FakeConnection


def ring(to_id: str, from_id: str = "caller", call_id: str = "c1") -> Signal:
    return Signal(type=SignalType.RING, from_id=from_id, to_id=to_id, call_id=call_id)


async def test_route_to_connected_user_delivers_once(hub):
    conn = FakeConnection("bob")
    await hub.register("bob", conn)

    outcome = await hub.route(ring("bob"))

    assert outcome == DeliveryOutcome.DELIVERED
    assert conn.types == ["ring"]
    assert await OfflineSignalStore().pending_count("bob") == 0


async def test_route_to_absent_user_queues_offline(hub):
    outcome = await hub.route(ring("bob"))

    assert outcome == DeliveryOutcome.QUEUED
    assert await OfflineSignalStore().pending_count("bob") == 1


async def test_signals_to_one_recipient_keep_submission_order(hub):
    conn = FakeConnection("bob")
    await hub.register("bob", conn)

    types = [SignalType.OFFER, SignalType.ICE_CANDIDATE, SignalType.ANSWER, SignalType.HANGUP]
    await asyncio.gather(*[
        hub.route(Signal(type=t, from_id="alice", to_id="bob", data={"seq": i}))
        for i, t in enumerate(types)
    ])

    assert [frame["data"]["seq"] for frame in conn.sent] == [0, 1, 2, 3]


async def test_register_flushes_offline_queue_before_later_signals(hub):
    await hub.route(Signal(type=SignalType.RING, from_id="alice", to_id="bob", call_id="c1"))
    await hub.route(Signal(type=SignalType.ENDED, from_id="alice", to_id="bob", call_id="c1"))

    conn = FakeConnection("bob")
    delivered = await hub.register("bob", conn)
    await hub.route(Signal(type=SignalType.OFFER, from_id="alice", to_id="bob"))

    assert delivered == 2
    assert conn.types == ["ring", "ended", "offer"]
    assert await OfflineSignalStore().pending_count("bob") == 0


async def test_failed_write_evicts_and_queues(hub):
    conn = FakeConnection("bob", fail=True)
    await hub.register("bob", conn)

    outcome = await hub.route(ring("bob"))

    assert outcome == DeliveryOutcome.QUEUED
    assert not hub.is_connected("bob")
    assert conn.closed
    pending = await OfflineSignalStore().drain("bob")
    assert [s.type for s in pending] == ["ring"]


async def test_failed_write_while_flushing_requeues_remaining(hub):
    for call_id in ("c1", "c2"):
        await hub.route(ring("bob", call_id=call_id))

    delivered = await hub.register("bob", FakeConnection("bob", fail=True))

    assert delivered == 0
    assert not hub.is_connected("bob")
    pending = await OfflineSignalStore().drain("bob")
    assert [s.call_id for s in pending] == ["c1", "c2"]


async def test_last_registration_wins(hub):
    first = FakeConnection("bob")
    second = FakeConnection("bob")
    await hub.register("bob", first)
    await hub.register("bob", second)

    await hub.route(ring("bob"))

    assert first.sent == []
    assert second.types == ["ring"]
    assert hub.connection_count == 1


async def test_stale_unregister_keeps_newer_connection(hub):
    old = FakeConnection("bob")
    new = FakeConnection("bob")
    await hub.register("bob", old)
    await hub.register("bob", new)

    removed = await hub.unregister("bob", old)

    assert removed is False
    assert hub.is_connected("bob")


async def test_nothing_delivered_after_unregister(hub):
    conn = FakeConnection("bob")
    await hub.register("bob", conn)
    await hub.unregister("bob", conn)

    outcome = await hub.route(ring("bob"))

    assert outcome == DeliveryOutcome.QUEUED
    assert conn.sent == []


async def test_unregister_is_idempotent(hub):
    assert await hub.unregister("nobody") is False


async def test_offline_store_failure_reports_failed(hub, monkeypatch):
    async def broken_enqueue(user_id, signal):
        raise ConnectionError("redis down")

    monkeypatch.setattr(hub._offline_store, "enqueue", broken_enqueue)

    assert await hub.route(ring("bob")) == DeliveryOutcome.FAILED
    # The hub keeps serving after the failure
    conn = FakeConnection("carol")
    await hub.register("carol", conn)
    assert await hub.route(ring("carol")) == DeliveryOutcome.DELIVERED


async def test_slow_write_times_out_and_demotes():
    class StuckConnection(FakeConnection):
        async def send_json(self, data):
            await asyncio.sleep(10)
            return True

    hub = SignalHub(offline_store=OfflineSignalStore(), send_timeout=0.05)
    hub.start()
    try:
        await hub.register("bob", StuckConnection("bob"))
        outcome = await hub.route(ring("bob"))
    finally:
        await hub.stop()

    assert outcome == DeliveryOutcome.QUEUED
    assert await OfflineSignalStore().pending_count("bob") == 1


async def test_stalled_close_does_not_block_the_hub():
    class StalledConnection(FakeConnection):
        async def send_json(self, data):
            await asyncio.sleep(10)
            return True

        async def close(self, code: int = 1000):
            await asyncio.sleep(10)

    hub = SignalHub(offline_store=OfflineSignalStore(), send_timeout=0.05)
    hub.start()
    try:
        await hub.register("bob", StalledConnection("bob"))
        outcome = await asyncio.wait_for(hub.route(ring("bob")), timeout=2)

        carol = FakeConnection("carol")
        await asyncio.wait_for(hub.register("carol", carol), timeout=2)
        assert await asyncio.wait_for(hub.route(ring("carol")), timeout=2) == DeliveryOutcome.DELIVERED
    finally:
        await hub.stop()

    assert outcome == DeliveryOutcome.QUEUED
    assert not hub.is_connected("bob")
    assert carol.types == ["ring"]


async def test_route_on_stopped_hub_raises():
    hub = SignalHub(offline_store=OfflineSignalStore())

    with pytest.raises(HubNotRunningError):
        await hub.route(ring("bob"))


async def test_stop_closes_registered_connections():
    hub = SignalHub(offline_store=OfflineSignalStore())
    hub.start()
    conn = FakeConnection("bob")
    await hub.register("bob", conn)

    await hub.stop()

    assert conn.closed
    assert hub.connection_count == 0
    assert not hub.is_running
