"""
Signal Hub

Single coordination point for signal delivery. The hub is an actor: one
asyncio task owns the ConnectionRegistry and processes register / unregister /
route operations from an ordered queue, one at a time, in arrival order.

Guarantees that follow from the single consumer:
- a signal routed after a register() call observes that registration
- once unregister() is processed the connection receives nothing further
- signals to one recipient are written in submission order

Delivery failures never escape the hub: a failed write evicts the
connection and the signal goes to the offline store instead.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from app.config.constants import SIGNAL_SEND_TIMEOUT_SEC
from app.schemas.signal import Signal
from app.services.metrics import signals_routed, active_connections_gauge, signal_type_label

from .models import SignalConnection
from .offline_store import OfflineSignalStore
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class DeliveryOutcome(str, enum.Enum):
    DELIVERED = "delivered"
    QUEUED = "queued"
    FAILED = "failed"


class HubNotRunningError(RuntimeError):
    """Raised when an operation is submitted to a stopped hub."""


@dataclass
class _Operation:
    kind: str
    user_id: Optional[str] = None
    connection: Optional[SignalConnection] = None
    signal: Optional[Signal] = None
    done: asyncio.Future = field(default=None, repr=False)


_REGISTER = "register"
_UNREGISTER = "unregister"
_ROUTE = "route"
_STOP = "stop"


class SignalHub:
    """Serialized owner of the user -> connection map."""

    def __init__(
        self,
        offline_store: OfflineSignalStore,
        registry: Optional[ConnectionRegistry] = None,
        send_timeout: float = SIGNAL_SEND_TIMEOUT_SEC,
    ):
        self._offline_store = offline_store
        self._registry = registry or ConnectionRegistry()
        self._send_timeout = send_timeout
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    # === Lifecycle ===

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the processing loop on the running event loop."""
        if self.is_running:
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._run(), name="signal-hub")
        logger.info("[SignalHub] Started")

    async def stop(self) -> None:
        """Stop the loop and close every registered connection."""
        if not self.is_running:
            return
        stop = _Operation(kind=_STOP, done=asyncio.get_running_loop().create_future())
        await self._queue.put(stop)
        await self._task
        self._task = None

        for connection in self._registry.clear():
            await self._close(connection)
        active_connections_gauge.set(0)
        logger.info("[SignalHub] Stopped")

    # === Public operations ===

    async def register(self, user_id: str, connection: SignalConnection) -> int:
        """
        Make `connection` the live channel for `user_id` and flush the user's
        offline queue to it before any later signal.

        Returns:
            Number of offline signals delivered on registration
        """
        return await self._submit(_Operation(kind=_REGISTER, user_id=user_id, connection=connection))

    async def unregister(self, user_id: str, connection: Optional[SignalConnection] = None) -> bool:
        """Remove the user's live channel (idempotent)."""
        return await self._submit(_Operation(kind=_UNREGISTER, user_id=user_id, connection=connection))

    async def route(self, signal: Signal) -> DeliveryOutcome:
        """Deliver a signal live, or hand it to the offline store."""
        return await self._submit(_Operation(kind=_ROUTE, user_id=signal.to_id, signal=signal))

    # === Read-only views ===

    def is_connected(self, user_id: str) -> bool:
        return self._registry.is_connected(user_id)

    def connected_user_ids(self) -> List[str]:
        return self._registry.user_ids()

    @property
    def connection_count(self) -> int:
        return len(self._registry)

    # === Actor internals ===

    async def _submit(self, op: _Operation) -> Any:
        if not self.is_running:
            raise HubNotRunningError("Signal hub is not running")
        op.done = asyncio.get_running_loop().create_future()
        await self._queue.put(op)
        return await op.done

    async def _run(self) -> None:
        while True:
            op = await self._queue.get()
            if op.kind == _STOP:
                op.done.set_result(None)
                break
            try:
                result = await self._dispatch(op)
            except Exception as e:
                logger.error(f"[SignalHub] {op.kind} for {op.user_id} failed: {e}")
                if not op.done.done():
                    op.done.set_exception(e)
            else:
                if not op.done.done():
                    op.done.set_result(result)

        # Anything submitted after stop() never gets processed
        while not self._queue.empty():
            pending = self._queue.get_nowait()
            if pending.done is not None and not pending.done.done():
                pending.done.set_exception(HubNotRunningError("Signal hub stopped"))

    async def _dispatch(self, op: _Operation) -> Any:
        if op.kind == _REGISTER:
            return await self._handle_register(op.user_id, op.connection)
        if op.kind == _UNREGISTER:
            return self._handle_unregister(op.user_id, op.connection)
        if op.kind == _ROUTE:
            return await self._handle_route(op.signal)
        raise ValueError(f"Unknown hub operation: {op.kind}")

    async def _handle_register(self, user_id: str, connection: SignalConnection) -> int:
        previous = self._registry.register(user_id, connection)
        active_connections_gauge.set(len(self._registry))
        if previous is not None and previous is not connection:
            logger.info(f"[SignalHub] Client {user_id} re-registered, previous connection replaced")
        else:
            logger.info(f"[SignalHub] Client {user_id} connected")

        try:
            pending = await self._offline_store.drain(user_id)
        except Exception as e:
            logger.error(f"[SignalHub] Could not drain offline signals for {user_id}: {e}")
            return 0

        for index, signal in enumerate(pending):
            if not await self._send(connection, signal):
                # Connection died mid-flush: put the rest back
                self._evict(user_id, connection)
                for undelivered in pending[index:]:
                    await self._queue_offline(undelivered)
                return index
            signals_routed.labels(signal_type=signal_type_label(signal.type), outcome=DeliveryOutcome.DELIVERED.value).inc()
        return len(pending)

    def _handle_unregister(self, user_id: str, connection: Optional[SignalConnection]) -> bool:
        removed = self._registry.unregister(user_id, connection)
        active_connections_gauge.set(len(self._registry))
        if removed:
            logger.info(f"[SignalHub] Client {user_id} disconnected")
        return removed

    async def _handle_route(self, signal: Signal) -> DeliveryOutcome:
        connection = self._registry.get(signal.to_id)
        if connection is not None:
            if await self._send(connection, signal):
                logger.info(f"[SignalHub] Sent {signal.type} signal to {signal.to_id}")
                signals_routed.labels(signal_type=signal_type_label(signal.type), outcome=DeliveryOutcome.DELIVERED.value).inc()
                return DeliveryOutcome.DELIVERED
            logger.warning(f"[SignalHub] Write to {signal.to_id} failed, queuing {signal.type} offline")
            self._evict(signal.to_id, connection)
            await self._close(connection)

        return await self._queue_offline(signal)

    async def _queue_offline(self, signal: Signal) -> DeliveryOutcome:
        try:
            await self._offline_store.enqueue(signal.to_id, signal)
        except Exception as e:
            logger.error(f"[SignalHub] Could not queue {signal.type} for {signal.to_id}: {e}")
            signals_routed.labels(signal_type=signal_type_label(signal.type), outcome=DeliveryOutcome.FAILED.value).inc()
            return DeliveryOutcome.FAILED
        signals_routed.labels(signal_type=signal_type_label(signal.type), outcome=DeliveryOutcome.QUEUED.value).inc()
        return DeliveryOutcome.QUEUED

    async def _send(self, connection: SignalConnection, signal: Signal) -> bool:
        try:
            return await asyncio.wait_for(connection.send_signal(signal), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[SignalHub] Write to {connection.user_id} timed out")
            return False

    async def _close(self, connection: SignalConnection) -> None:
        # A stalled peer can block the close frame as long as the write
        try:
            await asyncio.wait_for(connection.close(), timeout=self._send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[SignalHub] Close of {connection.user_id} timed out, abandoning connection")

    def _evict(self, user_id: str, connection: SignalConnection) -> None:
        self._registry.unregister(user_id, connection)
        active_connections_gauge.set(len(self._registry))
