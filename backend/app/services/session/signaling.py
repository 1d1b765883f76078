"""
Signaling Session

One instance per accepted /ws/call socket. Owns the socket for its lifetime:
authenticates, registers with the signal hub, relays inbound frames and
unregisters on the way out.
"""
import json
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.models.database import open_session
from app.schemas.signal import Signal, SignalType
from app.services.auth_service import decode_token
from app.services.connection import signal_hub, SignalConnection, SignalHub, HubNotRunningError
from app.services.status_service import status_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


class SignalingSession:
    """
    Serves one user's signaling WebSocket.
    Handles:
    - Authentication (token subject must match the requested user id)
    - Registration with the signal hub (offline queue drained first)
    - Inbound frame loop (ping/pong, relay to the addressed peer)
    - Cleanup on disconnect
    """

    def __init__(
        self,
        websocket: WebSocket,
        user_id: Optional[str],
        token: Optional[str],
        hub: SignalHub = signal_hub,
        presence=status_service,
    ):
        self.websocket = websocket
        self.user_id = user_id
        self.token = token
        self.hub = hub
        self.presence = presence
        self.connection: Optional[SignalConnection] = None

    async def run(self) -> None:
        await self.websocket.accept()

        reason = await self._authenticate()
        if reason:
            logger.warning(f"[WebSocket] Rejected connection for user_id={self.user_id}: {reason}")
            await self.websocket.close(code=POLICY_VIOLATION, reason=reason)
            return

        self.connection = SignalConnection(self.websocket, self.user_id)
        try:
            delivered = await self.hub.register(self.user_id, self.connection)
        except HubNotRunningError:
            logger.error("[WebSocket] Signal hub not running, closing connection")
            await self.connection.close(code=1011)
            return

        await self.presence.mark_online(self.user_id)
        await self.connection.send_json({"type": SignalType.CONNECTED, "user_id": self.user_id})
        logger.info(f"[WebSocket] {self.user_id} connected ({delivered} offline signal(s) delivered)")

        try:
            await self._message_loop()
        finally:
            await self._cleanup()

    async def _authenticate(self) -> Optional[str]:
        """Returns a rejection reason, or None when the caller may register."""
        if not self.user_id:
            return "Missing user_id"
        if not self.token:
            return "Missing token"

        payload = decode_token(self.token)
        if not payload or not payload.get("sub"):
            return "Invalid token"
        if payload["sub"] != self.user_id:
            return "Token does not match user_id"

        async with open_session() as db:
            user = await user_service.get_by_id(db, self.user_id)
        if not user or not user.is_active:
            return "User not found"
        return None

    async def _message_loop(self) -> None:
        while True:
            try:
                raw = await self.websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"[WebSocket] Invalid JSON from {self.user_id}")
                continue
            if not isinstance(payload, dict):
                continue

            if payload.get("type") == SignalType.PING:
                await self.connection.send_json({"type": SignalType.PONG})
                continue

            # Sender identity always comes from the connection
            payload["from_id"] = self.user_id
            try:
                signal = Signal.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"[WebSocket] Dropping malformed signal from {self.user_id}: {e.error_count()} error(s)")
                continue

            try:
                await self.hub.route(signal)
            except HubNotRunningError:
                logger.error(f"[WebSocket] Signal hub down, dropping {signal.type} from {self.user_id}")
                break

    async def _cleanup(self) -> None:
        try:
            removed = await self.hub.unregister(self.user_id, self.connection)
        except HubNotRunningError:
            removed = True

        if not removed and self.hub.is_connected(self.user_id):
            # A newer socket for this user took over; presence is its business now
            logger.info(f"[WebSocket] {self.user_id} stale connection closed, newer one still live")
            return
        await self.presence.mark_offline(self.user_id)
        logger.info(f"[WebSocket] {self.user_id} disconnected")
