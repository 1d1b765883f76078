"""
Connection Models

Wrapper around a user's live WebSocket signaling channel.
"""
from datetime import datetime, UTC
from typing import Dict, Any
import logging

from fastapi import WebSocket

from app.schemas.signal import Signal

logger = logging.getLogger(__name__)


class SignalConnection:
    """Represents the single live WebSocket channel of one user."""

    def __init__(self, websocket: WebSocket, user_id: str):
        self.websocket = websocket
        self.user_id = user_id
        self.connected_at = datetime.now(UTC)

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.user_id}: {e}")
            return False

    async def send_signal(self, signal: Signal) -> bool:
        return await self.send_json(signal.to_wire())

    async def close(self, code: int = 1000) -> None:
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            # Already closed by the peer
            logger.debug(f"Close on {self.user_id} ignored: {e}")

    def __repr__(self):
        return f"<SignalConnection {self.user_id}>"
