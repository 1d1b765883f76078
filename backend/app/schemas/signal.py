"""
Signal Schemas

Pydantic models for messages routed through the signal hub, both those
emitted by the call state machine / contacts service and the raw frames
clients send over the WebSocket.
"""

from typing import Any, Optional, FrozenSet

from pydantic import BaseModel, ConfigDict


class SignalType:
    """Known signal type strings. Unknown types are routed as-is."""

    # Call control (emitted by the server)
    RING = "ring"
    ANSWERED = "answered"
    REJECTED = "rejected"
    ENDED = "ended"
    MISSED = "missed"

    # Peer-to-peer passthrough (sent by clients)
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    HANGUP = "hangup"

    # Contact relationship notifications
    CONTACT_REQUEST_RECEIVED = "contact_request_received"
    CONTACT_REQUEST_ACCEPTED = "contact_request_accepted"
    CONTACT_REQUEST_REJECTED = "contact_request_rejected"
    CONTACT_REMOVED = "contact_removed"

    # Connection control (never routed)
    CONNECTED = "connected"
    PING = "ping"
    PONG = "pong"


CONTACT_SIGNAL_TYPES: FrozenSet[str] = frozenset({
    SignalType.CONTACT_REQUEST_RECEIVED,
    SignalType.CONTACT_REQUEST_ACCEPTED,
    SignalType.CONTACT_REQUEST_REJECTED,
    SignalType.CONTACT_REMOVED,
})


class Signal(BaseModel):
    """A routed message between two users."""

    model_config = ConfigDict(extra="ignore")

    type: str
    from_id: Optional[str] = None
    to_id: str
    room_name: Optional[str] = None
    call_type: Optional[str] = None
    call_id: Optional[str] = None
    caller_name: Optional[str] = None
    callee_name: Optional[str] = None
    data: Optional[Any] = None

    @property
    def is_contact_notification(self) -> bool:
        return self.type in CONTACT_SIGNAL_TYPES

    def to_wire(self) -> dict:
        """JSON-ready dict with unset optional fields dropped."""
        return self.model_dump(exclude_none=True)
