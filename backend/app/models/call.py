"""
Call Model - One-to-one Call Attempts

Tracks each call between a caller and a callee: the media room it is bound
to, its lifecycle status and timing. The database row is the source of truth
for the call state machine; the Redis projection is disposable.

Status graph:
    initiated -> ringing -> answered -> ended
    initiated|ringing -> rejected | missed | ended
Terminal states (ended, rejected, missed) never change again.
"""
import enum
import uuid
from datetime import datetime
from typing import FrozenSet

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey

from .database import Base


class CallStatus(str, enum.Enum):
    INITIATED = "initiated"
    RINGING = "ringing"
    ANSWERED = "answered"
    ENDED = "ended"
    REJECTED = "rejected"
    MISSED = "missed"


class CallType(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"


# Statuses from which the callee may still answer/reject or the timer may fire
UNRESOLVED_STATUSES: FrozenSet[CallStatus] = frozenset({CallStatus.INITIATED, CallStatus.RINGING})

TERMINAL_STATUSES: FrozenSet[CallStatus] = frozenset(
    {CallStatus.ENDED, CallStatus.REJECTED, CallStatus.MISSED}
)

# target status -> statuses it may be entered from
ALLOWED_TRANSITIONS = {
    CallStatus.RINGING: frozenset({CallStatus.INITIATED}),
    CallStatus.ANSWERED: UNRESOLVED_STATUSES,
    CallStatus.REJECTED: UNRESOLVED_STATUSES,
    CallStatus.MISSED: UNRESOLVED_STATUSES,
    CallStatus.ENDED: frozenset({CallStatus.INITIATED, CallStatus.RINGING, CallStatus.ANSWERED}),
}


class Call(Base):
    """Call record"""
    __tablename__ = "calls"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Media room bound to this call
    room_name = Column(String(64), unique=True, nullable=False, index=True)

    # Parties (immutable once created)
    caller_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    callee_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    # Display names captured at creation time
    caller_name = Column(String(255), nullable=False, default='')
    callee_name = Column(String(255), nullable=False, default='')

    call_type = Column(String(10), nullable=False, default=CallType.AUDIO.value)
    status = Column(String(20), nullable=False, default=CallStatus.INITIATED.value, index=True)

    # Timing
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    answered_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_terminal(self) -> bool:
        return CallStatus(self.status) in TERMINAL_STATUSES

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.caller_id, self.callee_id)

    def other_party(self, user_id: str) -> str:
        return self.callee_id if user_id == self.caller_id else self.caller_id

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
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration": self.duration or 0,
        }

    def __repr__(self):
        return f"<Call {self.id} {self.status}>"
