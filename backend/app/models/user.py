"""
User Model - Accounts and Presence

Key Fields:
- `username`: Unique login name, also the display name captured on calls
- `status`: Coarse presence (online/offline/busy/calling). Best-effort UI
  state, written last-writer-wins by the call flow and the WebSocket layer.
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Boolean

from .database import Base


class UserStatus(str, enum.Enum):
    """Presence values stored on the user record."""
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"
    CALLING = "calling"


class User(Base):
    """User model for authentication and presence"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Authentication / profile
    username = Column(String(50), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Presence
    status = Column(String(20), nullable=False, default=UserStatus.OFFLINE.value, index=True)
    last_seen = Column(DateTime, default=datetime.utcnow, nullable=True)

    # Account status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @property
    def is_busy(self) -> bool:
        return self.status == UserStatus.BUSY.value

    def to_public_dict(self):
        """Convert to public dictionary (no sensitive info)"""
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "status": self.status,
            "avatar_url": self.avatar_url,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }

    def __repr__(self):
        return f"<User {self.username}>"
