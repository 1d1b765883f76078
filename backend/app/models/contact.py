"""
Contact Model - Contact List Management

Controls who each user can call (authorization layer). An accepted
relationship is stored as two rows, one per direction.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
import uuid

from .database import Base


class Contact(Base):
    """Contact relationship between users"""
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # User who owns this contact entry
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    # The user being added as a contact
    contact_user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    # 'pending' (request sent, not answered) or 'accepted'
    status = Column(String(20), default='pending', nullable=False)

    # Last completed call between the two users
    last_call_at = Column(DateTime, nullable=True)

    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'contact_user_id', name='uq_user_contact'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "contact_user_id": self.contact_user_id,
            "status": self.status,
            "last_call_at": self.last_call_at.isoformat() if self.last_call_at else None,
            "added_at": self.added_at.isoformat() if self.added_at else None,
        }
