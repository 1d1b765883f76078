"""
Database Models Package

This module exports all SQLAlchemy models for the call signaling backend.

Tables:
1. users - Accounts and presence
2. contacts - Contact list management (gates call initiation)
3. calls - One-to-one call records driven by the call state machine
"""

from .database import (
    engine,
    AsyncSessionLocal,
    Base,
    init_db,
    reset_db,
    get_db,
    open_session,
)

from .user import User, UserStatus
from .contact import Contact
from .call import (
    Call,
    CallStatus,
    CallType,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    UNRESOLVED_STATUSES,
)

__all__ = [
    # Database utilities
    "engine",
    "AsyncSessionLocal",
    "Base",
    "init_db",
    "reset_db",
    "get_db",
    "open_session",

    # Models
    "User",
    "UserStatus",
    "Contact",
    "Call",
    "CallStatus",
    "CallType",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "UNRESOLVED_STATUSES",
]
