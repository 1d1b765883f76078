"""
Schemas Package

Pydantic models for API requests/responses and routed signals.
"""

from app.schemas.signal import (
    Signal,
    SignalType,
    CONTACT_SIGNAL_TYPES,
)

__all__ = [
    "Signal",
    "SignalType",
    "CONTACT_SIGNAL_TYPES",
]
