"""
Protocol definitions for the collaborators of the call state machine.

CallService receives these capabilities at construction time instead of
importing concrete services, which keeps the call and contact modules free
of back-references to each other and lets tests pass in-memory fakes.

Usage:
    from app.services.protocols import ContactDirectoryProtocol

    async def can_call(contacts: ContactDirectoryProtocol, a: str, b: str) -> bool:
        return await contacts.is_contact(a, b)
"""

from typing import Protocol

from app.models.call import Call
from app.models.user import UserStatus


class ContactDirectoryProtocol(Protocol):
    """Contact relationships consulted and updated by the call flow."""

    async def is_contact(self, user_id: str, contact_user_id: str) -> bool:
        """
        Check whether the two users are mutually connected.

        Raises on storage failure; callers treat that as a collaborator error.
        """
        ...

    async def update_last_call_time(self, user_id: str, contact_user_id: str) -> None:
        """Record that the two users just finished a call. No-op for non-contacts."""
        ...


class PresenceProtocol(Protocol):
    """Best-effort per-user presence (last writer wins)."""

    async def set_status(self, user_id: str, status: UserStatus) -> None:
        ...


class PushNotifierProtocol(Protocol):
    """Out-of-band notification of an incoming call (e.g. mobile push)."""

    async def notify_incoming_call(self, call: Call) -> None:
        """Must not raise; delivery failures are the notifier's concern."""
        ...
