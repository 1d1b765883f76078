"""
Contact Service - Manage user contacts & contact requests

Encapsulates logic for:
- Sending/Accepting/Rejecting contact requests
- Removing contacts (both directions)
- Validating contact relationships for the call flow

Every relationship change notifies the other user through the signal hub;
those notifications are kept offline for a day if the user is disconnected.
"""
import logging
from datetime import datetime, UTC
from typing import Any, Dict, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.contact import Contact
from app.models.database import open_session
from app.models.user import User
from app.schemas.signal import Signal, SignalType
from app.services.connection import signal_hub, HubNotRunningError
from app.services.user_service import user_service

logger = logging.getLogger(__name__)


# === Exceptions ===

class ContactError(Exception):
    """Base exception for contact operations."""
    pass

class ContactNotFoundError(ContactError):
    pass

class UserNotFoundError(ContactError):
    pass

class SelfAddError(ContactError):
    pass

class ContactAlreadyExistsError(ContactError):
    pass

class RequestAlreadySentError(ContactError):
    pass

class RequestNotFoundError(ContactError):
    pass


class ContactService:
    """Service for managing contacts and contact requests."""

    def __init__(self, hub=signal_hub, session_factory=open_session):
        self.hub = hub
        self.session_factory = session_factory

    # === Call flow collaborator ===

    async def is_contact(self, user_id: str, contact_user_id: str) -> bool:
        """True when both directions exist and are accepted."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Contact.user_id).where(
                    Contact.status == 'accepted',
                    (
                        (Contact.user_id == user_id) & (Contact.contact_user_id == contact_user_id)
                    ) | (
                        (Contact.user_id == contact_user_id) & (Contact.contact_user_id == user_id)
                    ),
                )
            )
            owners = set(result.scalars().all())
        return owners == {user_id, contact_user_id}

    async def update_last_call_time(self, user_id: str, contact_user_id: str) -> None:
        """Stamp last_call_at on both directions. Rows that don't exist are ignored."""
        now = datetime.now(UTC).replace(tzinfo=None)
        async with self.session_factory() as db:
            await db.execute(
                update(Contact)
                .where(
                    (
                        (Contact.user_id == user_id) & (Contact.contact_user_id == contact_user_id)
                    ) | (
                        (Contact.user_id == contact_user_id) & (Contact.contact_user_id == user_id)
                    )
                )
                .values(last_call_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    # === Contact management ===

    async def get_user_contacts(self, db: AsyncSession, user_id: str) -> Dict[str, List[Any]]:
        """
        Get all contacts for a user, categorized.
        Returns: {
            "contacts": [Contact objects...],
            "pending_incoming": [Contact objects...],
            "pending_outgoing": [Contact objects...]
        }
        """
        result = await db.execute(
            select(Contact).where(
                Contact.user_id == user_id,
                Contact.status == 'accepted'
            ).order_by(Contact.added_at)
        )
        contacts = result.scalars().all()

        # People who added me
        inc_result = await db.execute(
            select(Contact).where(
                Contact.contact_user_id == user_id,
                Contact.status == 'pending'
            )
        )
        incoming_requests = inc_result.scalars().all()

        # People I added
        out_result = await db.execute(
            select(Contact).where(
                Contact.user_id == user_id,
                Contact.status == 'pending'
            )
        )
        outgoing_requests = out_result.scalars().all()

        return {
            "contacts": contacts,
            "pending_incoming": incoming_requests,
            "pending_outgoing": outgoing_requests
        }

    async def send_request(self, db: AsyncSession, requester: User, contact_user_id: str) -> Contact:
        """
        Send a contact request to a user.
        Raises specific exceptions for validation failures.
        """
        if contact_user_id == requester.id:
            raise SelfAddError("Cannot add yourself")

        contact_user = await user_service.get_by_id(db, contact_user_id)
        if not contact_user:
            raise UserNotFoundError(f"User {contact_user_id} not found")

        existing_forward = await self._get_link(db, requester.id, contact_user_id)
        existing_reverse = await self._get_link(db, contact_user_id, requester.id)

        if existing_forward:
            if existing_forward.status == 'accepted':
                raise ContactAlreadyExistsError("Already in contacts")
            raise RequestAlreadySentError("Request already sent")

        if existing_reverse:
            if existing_reverse.status == 'accepted':
                raise ContactAlreadyExistsError("User is already your contact")
            raise ContactAlreadyExistsError("They sent you a request! Please accept it.")

        contact = Contact(
            user_id=requester.id,
            contact_user_id=contact_user_id,
            status='pending'
        )
        db.add(contact)
        await db.commit()
        await db.refresh(contact)
        logger.info(f"[ContactService] {requester.id} requested contact with {contact_user_id}")

        await self._notify(Signal(
            type=SignalType.CONTACT_REQUEST_RECEIVED,
            from_id=requester.id,
            to_id=contact_user_id,
            data={
                "request_id": contact.id,
                "requester_id": requester.id,
                "requester_name": requester.display_name,
            },
        ))
        return contact

    async def accept_request(self, db: AsyncSession, request_id: str, current_user: User) -> Contact:
        """
        Accept a contact request; creates the reverse link.
        Returns the accepting user's own contact row.
        """
        result = await db.execute(
            select(Contact).where(
                Contact.id == request_id,
                Contact.contact_user_id == current_user.id,
                Contact.status == 'pending'
            )
        )
        incoming_request = result.scalar_one_or_none()
        if not incoming_request:
            raise RequestNotFoundError("Contact request not found")

        requester_id = incoming_request.user_id
        incoming_request.status = 'accepted'

        reverse = await self._get_link(db, current_user.id, requester_id)
        if not reverse:
            reverse = Contact(
                user_id=current_user.id,
                contact_user_id=requester_id,
                status='accepted'
            )
            db.add(reverse)
        else:
            reverse.status = 'accepted'

        await db.commit()
        await db.refresh(reverse)
        logger.info(f"[ContactService] {current_user.id} accepted request {request_id} from {requester_id}")

        await self._notify(Signal(
            type=SignalType.CONTACT_REQUEST_ACCEPTED,
            from_id=current_user.id,
            to_id=requester_id,
            data={
                "request_id": request_id,
                "contact_id": current_user.id,
                "contact_name": current_user.display_name,
            },
        ))
        return reverse

    async def reject_request(self, db: AsyncSession, request_id: str, current_user: User) -> None:
        """Reject (delete) a pending contact request."""
        result = await db.execute(
            select(Contact).where(
                Contact.id == request_id,
                Contact.contact_user_id == current_user.id,
                Contact.status == 'pending'
            )
        )
        request = result.scalar_one_or_none()
        if not request:
            raise RequestNotFoundError("Request not found")

        requester_id = request.user_id
        await db.delete(request)
        await db.commit()
        logger.info(f"[ContactService] {current_user.id} rejected request {request_id}")

        await self._notify(Signal(
            type=SignalType.CONTACT_REQUEST_REJECTED,
            from_id=current_user.id,
            to_id=requester_id,
            data={"request_id": request_id},
        ))

    async def remove_contact(self, db: AsyncSession, contact_id: str, current_user: User) -> None:
        """Remove a contact. Deletes both directions."""
        result = await db.execute(
            select(Contact).where(
                Contact.id == contact_id,
                Contact.user_id == current_user.id
            )
        )
        contact = result.scalar_one_or_none()
        if not contact:
            raise ContactNotFoundError("Contact not found")

        other_user_id = contact.contact_user_id
        await db.delete(contact)

        reverse_contact = await self._get_link(db, other_user_id, current_user.id)
        if reverse_contact:
            await db.delete(reverse_contact)

        await db.commit()
        logger.info(f"[ContactService] {current_user.id} removed contact {other_user_id}")

        await self._notify(Signal(
            type=SignalType.CONTACT_REMOVED,
            from_id=current_user.id,
            to_id=other_user_id,
            data={"user_id": current_user.id},
        ))

    # === Internals ===

    @staticmethod
    async def _get_link(db: AsyncSession, user_id: str, contact_user_id: str):
        result = await db.execute(
            select(Contact).where(
                Contact.user_id == user_id,
                Contact.contact_user_id == contact_user_id
            )
        )
        return result.scalar_one_or_none()

    async def _notify(self, signal: Signal) -> None:
        try:
            await self.hub.route(signal)
        except HubNotRunningError:
            logger.error(f"[ContactService] Signal hub down, {signal.type} for {signal.to_id} not routed")


# Singleton
contact_service = ContactService()
