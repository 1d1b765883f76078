"""
Contacts API - Manage user contacts

Endpoints for:
- Listing contacts and pending requests
- Sending/accepting/rejecting contact requests
- Removing contacts
- Checking whether a user is a mutual contact
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database import get_db
from app.models.user import User
from app.models.contact import Contact
from app.api.auth import get_current_user
from app.services.user_service import user_service
from app.services.contact_service import (
    contact_service,
    ContactNotFoundError,
    UserNotFoundError,
    SelfAddError,
    ContactAlreadyExistsError,
    RequestAlreadySentError,
    RequestNotFoundError
)
from app.schemas.contact import (
    ContactCheckResponse,
    ContactResponse,
    ContactRequestBody,
    ContactRequestCreated,
    ContactsListResponse,
    ContactUserInfo,
)

router = APIRouter()


async def _format_contact(db: AsyncSession, contact: Contact, other_user_id: str) -> ContactResponse:
    user: Optional[User] = await user_service.get_by_id(db, other_user_id)
    return ContactResponse(
        id=contact.id,
        user_id=contact.user_id,
        contact_user_id=contact.contact_user_id,
        status=contact.status,
        user=ContactUserInfo(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            status=user.status,
            avatar_url=user.avatar_url,
        ) if user else None,
        last_call_at=contact.last_call_at.isoformat() if contact.last_call_at else None,
        added_at=contact.added_at.isoformat() if contact.added_at else None,
    )


@router.get("/contacts", response_model=ContactsListResponse)
async def list_contacts(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List all contacts and pending requests."""
    categorized = await contact_service.get_user_contacts(db, current_user.id)

    return ContactsListResponse(
        contacts=[await _format_contact(db, c, c.contact_user_id) for c in categorized["contacts"]],
        pending_incoming=[await _format_contact(db, c, c.user_id) for c in categorized["pending_incoming"]],
        pending_outgoing=[await _format_contact(db, c, c.contact_user_id) for c in categorized["pending_outgoing"]],
    )


@router.get("/contacts/requests", response_model=ContactsListResponse)
async def list_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Pending requests only (incoming and outgoing)."""
    categorized = await contact_service.get_user_contacts(db, current_user.id)
    return ContactsListResponse(
        contacts=[],
        pending_incoming=[await _format_contact(db, c, c.user_id) for c in categorized["pending_incoming"]],
        pending_outgoing=[await _format_contact(db, c, c.contact_user_id) for c in categorized["pending_outgoing"]],
    )


@router.post("/contacts/request", response_model=ContactRequestCreated, status_code=201)
async def send_request(
    req: ContactRequestBody,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        contact = await contact_service.send_request(db, current_user, req.contact_user_id)
    except SelfAddError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ContactAlreadyExistsError, RequestAlreadySentError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ContactRequestCreated(request_id=contact.id, message="Contact request sent")


@router.post("/contacts/accept/{request_id}", response_model=ContactResponse)
async def accept_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        contact = await contact_service.accept_request(db, request_id, current_user)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await _format_contact(db, contact, contact.contact_user_id)


@router.post("/contacts/reject/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        await contact_service.reject_request(db, request_id, current_user)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/contacts/check/{user_id}", response_model=ContactCheckResponse)
async def check_contact(
    user_id: str,
    current_user: User = Depends(get_current_user)
):
    return ContactCheckResponse(
        user_id=user_id,
        is_contact=await contact_service.is_contact(current_user.id, user_id),
    )


@router.delete("/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_contact(
    contact_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        await contact_service.remove_contact(db, contact_id, current_user)
    except ContactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
