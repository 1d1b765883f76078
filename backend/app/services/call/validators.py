"""
Call Validators

Precondition checks for call initiation:
- Both parties exist
- Contact relationship (when gating is enabled)
- Neither party is busy
"""
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.services.protocols import ContactDirectoryProtocol
from app.services.user_service import user_service
from .exceptions import (
    CallValidationError,
    ContactNotAuthorizedError,
    UserBusyError,
    UserNotFoundError,
)


def validate_distinct_parties(caller_id: str, callee_id: str) -> None:
    if caller_id == callee_id:
        raise CallValidationError("cannot call yourself")


async def validate_parties_exist(
    db: AsyncSession,
    caller_id: str,
    callee_id: str
) -> Tuple[User, User]:
    """
    Load caller and callee.

    Raises:
        UserNotFoundError if either user is missing
    """
    caller = await user_service.get_by_id(db, caller_id)
    if not caller:
        raise UserNotFoundError("caller not found")

    callee = await user_service.get_by_id(db, callee_id)
    if not callee:
        raise UserNotFoundError("callee not found")

    return caller, callee


async def validate_contact_exists(
    contacts: ContactDirectoryProtocol,
    caller_id: str,
    callee_id: str
) -> None:
    """
    Raises:
        ContactNotAuthorizedError if the users are not mutual contacts
    """
    if not await contacts.is_contact(caller_id, callee_id):
        raise ContactNotAuthorizedError()


def validate_not_busy(caller: User, callee: User) -> None:
    """
    Raises:
        UserBusyError if either party is already in a call
    """
    if caller.is_busy:
        raise UserBusyError("caller is already in a call")
    if callee.is_busy:
        raise UserBusyError("user is busy")
