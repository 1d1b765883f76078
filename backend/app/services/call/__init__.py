"""
Call Service Module

Re-exports the call state machine, its collaborators and exceptions.
"""
from .service import CallService
from .cache import CallSessionCache, CallSnapshot
from .media import MediaTokenService, generate_room_name
from .repository import CallRepository, call_repository
from .timeouts import CallTimeoutSupervisor
from .exceptions import (
    CallServiceError,
    CallValidationError,
    CallUnauthorizedError,
    ContactNotAuthorizedError,
    CallNotFoundError,
    UserNotFoundError,
    CallConflictError,
    UserBusyError,
    MediaCredentialError,
)

from app.services.connection import signal_hub
from app.services.contact_service import contact_service
from app.services.push_service import push_service
from app.services.status_service import status_service

# Singleton instance
call_service = CallService(
    hub=signal_hub,
    cache=CallSessionCache(),
    media=MediaTokenService(),
    contacts=contact_service,
    presence=status_service,
    push=push_service,
)

__all__ = [
    "CallService",
    "call_service",
    "CallSessionCache",
    "CallSnapshot",
    "MediaTokenService",
    "generate_room_name",
    "CallRepository",
    "call_repository",
    "CallTimeoutSupervisor",
    "CallServiceError",
    "CallValidationError",
    "CallUnauthorizedError",
    "ContactNotAuthorizedError",
    "CallNotFoundError",
    "UserNotFoundError",
    "CallConflictError",
    "UserBusyError",
    "MediaCredentialError",
]
