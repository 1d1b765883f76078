"""
Calls API - Endpoints for one-to-one call control

Implements:
- Media credential issuance for arbitrary rooms
- initiate / answer / reject / end transitions
- Call history and single-call lookup

Service errors map onto HTTP status codes:
    validation 400, authorization 403, not found 404, conflict 409,
    media credential failure 502, anything else 500
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_current_user
from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT
from app.models.database import get_db
from app.models.user import User
from app.services.call import (
    call_service,
    CallServiceError,
    CallValidationError,
    CallUnauthorizedError,
    CallNotFoundError,
    UserNotFoundError,
    CallConflictError,
    MediaCredentialError,
)
from app.schemas.call import (
    CallActionRequest,
    CallHistoryResponse,
    CallResponse,
    CallSessionResponse,
    InitiateCallRequest,
    TokenRequest,
    TokenResponse,
)

router = APIRouter()


def to_http_error(e: CallServiceError) -> HTTPException:
    if isinstance(e, CallValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, CallUnauthorizedError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, (CallNotFoundError, UserNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CallConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, MediaCredentialError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


@router.post("/calls/token", response_model=TokenResponse)
async def get_call_token(
    req: TokenRequest,
    current_user: User = Depends(get_current_user)
):
    """Mint a participant credential for an arbitrary room."""
    try:
        token = call_service.generate_call_token(req.room_name, current_user)
    except CallServiceError as e:
        raise to_http_error(e)
    return TokenResponse(token=token, room_name=req.room_name, ws_url=call_service.get_media_url())


@router.post("/calls/initiate", response_model=CallSessionResponse)
async def initiate_call(
    req: InitiateCallRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Start a call and ring the callee.

    Validates:
    - Callee exists and is not the caller
    - Callee is a mutual contact (when contact gating is on)
    - Neither party is busy
    """
    try:
        call, token = await call_service.initiate_call(
            db,
            caller_id=current_user.id,
            callee_id=str(req.callee_id),
            call_type=req.call_type,
        )
    except CallServiceError as e:
        raise to_http_error(e)

    return CallSessionResponse(
        call=CallResponse.model_validate(call),
        token=token,
        room_name=call.room_name,
        ws_url=call_service.get_media_url(),
    )


@router.post("/calls/answer", response_model=CallSessionResponse)
async def answer_call(
    req: CallActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Callee accepts; returns the callee's media credential."""
    try:
        call, token = await call_service.answer_call(db, str(req.call_id), current_user.id)
    except CallServiceError as e:
        raise to_http_error(e)

    return CallSessionResponse(
        call=CallResponse.model_validate(call),
        token=token,
        room_name=call.room_name,
        ws_url=call_service.get_media_url(),
    )


@router.post("/calls/reject", response_model=CallResponse)
async def reject_call(
    req: CallActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        call = await call_service.reject_call(db, str(req.call_id), current_user.id)
    except CallServiceError as e:
        raise to_http_error(e)
    return CallResponse.model_validate(call)


@router.post("/calls/end", response_model=CallResponse)
async def end_call(
    req: CallActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """End a call. Either party may call this; repeating it is harmless."""
    try:
        call = await call_service.end_call(db, str(req.call_id), current_user.id)
    except CallServiceError as e:
        raise to_http_error(e)
    return CallResponse.model_validate(call)


@router.get("/calls/history", response_model=CallHistoryResponse)
async def get_call_history(
    limit: int = Query(DEFAULT_CALL_HISTORY_LIMIT),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Calls the user took part in, newest first."""
    limit, offset = call_service.history_window(limit, offset)
    calls = await call_service.get_call_history(db, current_user.id, limit, offset)
    return CallHistoryResponse(
        calls=[CallResponse.model_validate(c) for c in calls],
        limit=limit,
        offset=offset,
    )


@router.get("/calls/{call_id}", response_model=CallResponse)
async def get_call(
    call_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        call = await call_service.get_call(db, call_id, current_user.id)
    except CallServiceError as e:
        raise to_http_error(e)
    return CallResponse.model_validate(call)
