from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    room_name: str = Field(..., min_length=1, max_length=64)


class TokenResponse(BaseModel):
    token: str
    room_name: str
    ws_url: str


class InitiateCallRequest(BaseModel):
    callee_id: UUID
    call_type: Literal["audio", "video"]


class CallActionRequest(BaseModel):
    """Body shared by answer/reject/end."""
    call_id: UUID


class CallResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_name: str
    caller_id: str
    callee_id: str
    caller_name: Optional[str] = None
    callee_name: Optional[str] = None
    call_type: str
    status: str
    started_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration: int = 0


class CallSessionResponse(BaseModel):
    """Returned to a party that is about to join the media room."""
    call: CallResponse
    token: str
    room_name: str
    ws_url: str


class MessageResponse(BaseModel):
    message: str


class CallHistoryResponse(BaseModel):
    calls: List[CallResponse]
    limit: int
    offset: int
