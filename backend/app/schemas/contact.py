from typing import List, Optional
from pydantic import BaseModel


class ContactUserInfo(BaseModel):
    id: str
    username: str
    full_name: Optional[str] = None
    status: str
    avatar_url: Optional[str] = None


class ContactResponse(BaseModel):
    id: str
    user_id: str
    contact_user_id: str
    status: str
    user: Optional[ContactUserInfo] = None
    last_call_at: Optional[str] = None
    added_at: Optional[str] = None


class ContactRequestBody(BaseModel):
    contact_user_id: str


class ContactRequestCreated(BaseModel):
    request_id: str
    message: str


class ContactsListResponse(BaseModel):
    contacts: List[ContactResponse]
    pending_incoming: List[ContactResponse] = []
    pending_outgoing: List[ContactResponse] = []


class ContactCheckResponse(BaseModel):
    user_id: str
    is_contact: bool
