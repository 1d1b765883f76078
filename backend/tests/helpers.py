import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Set, Tuple

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserStatus
from app.services.connection import SignalConnection


def unique_username(prefix: str = 'user') -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


# === HTTP helpers ===

def create_user(client: TestClient, username: Optional[str] = None, password: str = 'pass123', full_name: Optional[str] = None):
    if username is None:
        username = unique_username()
    payload = {'username': username, 'password': password}
    if full_name is not None:
        payload['full_name'] = full_name
    return client.post('/api/auth/register', json=payload)


def register(client: TestClient, prefix: str = 'user') -> Tuple[str, dict]:
    """Register a user and return (user_id, auth headers)."""
    r = create_user(client, username=unique_username(prefix))
    assert r.status_code == 201, r.text
    body = r.json()
    return body['user_id'], {"Authorization": f"Bearer {body['token']}"}


def token_of(headers: dict) -> str:
    return headers["Authorization"].split(" ", 1)[1]


def befriend(client: TestClient, headers_a: dict, user_b_id: str, headers_b: dict) -> None:
    """Make two users mutual contacts through the API."""
    r = client.post('/api/contacts/request', json={'contact_user_id': user_b_id}, headers=headers_a)
    assert r.status_code == 201, r.text
    request_id = r.json()['request_id']
    r = client.post(f'/api/contacts/accept/{request_id}', headers=headers_b)
    assert r.status_code == 200, r.text


# === Service-level helpers ===

async def make_user(
    db: AsyncSession,
    username: Optional[str] = None,
    status: UserStatus = UserStatus.ONLINE,
    full_name: Optional[str] = None,
) -> User:
    user = User(username=username or unique_username(), status=status.value, full_name=full_name)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


class FakeConnection(SignalConnection):
    """Records frames instead of writing to a socket; can be told to fail."""

    def __init__(self, user_id: str, fail: bool = False):
        super().__init__(websocket=None, user_id=user_id)
        self.sent: List[dict] = []
        self.fail = fail
        self.closed = False

    async def send_json(self, data) -> bool:
        if self.fail:
            return False
        self.sent.append(data)
        return True

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    @property
    def types(self) -> List[str]:
        return [frame["type"] for frame in self.sent]


class FakeClock:
    """Deterministic replacement for the call service clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeContacts:
    def __init__(self, pairs: Optional[Set[frozenset]] = None, fail_on_update: bool = False):
        self.pairs = pairs or set()
        self.fail_on_update = fail_on_update
        self.last_call_updates: List[Tuple[str, str]] = []

    def connect(self, a: str, b: str) -> None:
        self.pairs.add(frozenset({a, b}))

    async def is_contact(self, user_id: str, contact_user_id: str) -> bool:
        return frozenset({user_id, contact_user_id}) in self.pairs

    async def update_last_call_time(self, user_id: str, contact_user_id: str) -> None:
        if self.fail_on_update:
            raise RuntimeError("contacts store unavailable")
        self.last_call_updates.append((user_id, contact_user_id))


class FakePush:
    def __init__(self):
        self.notified = []

    async def notify_incoming_call(self, call) -> None:
        self.notified.append(call.id)
