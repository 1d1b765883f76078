"""
Media Room Credentials (LiveKit)

Mints LiveKit-compatible access tokens: HS256 JWTs signed with the API
secret, issued by the API key, carrying a `video` grant for one room.
Rooms are created by the media server on first join, so there is no
room-creation call.
"""
import logging
import secrets
import time
from typing import Optional

from jose import jwt, JWTError

from app.config.constants import MEDIA_TOKEN_TTL_SEC, ROOM_NAME_PREFIX, ROOM_NAME_RANDOM_BYTES
from app.config.settings import settings

from .exceptions import MediaCredentialError

logger = logging.getLogger(__name__)


def generate_room_name() -> str:
    return f"{ROOM_NAME_PREFIX}{secrets.token_hex(ROOM_NAME_RANDOM_BYTES)}"


class MediaTokenService:
    """Issues room-and-identity scoped credentials for the media server."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        ttl_seconds: int = MEDIA_TOKEN_TTL_SEC,
    ):
        self.api_key = api_key or settings.LIVEKIT_API_KEY
        self.api_secret = api_secret or settings.LIVEKIT_API_SECRET
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def identity_for(user_id: str, role: str, room_name: str) -> str:
        # One identity per (user, role, room) so caller and callee never collide
        return f"{user_id}::{role}::{room_name}"

    def generate_token(self, room_name: str, user_id: str, username: str, role: str) -> str:
        """
        Mint a credential for joining `room_name`.

        Args:
            room_name: Media room to join
            user_id: Identity owner
            username: Display name shown to other participants
            role: caller, callee or participant

        Returns:
            Signed JWT

        Raises:
            MediaCredentialError: if signing fails
        """
        now = int(time.time())
        identity = self.identity_for(user_id, role, room_name)
        claims = {
            "iss": self.api_key,
            "sub": identity,
            "jti": identity,
            "name": username,
            "nbf": now,
            "exp": now + self.ttl_seconds,
            "video": {
                "roomJoin": True,
                "room": room_name,
                "canPublish": True,
                "canSubscribe": True,
                "canPublishData": True,
            },
        }
        try:
            return jwt.encode(claims, self.api_secret, algorithm="HS256")
        except JWTError as e:
            logger.error(f"[Media] Failed to mint {role} token for room {room_name}: {e}")
            raise MediaCredentialError(f"failed to generate media token: {e}") from e

    def decode_token(self, token: str) -> dict:
        """Verify a credential minted by this service (used by tests and diagnostics)."""
        return jwt.decode(token, self.api_secret, algorithms=["HS256"], issuer=self.api_key)
