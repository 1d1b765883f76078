"""
Status Tracking Service - User Presence

Presence is the coarse `status` column on the user record:
    online | offline | busy | calling

Writers:
1. WebSocket connect → mark_online() (unless the user is in a call)
2. WebSocket disconnect → mark_offline() (only from plain online)
3. Call state machine → set_status() on every transition

Writes are last-writer-wins and best-effort: a failed write is logged and
never fails the operation that triggered it.
"""
import logging
from datetime import datetime, UTC

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from app.models.database import open_session
from app.models.user import User, UserStatus

logger = logging.getLogger(__name__)


class StatusService:
    """Service to track and manage user presence."""

    def __init__(self, session_factory=open_session):
        self.session_factory = session_factory

    async def set_status(self, user_id: str, status: UserStatus) -> None:
        """Unconditionally set the user's presence."""
        await self._write(user_id, status)

    async def mark_online(self, user_id: str) -> None:
        """
        Called when the user's signaling connection opens.
        A user who is busy/calling keeps that status across reconnects.
        """
        await self._write(
            user_id,
            UserStatus.ONLINE,
            only_from=(UserStatus.OFFLINE.value, UserStatus.ONLINE.value),
        )

    async def mark_offline(self, user_id: str) -> None:
        """Called when the user's signaling connection closes."""
        await self._write(user_id, UserStatus.OFFLINE, only_from=(UserStatus.ONLINE.value,))

    async def _write(self, user_id: str, status: UserStatus, only_from=None) -> None:
        stmt = update(User).where(User.id == user_id)
        if only_from is not None:
            stmt = stmt.where(User.status.in_(only_from))
        stmt = stmt.values(
            status=status.value,
            last_seen=datetime.now(UTC).replace(tzinfo=None),
        ).execution_options(synchronize_session=False)

        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"[Presence] Failed to set {user_id} -> {status.value}: {e}")
            return

        if result.rowcount:
            logger.debug(f"[Presence] {user_id} -> {status.value}")


# Singleton
status_service = StatusService()
