"""
Call Repository - durable store access for call records.

Status changes go through `transition`, a conditional UPDATE guarded by the
set of statuses the transition may start from. It is the only serialization
point between racing transitions on the same call: whichever write lands
first wins and the other sees zero affected rows.
"""
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.call import Call, CallStatus

logger = logging.getLogger(__name__)


class CallRepository:
    """Queries over the calls table."""

    @staticmethod
    async def create(db: AsyncSession, call: Call) -> Call:
        db.add(call)
        await db.commit()
        await db.refresh(call)
        return call

    @staticmethod
    async def get_by_id(db: AsyncSession, call_id: str) -> Optional[Call]:
        result = await db.execute(
            select(Call).where(Call.id == call_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def transition(
        db: AsyncSession,
        call_id: str,
        allowed_from: Iterable[CallStatus],
        new_status: CallStatus,
        **values: Any,
    ) -> bool:
        """
        Move a call to `new_status` if its current status is in `allowed_from`.

        Args:
            db: Database session
            call_id: Call to update
            allowed_from: Statuses the transition may start from
            new_status: Target status
            **values: Extra columns written in the same statement

        Returns:
            True if the row was updated, False if the guard did not match
        """
        allowed = [status.value for status in allowed_from]
        result = await db.execute(
            update(Call)
            .where(Call.id == call_id, Call.status.in_(allowed))
            .values(status=new_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        updated = result.rowcount == 1
        if not updated:
            logger.info(f"[CallRepository] Guard miss: call {call_id} -> {new_status.value} (allowed from {allowed})")
        return updated

    @staticmethod
    async def get_user_calls(db: AsyncSession, user_id: str, limit: int, offset: int) -> List[Call]:
        result = await db.execute(
            select(Call)
            .where(or_(Call.caller_id == user_id, Call.callee_id == user_id))
            .order_by(Call.created_at.desc(), Call.started_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())


call_repository = CallRepository()
