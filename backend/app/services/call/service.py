"""
Call Service - Call State Machine

Drives a one-to-one call through
    initiated -> ringing -> answered -> ended
with the terminal side branches rejected (callee) and missed (timeout).

Every transition:
1. checks the actor and the current status read from the database
2. writes the new status with a conditional UPDATE (status guard)
3. updates presence, the Redis projection and the callee credential
4. emits a signal to the other party through the signal hub

The database row is the only thing that decides whether a transition is
allowed; two racing transitions on one call are settled by whichever
UPDATE matches the guard first.
"""
from datetime import datetime, UTC
from typing import Callable, List, Optional, Tuple, Union
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import DEFAULT_CALL_HISTORY_LIMIT, MAX_CALL_HISTORY_LIMIT
from app.config.settings import settings
from app.models.call import (
    ALLOWED_TRANSITIONS,
    UNRESOLVED_STATUSES,
    Call,
    CallStatus,
    CallType,
)
from app.models.database import open_session
from app.models.user import User, UserStatus
from app.schemas.signal import Signal, SignalType
from app.services.connection import SignalHub, HubNotRunningError
from app.services.metrics import call_transitions
from app.services.protocols import (
    ContactDirectoryProtocol,
    PresenceProtocol,
    PushNotifierProtocol,
)
from app.services.user_service import user_service

from .cache import CallSessionCache, CallSnapshot
from .exceptions import (
    CallConflictError,
    CallNotFoundError,
    CallUnauthorizedError,
    CallValidationError,
)
from .media import MediaTokenService, generate_room_name
from .repository import CallRepository, call_repository
from .timeouts import CallTimeoutSupervisor
from .validators import (
    validate_contact_exists,
    validate_distinct_parties,
    validate_not_busy,
    validate_parties_exist,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class CallService:
    """State machine for one-to-one calls."""

    def __init__(
        self,
        hub: SignalHub,
        cache: CallSessionCache,
        media: MediaTokenService,
        contacts: ContactDirectoryProtocol,
        presence: PresenceProtocol,
        push: Optional[PushNotifierProtocol] = None,
        supervisor: Optional[CallTimeoutSupervisor] = None,
        repository: CallRepository = call_repository,
        session_factory: Callable[[], AsyncSession] = open_session,
        clock: Callable[[], datetime] = utcnow,
        contact_gating: Optional[bool] = None,
    ):
        self.hub = hub
        self.cache = cache
        self.media = media
        self.contacts = contacts
        self.presence = presence
        self.push = push
        self.repository = repository
        self.session_factory = session_factory
        self.clock = clock
        self.contact_gating = settings.CALL_CONTACT_GATING if contact_gating is None else contact_gating
        self.supervisor = supervisor or CallTimeoutSupervisor()
        self.supervisor.bind(self.handle_call_timeout)

    # === Media helpers ===

    def get_media_url(self) -> str:
        return settings.livekit_url

    def generate_call_token(self, room_name: str, user: User) -> str:
        """Credential for an arbitrary room (group rooms, rejoin)."""
        return self.media.generate_token(room_name, user.id, user.display_name, "participant")

    # === Transitions ===

    async def initiate_call(
        self,
        db: AsyncSession,
        caller_id: str,
        callee_id: str,
        call_type: str,
    ) -> Tuple[Call, str]:
        """
        Create a call and ring the callee.

        Args:
            db: Database session
            caller_id: User placing the call
            callee_id: User being called
            call_type: "audio" or "video"

        Returns:
            Tuple of (Call in ringing state, caller media credential)
        """
        try:
            call_type = CallType(call_type)
        except ValueError:
            raise CallValidationError(f"invalid call type: {call_type}")
        validate_distinct_parties(caller_id, callee_id)

        caller, callee = await validate_parties_exist(db, caller_id, callee_id)
        if self.contact_gating:
            await validate_contact_exists(self.contacts, caller_id, callee_id)
        validate_not_busy(caller, callee)

        # Credentials first: a minting failure must leave nothing behind
        room_name = generate_room_name()
        caller_token = self.media.generate_token(room_name, caller.id, caller.display_name, "caller")
        callee_token = self.media.generate_token(room_name, callee.id, callee.display_name, "callee")

        call = Call(
            id=str(uuid.uuid4()),
            room_name=room_name,
            caller_id=caller.id,
            callee_id=callee.id,
            caller_name=caller.display_name,
            callee_name=callee.display_name,
            call_type=call_type.value,
            status=CallStatus.INITIATED.value,
            started_at=self.clock(),
        )
        call = await self.repository.create(db, call)
        # Armed before any Redis write so the row can always reach a terminal state
        self.supervisor.schedule(call.id)
        call_transitions.labels(status=CallStatus.INITIATED.value).inc()
        logger.info(f"[CallService] Call {call.id} initiated: {caller_id} -> {callee_id} ({call_type.value})")

        await self.cache.store_callee_token(call.id, callee_token)
        await self.presence.set_status(caller_id, UserStatus.CALLING)

        if await self.repository.transition(db, call.id, ALLOWED_TRANSITIONS[CallStatus.RINGING], CallStatus.RINGING):
            call_transitions.labels(status=CallStatus.RINGING.value).inc()
        call = await self._reload(db, call.id)
        await self.cache.store(call)

        await self._emit(Signal(
            type=SignalType.RING,
            from_id=call.caller_id,
            to_id=call.callee_id,
            room_name=call.room_name,
            call_type=call.call_type,
            call_id=call.id,
            caller_name=call.caller_name,
            callee_name=call.callee_name,
            data={
                "call_id": call.id,
                "room_name": call.room_name,
                "caller_name": call.caller_name,
                "callee_name": call.callee_name,
            },
        ))
        if self.push is not None:
            await self.push.notify_incoming_call(call)

        return call, caller_token

    async def answer_call(self, db: AsyncSession, call_id: str, user_id: str) -> Tuple[Call, str]:
        """
        Callee accepts the call.

        Returns:
            Tuple of (answered Call, callee media credential)
        """
        call = await self._load(db, call_id)
        if call.callee_id != user_id:
            raise CallUnauthorizedError()
        self._require_unresolved(call)

        token = await self.cache.get_callee_token(call_id)
        if not token:
            callee = await user_service.get_by_id(db, user_id)
            name = callee.display_name if callee else call.callee_name
            token = self.media.generate_token(call.room_name, user_id, name, "callee")

        now = self.clock()
        if not await self.repository.transition(
            db, call_id, ALLOWED_TRANSITIONS[CallStatus.ANSWERED], CallStatus.ANSWERED, answered_at=now
        ):
            raise CallConflictError("call already processed")
        call = await self._reload(db, call_id)
        call_transitions.labels(status=CallStatus.ANSWERED.value).inc()
        logger.info(f"[CallService] Call {call_id} answered by {user_id}")

        await self.presence.set_status(call.caller_id, UserStatus.BUSY)
        await self.presence.set_status(call.callee_id, UserStatus.BUSY)
        await self.cache.discard_callee_token(call_id)
        await self.cache.store(call)

        await self._emit(Signal(
            type=SignalType.ANSWERED,
            from_id=call.callee_id,
            to_id=call.caller_id,
            room_name=call.room_name,
            call_id=call.id,
            call_type=call.call_type,
        ))
        return call, token

    async def reject_call(self, db: AsyncSession, call_id: str, user_id: str) -> Call:
        """Callee declines the call."""
        call = await self._load(db, call_id)
        if call.callee_id != user_id:
            raise CallUnauthorizedError()
        self._require_unresolved(call)

        now = self.clock()
        if not await self.repository.transition(
            db, call_id, ALLOWED_TRANSITIONS[CallStatus.REJECTED], CallStatus.REJECTED, ended_at=now
        ):
            raise CallConflictError("call already processed")
        call = await self._reload(db, call_id)
        call_transitions.labels(status=CallStatus.REJECTED.value).inc()
        logger.info(f"[CallService] Call {call_id} rejected by {user_id}")

        await self._reset_presence(call)
        await self.cache.discard_callee_token(call_id)
        await self.cache.store(call)

        await self._emit(Signal(
            type=SignalType.REJECTED,
            from_id=call.callee_id,
            to_id=call.caller_id,
            call_id=call.id,
        ))
        return call

    async def end_call(self, db: AsyncSession, call_id: str, user_id: str) -> Call:
        """
        Either party hangs up.

        Idempotent: ending a call that is already terminal returns the stored
        record unchanged and emits nothing.
        """
        call = await self._load(db, call_id)
        if not call.is_party(user_id):
            raise CallUnauthorizedError()

        if call.is_terminal:
            return call

        now = self.clock()
        duration = 0
        if call.answered_at is not None and call.answered_at <= now:
            duration = int((now - call.answered_at).total_seconds())

        # Guard on the status the duration was computed from
        if not await self.repository.transition(
            db, call_id, {CallStatus(call.status)}, CallStatus.ENDED, ended_at=now, duration=duration
        ):
            call = await self._reload(db, call_id)
            if call.is_terminal:
                return call
            raise CallConflictError("call state changed concurrently")

        call = await self._reload(db, call_id)
        call_transitions.labels(status=CallStatus.ENDED.value).inc()
        logger.info(f"[CallService] Call {call_id} ended by {user_id} (duration={call.duration}s)")

        await self._reset_presence(call)
        await self.cache.discard_callee_token(call_id)
        await self.cache.store(call)

        await self._emit(Signal(
            type=SignalType.ENDED,
            from_id=user_id,
            to_id=call.other_party(user_id),
            call_id=call.id,
        ))

        if call.duration > 0:
            try:
                await self.contacts.update_last_call_time(call.caller_id, call.callee_id)
            except Exception as e:
                # The call is already ended; last_call_at is bookkeeping only
                logger.error(f"[CallService] Could not record last call time for call {call_id}: {e}")

        return call

    async def handle_call_timeout(self, call_id: str) -> Optional[Call]:
        """
        Timer callback: mark the call missed if it is still unresolved.

        Re-reads the call from the database; a call answered, rejected or
        ended in the meantime is left untouched.
        """
        async with self.session_factory() as db:
            call = await self.repository.get_by_id(db, call_id)
            if call is None:
                logger.warning(f"[CallTimeout] Call {call_id} vanished before timeout check")
                return None
            if CallStatus(call.status) not in UNRESOLVED_STATUSES:
                logger.debug(f"[CallTimeout] Call {call_id} already {call.status}, nothing to do")
                return None

            if not await self.repository.transition(
                db, call_id, ALLOWED_TRANSITIONS[CallStatus.MISSED], CallStatus.MISSED, ended_at=self.clock()
            ):
                return None
            call = await self._reload(db, call_id)
            call_transitions.labels(status=CallStatus.MISSED.value).inc()
            logger.info(f"[CallTimeout] Call {call_id} missed")

            await self._reset_presence(call)
            await self.cache.discard_callee_token(call_id)
            await self.cache.store(call)

            await self._emit(Signal(
                type=SignalType.MISSED,
                from_id=call.callee_id,
                to_id=call.caller_id,
                call_id=call.id,
            ))
            return call

    # === Queries ===

    async def get_call(self, db: AsyncSession, call_id: str, user_id: str) -> Union[Call, CallSnapshot]:
        """Cached projection when present, database row otherwise."""
        snapshot = await self.cache.get(call_id)
        if snapshot is not None:
            if not snapshot.is_party(user_id):
                raise CallUnauthorizedError()
            return snapshot

        call = await self._load(db, call_id)
        if not call.is_party(user_id):
            raise CallUnauthorizedError()
        return call

    @staticmethod
    def history_window(limit: int, offset: int) -> Tuple[int, int]:
        """Clamp paging parameters: limit falls back to the default outside 1..max."""
        if limit <= 0 or limit > MAX_CALL_HISTORY_LIMIT:
            limit = DEFAULT_CALL_HISTORY_LIMIT
        return limit, max(offset, 0)

    async def get_call_history(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = DEFAULT_CALL_HISTORY_LIMIT,
        offset: int = 0,
    ) -> List[Call]:
        limit, offset = self.history_window(limit, offset)
        return await self.repository.get_user_calls(db, user_id, limit, offset)

    # === Internals ===

    async def _load(self, db: AsyncSession, call_id: str) -> Call:
        call = await self.repository.get_by_id(db, call_id)
        if call is None:
            raise CallNotFoundError(f"Call {call_id} not found")
        return call

    async def _reload(self, db: AsyncSession, call_id: str) -> Call:
        return await self._load(db, call_id)

    @staticmethod
    def _require_unresolved(call: Call) -> None:
        if CallStatus(call.status) not in UNRESOLVED_STATUSES:
            raise CallConflictError("call already processed")

    async def _reset_presence(self, call: Call) -> None:
        await self.presence.set_status(call.caller_id, UserStatus.ONLINE)
        await self.presence.set_status(call.callee_id, UserStatus.ONLINE)

    async def _emit(self, signal: Signal) -> None:
        try:
            await self.hub.route(signal)
        except HubNotRunningError:
            logger.error(f"[CallService] Signal hub down, {signal.type} for {signal.to_id} not routed")
