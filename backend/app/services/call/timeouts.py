"""
Call Timeout Supervisor

Arms one timer per initiated call. When it fires, the supervisor hands the
call id to a check callback which re-reads the call from the database and
only marks it missed if nobody answered, rejected or ended it meanwhile.
Timers are never cancelled on answer: a late wake-up is just a cheap no-op
re-check.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from app.config.constants import CALL_RING_TIMEOUT_SEC

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[str], Awaitable[object]]


class CallTimeoutSupervisor:
    """Deferred per-call unanswered checks."""

    def __init__(self, timeout: float = CALL_RING_TIMEOUT_SEC, on_timeout: Optional[TimeoutCallback] = None):
        self.timeout = timeout
        self._on_timeout = on_timeout
        self._tasks: Dict[str, asyncio.Task] = {}

    def bind(self, on_timeout: TimeoutCallback) -> None:
        self._on_timeout = on_timeout

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def schedule(self, call_id: str) -> asyncio.Task:
        """Arm the timer for a call."""
        if self._on_timeout is None:
            raise RuntimeError("CallTimeoutSupervisor has no timeout callback bound")
        task = asyncio.create_task(self._wait_and_check(call_id), name=f"call-timeout-{call_id}")
        self._tasks[call_id] = task
        task.add_done_callback(lambda _t, cid=call_id: self._forget(cid, _t))
        logger.debug(f"[CallTimeout] Armed {self.timeout}s timer for call {call_id}")
        return task

    async def _wait_and_check(self, call_id: str) -> None:
        await asyncio.sleep(self.timeout)
        try:
            await self._on_timeout(call_id)
        except Exception as e:
            # Nobody to report to; the next read of the call sees the store as-is
            logger.error(f"[CallTimeout] Re-check for call {call_id} failed: {e}")

    def _forget(self, call_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(call_id) is task:
            del self._tasks[call_id]

    async def shutdown(self) -> None:
        """Cancel outstanding timers (process shutdown only)."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info(f"[CallTimeout] Cancelled {len(tasks)} pending timer(s)")
