"""
Push Notification Service

Tells an out-of-band notifier (mobile push gateway) that a user has an
incoming call, so a device without a live signaling connection can wake up
and connect. The ring signal itself still waits in the offline queue.

The gateway is a plain HTTP webhook (PUSH_WEBHOOK_URL). When it is not
configured push is disabled. Failures are logged and never reach the caller.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config.constants import PUSH_REQUEST_TIMEOUT_SEC
from app.config.settings import settings
from app.models.call import Call

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    """Result of a push notification attempt"""
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class PushService:
    """Incoming-call push via webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: float = PUSH_REQUEST_TIMEOUT_SEC,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.PUSH_WEBHOOK_URL
        self.timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @staticmethod
    def build_payload(call: Call) -> dict:
        return {
            "type": "incoming_call",
            "user_id": call.callee_id,
            "call_id": call.id,
            "room_name": call.room_name,
            "call_type": call.call_type,
            "caller_id": call.caller_id,
            "caller_name": call.caller_name,
        }

    async def notify_incoming_call(self, call: Call) -> PushResult:
        if not self.is_configured():
            return PushResult(success=False, error="push not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=self.build_payload(call))
        except httpx.HTTPError as e:
            logger.warning(f"[Push] Incoming call push for {call.callee_id} failed: {e}")
            return PushResult(success=False, error=str(e))

        if response.is_success:
            logger.info(f"[Push] Incoming call push sent to {call.callee_id} (call {call.id})")
            return PushResult(success=True, status_code=response.status_code)

        logger.warning(
            f"[Push] Gateway rejected push for {call.callee_id}: "
            f"{response.status_code} {response.text[:200]}"
        )
        return PushResult(success=False, status_code=response.status_code, error=response.text[:200])


# Singleton
push_service = PushService()
