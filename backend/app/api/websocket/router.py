"""
WebSocket Router - Call Signaling Endpoint

Thin routing layer; SignalingSession owns the connection lifecycle.
"""
from typing import Optional

from fastapi import APIRouter, WebSocket, Query

from app.services.session import SignalingSession

router = APIRouter()


@router.websocket("/ws/call")
async def ws_endpoint(
    websocket: WebSocket,
    user_id: Optional[str] = Query(None),
    token: Optional[str] = Query(None),
):
    """
    Signaling channel for one user.

    Query Parameters:
        user_id: The connecting user's id
        token: JWT access token whose subject is user_id

    On connect the server pushes any queued offline signals, then
    {"type": "connected", "user_id": ...}.

    Inbound frames (JSON):
        - {"type": "ping"} is answered with {"type": "pong"}
        - anything else is a Signal relayed to its `to_id`; `from_id` is
          always set by the server
    """
    session = SignalingSession(websocket=websocket, user_id=user_id, token=token)
    await session.run()
