"""
Session management module.

Provides the SignalingSession serving one user's signaling WebSocket.
"""
from .signaling import SignalingSession

__all__ = ["SignalingSession"]
