"""Business Logic Services.

This package contains all service modules that implement the core
business logic of the call signaling backend.

Service Categories:
- Call: Call state machine, session cache, media credentials, timeouts
- Connection: Signal hub, connection registry, offline signal store
- Session: WebSocket signaling session
- Contacts / Presence / Push: collaborators of the call flow

Support:
- auth_service: Password hashing and access tokens
- metrics: Prometheus instrumentation
"""
