"""
Application-wide constants for configuration and tuning.

This file centralizes all magic numbers and configuration values
to enable easy tuning and maintain consistency across the backend.

Note: Environment-dependent settings (DB, Redis, API keys) belong in settings.py.
This file is for operational parameters that rarely change between environments.
"""

# ==============================================================================
# CALL LIFECYCLE
# ==============================================================================

# Seconds a call may stay initiated/ringing before it is marked missed
CALL_RING_TIMEOUT_SEC: float = 60.0

# TTL of the in-flight call projection in Redis (seconds)
CALL_CACHE_TTL_SEC: int = 300

# TTL of the pre-minted callee media credential in Redis (seconds)
CALLEE_TOKEN_TTL_SEC: int = 300

# ==============================================================================
# OFFLINE SIGNAL QUEUE
# ==============================================================================

# Call-control signals are meaningless after the ring window
OFFLINE_CALL_SIGNAL_TTL_SEC: int = 30

# Contact notifications stay relevant for a day
OFFLINE_CONTACT_SIGNAL_TTL_SEC: int = 24 * 60 * 60

# ==============================================================================
# SIGNAL HUB
# ==============================================================================

# Max time a single WebSocket write may take before it counts as a failure
SIGNAL_SEND_TIMEOUT_SEC: float = 5.0

# ==============================================================================
# MEDIA SERVER (LIVEKIT)
# ==============================================================================

# Validity of minted room credentials (seconds)
MEDIA_TOKEN_TTL_SEC: int = 24 * 60 * 60

# Room name prefix and random byte count
ROOM_NAME_PREFIX: str = "room_"
ROOM_NAME_RANDOM_BYTES: int = 16

# ==============================================================================
# PUSH NOTIFICATIONS
# ==============================================================================

# Outbound push webhook timeout (seconds)
PUSH_REQUEST_TIMEOUT_SEC: float = 5.0

# ==============================================================================
# DATABASE CONNECTION POOL
# ==============================================================================

# SQLAlchemy connection pool size
DB_POOL_SIZE: int = 10

# SQLAlchemy max overflow connections
DB_POOL_MAX_OVERFLOW: int = 20

# ==============================================================================
# API PAGINATION & LIMITS
# ==============================================================================

# Default call history pagination limit
DEFAULT_CALL_HISTORY_LIMIT: int = 20

# Upper bound for call history pagination
MAX_CALL_HISTORY_LIMIT: int = 100

# ==============================================================================
# VALIDATION CONSTRAINTS
# ==============================================================================

USERNAME_MIN_LENGTH: int = 3
USERNAME_MAX_LENGTH: int = 50
PASSWORD_MIN_LENGTH: int = 6
