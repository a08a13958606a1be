"""
Application-level constants for hardcoded protocol behavior.

These values are not meant to be overridden via environment variables.
For configurable values see connhub/settings.py.
"""

# ============================================================================
# WebSocket Protocol Constants
# ============================================================================

# Close code used when the server tears a connection down on request
WS_NORMAL_CLOSURE_CODE = 1000

# Event name used when relaying a message without an explicit event
WS_DEFAULT_EVENT = "message"

# Event sent to the remaining clients when a connection joins or leaves
WS_JOIN_EVENT = "connection.joined"
WS_LEAVE_EVENT = "connection.left"


# ============================================================================
# Logging
# ============================================================================

# Maximum size of a single JSON log line (Loki rejects larger entries)
LOKI_MAX_LOG_SIZE_BYTES = 256 * 1024
