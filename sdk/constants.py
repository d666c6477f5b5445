"""
CONSTANTS
---------
Single source of truth for the behavioral constants of the status client.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Values that differ per deployment are defaults only; ClientConfig overrides them.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Status Service Hosts
# =============================================================================

STATUS_HOST_PRODUCTION: Final[str] = "transfer-status.zenobiapay.com"
STATUS_HOST_TEST: Final[str] = "transfer-status-test.zenobiapay.com"

WS_SCHEME_SECURE: Final[str] = "wss:"
WS_SCHEME_INSECURE: Final[str] = "ws:"

# =============================================================================
# Reconnection Backoff
# =============================================================================

# delay(k) = min(BASE * 2^(k-1), MAX) for attempt k >= 1
RECONNECT_BASE_DELAY_MS: Final[int] = 1_000
RECONNECT_MAX_DELAY_MS: Final[int] = 30_000
MAX_RECONNECT_ATTEMPTS: Final[int] = 6

# =============================================================================
# WebSocket Close Codes (RFC 6455 §7.4.1)
# =============================================================================

WS_NORMAL_CLOSURE: Final[int] = 1000
WS_ABNORMAL_CLOSURE: Final[int] = 1006

# =============================================================================
# Protocol Message Types
# =============================================================================

MSG_TYPE_STATUS: Final[str] = "status"
MSG_TYPE_ERROR: Final[str] = "error"
MSG_TYPE_PING: Final[str] = "ping"
MSG_TYPE_PONG: Final[str] = "pong"

# =============================================================================
# Observer-facing Error Reasons
# =============================================================================

ERR_MISSING_CREDENTIALS: Final[str] = "Missing transfer ID or signature"
ERR_TRANSPORT: Final[str] = "WebSocket error occurred"
ERR_PARSE: Final[str] = "Failed to parse message"
ERR_SETUP: Final[str] = "Failed to establish WebSocket connection"
ERR_CREATE_TRANSFER: Final[str] = "Failed to create transfer request"

# =============================================================================
# Observability
# =============================================================================

# Inbound frames are logged truncated to this many characters
LOG_PAYLOAD_PREVIEW_CHARS: Final[int] = 200
