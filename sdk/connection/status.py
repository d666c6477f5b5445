"""
Connection lifecycle states for a transfer status stream.

Owned and mutated only by ConnectionController.
Observers never see these directly; they receive connected/disconnected.
"""
from enum import Enum

class ConnectionState(Enum):
    """
    Controller lifecycle.

    IDLE -> CONNECTING -> OPEN -> RETRYING -> CONNECTING ...
    Any state -> TERMINATED via disconnect(); IDLE is never re-entered.
    """
    IDLE = "IDLE"                # No attempt made yet
    CONNECTING = "CONNECTING"    # Handshake in flight
    OPEN = "OPEN"                # Live WebSocket connection
    RETRYING = "RETRYING"        # Closed abnormally, retry timer pending
    CLOSED = "CLOSED"            # Closed, no retry pending (waits for reconnect())
    TERMINATED = "TERMINATED"    # Explicit disconnect; absorbing
