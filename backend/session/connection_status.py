"""
Connection status of a live session client.

connection_status: DISCONNECTED | CONNECTING | CONNECTED

Owned by LiveClient; mutated only by its connection state machine.
"""
from enum import Enum

class ConnectionStatus(str, Enum):
    """
    Tri-state connection lifecycle.

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
    CONNECTING -> DISCONNECTED on a failed open.
    """
    DISCONNECTED = "disconnected"  # No session handle
    CONNECTING = "connecting"      # Awaiting transport open
    CONNECTED = "connected"        # Session handle held, outbound allowed
