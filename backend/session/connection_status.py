"""
Connection status tracking for soul sessions.

Connection lifecycle is tracked separately from turn state:
connection_status: DOWN | UP

Pure data owned by SessionGateway, not by the orchestrator.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Connection lifecycle status.

    Independent of TurnState: a turn may still be finishing (and its
    audio still synthesizing) when the connection goes DOWN.
    """
    DOWN = "DOWN"  # Not connected
    UP = "UP"      # Active WebSocket connection
