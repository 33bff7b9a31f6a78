"""
Bridge integration - the network boundary to the smart home bridge.

All device control goes through here; there is no local control path.
"""

from homepilot.bridge.client import SmartHomeBridgeClient, bridge_client
from homepilot.bridge.schemas import BridgeCommandResult

__all__ = [
    "SmartHomeBridgeClient",
    "bridge_client",
    "BridgeCommandResult",
]
