"""
Exceptions for the voice command pipeline.

Only failures that stop an operation are exceptions. Per-device results
(an unmatched device name, a command the bridge rejected) are returned
as values so one bad action never aborts its siblings.

Hierarchy:
    HomePilotError
    ├── InterpretationError      oracle unreachable or invalid output
    ├── DispatchError            bridge endpoint cannot be used at all
    └── BridgeError              any failed bridge call
        ├── SyncError            SYNC failed, directory keeps last snapshot
        ├── QueryError           QUERY failed, device states unchanged
        ├── BridgeRequestError   EXECUTE transport/HTTP/payload failure
        └── BridgeConfigurationError  invalid endpoint URL
"""

from typing import Optional


class HomePilotError(Exception):
    """Base exception for all HomePilot errors."""

    def __init__(self, message: str, reason: str = "error"):
        super().__init__(message)
        self.message = message
        self.reason = reason


class InterpretationError(HomePilotError):
    """
    Raised when a command cannot be turned into a valid intent.

    reason is one of: empty_input, timeout, oracle_unavailable,
    invalid_json, schema_invalid.
    """
    pass


class DispatchError(HomePilotError):
    """Raised when a command cannot be sent because the bridge endpoint is unusable."""
    pass


class BridgeError(HomePilotError):
    """Raised when a call to the smart home bridge fails."""

    def __init__(
        self,
        message: str,
        reason: str = "error",
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, reason=reason)
        self.status_code = status_code
        self.error_code = error_code


class SyncError(BridgeError):
    """Raised when the device list cannot be fetched or parsed."""
    pass


class QueryError(BridgeError):
    """Raised when device states cannot be fetched or parsed."""
    pass


class BridgeRequestError(BridgeError):
    """Raised when an EXECUTE request fails at the transport or HTTP level."""
    pass


class BridgeConfigurationError(BridgeError):
    """Raised when the configured bridge endpoint is not a usable URL."""
    pass
