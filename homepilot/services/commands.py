"""
Command Dispatcher - Sends device actions to the bridge.

This service turns (device id, spoken action) into a bridge EXECUTE:
- Maps the action phrase to a bridge command through a fixed table
- Sends one command per device
- Collects a DispatchOutcome per device, success or not

Separation of concerns:
- The voice command service decides which devices to act on
- This service handles command logic and bridge failures
- The bridge client handles the HTTP details

Only an unusable bridge endpoint raises (DispatchError). Everything else
a device can fail with is reported in its outcome, so one failing device
never aborts its siblings.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from homepilot.bridge.client import SmartHomeBridgeClient, bridge_client
from homepilot.core.exceptions import (
    BridgeConfigurationError,
    BridgeRequestError,
    DispatchError,
)
from homepilot.models.device import DeviceState

logger = logging.getLogger("homepilot.services.commands")


# ---------------------------------------------------------------------------
# COMMAND TYPES
# ---------------------------------------------------------------------------

ON_OFF_COMMAND = "action.devices.commands.OnOff"


class ErrorCode:
    """Error codes reported in outcomes when the bridge gives none."""
    UNSUPPORTED_ACTION = "unsupported_action"
    UNKNOWN_ERROR = "unknown_error"
    TIMEOUT = "timeout"
    DISPATCH_ERROR = "dispatch_error"


@dataclass(frozen=True)
class BridgeCommand:
    """A bridge command with its parameters."""
    command: str
    on: bool

    @property
    def params(self) -> Dict[str, Any]:
        return {"on": self.on}


TURN_ON = BridgeCommand(command=ON_OFF_COMMAND, on=True)
TURN_OFF = BridgeCommand(command=ON_OFF_COMMAND, on=False)

# Normalized action phrase -> command
ACTION_TABLE: Dict[str, BridgeCommand] = {
    "turn on": TURN_ON,
    "switch on": TURN_ON,
    "power on": TURN_ON,
    "activate": TURN_ON,
    "enable": TURN_ON,
    "turn off": TURN_OFF,
    "switch off": TURN_OFF,
    "power off": TURN_OFF,
    "deactivate": TURN_OFF,
    "disable": TURN_OFF,
}

_NON_WORD_RE = re.compile(r"[^a-z0-9 ]+")


def normalize_action(phrase: str) -> str:
    """Lowercase, drop punctuation and "please", collapse whitespace."""
    cleaned = _NON_WORD_RE.sub(" ", (phrase or "").lower())
    return " ".join(word for word in cleaned.split() if word != "please")


def resolve_action(phrase: str) -> Optional[BridgeCommand]:
    """
    Look up the bridge command for a spoken action.

    Exact table entries win. Otherwise a phrase that contains table
    entries as whole words ("turn on now") is accepted when they all
    map to the same command.

    Returns:
        The command, or None when the action isn't supported
    """
    normalized = normalize_action(phrase)
    if not normalized:
        return None

    if normalized in ACTION_TABLE:
        return ACTION_TABLE[normalized]

    padded = f" {normalized} "
    found = {command for verb, command in ACTION_TABLE.items() if f" {verb} " in padded}
    if len(found) == 1:
        return found.pop()
    return None


# ---------------------------------------------------------------------------
# DISPATCH OUTCOME
# ---------------------------------------------------------------------------

class DispatchOutcome(BaseModel):
    """
    Result of one attempted device action.

    Attributes:
        device_id: Target device
        requested_action: The action phrase as requested
        success: Whether the bridge confirmed the command
        resulting_state: on/off if the bridge reported it
        error_code: Bridge error code or one of ErrorCode
    """
    model_config = ConfigDict(frozen=True)

    device_id: str
    requested_action: str
    success: bool
    resulting_state: Optional[DeviceState] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "requested_action": self.requested_action,
            "success": self.success,
            "resulting_state": self.resulting_state.value if self.resulting_state else None,
            "error_code": self.error_code,
        }


# ---------------------------------------------------------------------------
# COMMAND DISPATCHER
# ---------------------------------------------------------------------------

class CommandDispatcher:
    """
    Sends actions to devices through the bridge.

    Usage:
        from homepilot.services.commands import command_dispatcher

        outcome = await command_dispatcher.dispatch("light-1", "turn on")
        if outcome.success:
            print(f"Light is now {outcome.resulting_state}")

        outcomes = await command_dispatcher.dispatch_all([
            ("light-1", "turn on"),
            ("fan-1", "turn off"),
        ])
    """

    def __init__(self, bridge: Optional[SmartHomeBridgeClient] = None):
        self.bridge = bridge or bridge_client

    async def dispatch(self, device_id: str, action_phrase: str) -> DispatchOutcome:
        """
        Send one action to one device.

        Args:
            device_id: Resolved device id
            action_phrase: Spoken action ("turn on", "switch off", ...)

        Returns:
            DispatchOutcome, success or not

        Raises:
            DispatchError: The bridge endpoint is not usable at all
        """
        command = resolve_action(action_phrase)
        if command is None:
            logger.info(f"Unsupported action '{action_phrase}' for {device_id}")
            return self._failure(device_id, action_phrase, ErrorCode.UNSUPPORTED_ACTION)

        try:
            result = await self.bridge.execute(device_id, command.command, command.params)
        except BridgeConfigurationError as e:
            raise DispatchError(e.message, reason=e.reason) from e
        except BridgeRequestError as e:
            if e.error_code:
                error_code = e.error_code
            elif e.reason == "timeout":
                error_code = ErrorCode.TIMEOUT
            else:
                error_code = ErrorCode.UNKNOWN_ERROR
            logger.warning(f"Command to {device_id} failed ({e.reason}): {e.message}")
            return self._failure(device_id, action_phrase, error_code)

        if not result.succeeded:
            logger.warning(f"Bridge rejected command to {device_id}: {result.status} {result.error_code}")
            return self._failure(device_id, action_phrase, result.error_code or ErrorCode.UNKNOWN_ERROR)

        resulting_state = None
        if result.states is not None and result.states.on is not None:
            resulting_state = DeviceState.ON if result.states.on else DeviceState.OFF

        logger.info(f"Command {command.command} {command.params} sent to {device_id}")
        return DispatchOutcome(
            device_id=device_id,
            requested_action=action_phrase,
            success=True,
            resulting_state=resulting_state,
        )

    async def dispatch_all(self, targets: Sequence[Tuple[str, str]]) -> List[DispatchOutcome]:
        """
        Send actions to several devices concurrently.

        Args:
            targets: (device_id, action_phrase) pairs

        Returns:
            One outcome per target, in target order
        """
        if not targets:
            return []

        async def _one(device_id: str, action_phrase: str) -> DispatchOutcome:
            try:
                return await self.dispatch(device_id, action_phrase)
            except DispatchError as e:
                logger.error(f"Dispatch to {device_id} failed: {e.message}")
                return self._failure(device_id, action_phrase, ErrorCode.DISPATCH_ERROR)
            except Exception as e:
                logger.error(f"Unexpected error dispatching to {device_id}: {e}", exc_info=True)
                return self._failure(device_id, action_phrase, ErrorCode.DISPATCH_ERROR)

        outcomes = await asyncio.gather(*(_one(device_id, action) for device_id, action in targets))
        return list(outcomes)

    @staticmethod
    def _failure(device_id: str, action_phrase: str, error_code: str) -> DispatchOutcome:
        return DispatchOutcome(
            device_id=device_id,
            requested_action=action_phrase,
            success=False,
            error_code=error_code,
        )


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
command_dispatcher = CommandDispatcher()
