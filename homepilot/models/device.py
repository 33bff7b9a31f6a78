"""
Device model - a smart home device known to the bridge.

Devices are immutable. The device directory replaces them wholesale on
sync and swaps in updated copies (model_copy) when states are refreshed,
so a reader holding a device never sees it change underneath it.

Fields:
- id: Opaque, stable identifier assigned by the bridge
- name: Display name ("Kitchen Light"), may collide across devices
- category: Internal category derived from the bridge device type
- state: on / off / unknown (unknown until the first QUERY)
- online: Whether the bridge reports the device as reachable
- attributes: Bridge attributes flattened to strings
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class DeviceCategory(str, Enum):
    """Internal device categories."""
    LIGHT = "light"
    SWITCH = "switch"
    OUTLET = "outlet"
    FAN = "fan"
    UNKNOWN = "unknown"


class DeviceState(str, Enum):
    """Power state of a device."""
    ON = "on"
    OFF = "off"
    UNKNOWN = "unknown"


# Bridge device type -> internal category. Anything not listed is UNKNOWN.
BRIDGE_TYPE_CATEGORIES: Dict[str, DeviceCategory] = {
    "action.devices.types.LIGHT": DeviceCategory.LIGHT,
    "action.devices.types.SWITCH": DeviceCategory.SWITCH,
    "action.devices.types.OUTLET": DeviceCategory.OUTLET,
    "action.devices.types.FAN": DeviceCategory.FAN,
}

# Categories that accept OnOff commands
ON_OFF_CATEGORIES = frozenset({
    DeviceCategory.LIGHT,
    DeviceCategory.SWITCH,
    DeviceCategory.OUTLET,
    DeviceCategory.FAN,
})

# Attribute key holding the raw bridge type
BRIDGE_TYPE_ATTRIBUTE = "bridgeDeviceType"


def category_for_bridge_type(bridge_type: Optional[str]) -> DeviceCategory:
    """
    Map a bridge device type string to an internal category.

    Total function: unrecognized or missing types map to UNKNOWN so a new
    bridge type never breaks a sync.
    """
    if not bridge_type:
        return DeviceCategory.UNKNOWN
    return BRIDGE_TYPE_CATEGORIES.get(bridge_type, DeviceCategory.UNKNOWN)


def state_from_on_flag(on: Optional[bool]) -> DeviceState:
    """Convert the bridge's `on` flag to a DeviceState (missing -> UNKNOWN)."""
    if on is None:
        return DeviceState.UNKNOWN
    return DeviceState.ON if on else DeviceState.OFF


def flatten_attributes(attributes: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Flatten bridge attributes to strings, JSON-encoding non-string values."""
    flat: Dict[str, str] = {}
    for key, value in (attributes or {}).items():
        if isinstance(value, str):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, sort_keys=True)
    return flat


class DeviceStatus(BaseModel):
    """Live status of one device as reported by a QUERY."""
    model_config = ConfigDict(frozen=True)

    state: DeviceState = DeviceState.UNKNOWN
    online: bool = False


class Device(BaseModel):
    """
    A device in the directory.

    Example:
        Device(
            id="light-1",
            name="Kitchen Light",
            category=DeviceCategory.LIGHT,
        )
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Bridge-assigned device id")
    name: str = Field(description="Display name")
    category: DeviceCategory = DeviceCategory.UNKNOWN
    state: DeviceState = DeviceState.UNKNOWN
    online: bool = False
    attributes: Dict[str, str] = Field(default_factory=dict)

    @property
    def supports_on_off(self) -> bool:
        """Whether OnOff commands make sense for this device."""
        return self.category in ON_OFF_CATEGORIES

    def with_status(self, status: DeviceStatus) -> "Device":
        """Return a copy with state and online replaced."""
        return self.model_copy(update={"state": status.state, "online": status.online})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "state": self.state.value,
            "online": self.online,
            "attributes": dict(self.attributes),
        }
