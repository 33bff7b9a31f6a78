"""
Bridge Schemas - Pydantic models for the bridge's JSON responses.

Only the fields we read are declared; anything else the bridge sends is
ignored. A response that doesn't fit these models is a malformed payload.

SYNC:    {"payload": {"devices": [{"id", "name": {"name"}, "type", "attributes"}]}}
QUERY:   {"payload": {"devices": {"<id>": {"on", "online"}}}}
EXECUTE: {"payload": {"commands": [{"ids", "status", "states", "errorCode"}]}}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _BridgeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# SYNC
# ---------------------------------------------------------------------------

class BridgeDeviceName(_BridgeModel):
    name: Optional[str] = None


class BridgeDevice(_BridgeModel):
    id: str = Field(min_length=1)
    name: Optional[BridgeDeviceName] = None
    type: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None

    @property
    def display_name(self) -> str:
        """Spoken name, falling back to the id."""
        if self.name and self.name.name:
            return self.name.name
        return self.id


class SyncPayload(_BridgeModel):
    devices: List[BridgeDevice]


class SyncResponse(_BridgeModel):
    payload: SyncPayload


# ---------------------------------------------------------------------------
# QUERY
# ---------------------------------------------------------------------------

class BridgeDeviceState(_BridgeModel):
    on: Optional[bool] = None
    online: Optional[bool] = None


class QueryPayload(_BridgeModel):
    devices: Dict[str, BridgeDeviceState]


class QueryResponse(_BridgeModel):
    payload: QueryPayload


# ---------------------------------------------------------------------------
# EXECUTE
# ---------------------------------------------------------------------------

class BridgeCommandResult(_BridgeModel):
    ids: List[str] = Field(default_factory=list)
    status: str
    states: Optional[BridgeDeviceState] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")

    @property
    def succeeded(self) -> bool:
        return self.status.upper() == "SUCCESS"


class ExecutePayload(_BridgeModel):
    commands: List[BridgeCommandResult]


class ExecuteResponse(_BridgeModel):
    payload: ExecutePayload
