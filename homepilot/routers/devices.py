"""
Devices router - device list, bridge sync/refresh and device selection.

Endpoints:
- GET  /devices              List known devices
- POST /devices/sync         Re-sync from the bridge
- POST /devices/refresh      Refresh device states from the bridge
- GET  /devices/selection    Current device selection
- PUT  /devices/selection    Replace the device selection

All endpoints require a session.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from homepilot.core.exceptions import SyncError
from homepilot.deps import (
    get_device_directory,
    get_device_selection,
    get_state_reconciler,
    require_session,
)
from homepilot.models.device import Device
from homepilot.services.device_directory import DeviceDirectory
from homepilot.services.device_selection import InMemoryDeviceSelection
from homepilot.services.reconciler import StateReconciler

logger = logging.getLogger("homepilot.routers.devices")

router = APIRouter(prefix="/devices", tags=["devices"], dependencies=[Depends(require_session)])


# ---------------------------------------------------------------------------
# SCHEMAS
# ---------------------------------------------------------------------------

class DeviceListResponse(BaseModel):
    devices: List[Dict[str, Any]]
    generation: int
    refresh_completed: Optional[bool] = None
    error: Optional[str] = None


class DeviceSelectionBody(BaseModel):
    """
    Device selection.

    Example:
    {
        "device_ids": ["light-1", "fan-1"]
    }
    """
    device_ids: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------

def _selected(devices: List[Device], selection: InMemoryDeviceSelection) -> List[Device]:
    """Devices in the selection; everything when the selection is empty."""
    if not selection.selected_ids():
        return devices
    return [device for device in devices if selection.is_selected(device.id)]


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.get("", response_model=DeviceListResponse)
async def list_devices(
    selected_only: bool = Query(default=False, description="Only devices in the selection"),
    name: Optional[str] = Query(default=None, description="Only devices whose name contains these words"),
    directory: DeviceDirectory = Depends(get_device_directory),
    selection: InMemoryDeviceSelection = Depends(get_device_selection),
):
    """List the devices currently in the directory."""
    snapshot = directory.snapshot
    devices = list(snapshot.devices)
    if name:
        devices = directory.lookup_by_display_name_fragment(name)
    if selected_only:
        devices = _selected(devices, selection)
    return DeviceListResponse(
        devices=[device.to_dict() for device in devices],
        generation=snapshot.generation,
    )


@router.post("/sync", response_model=DeviceListResponse)
async def sync_devices(
    directory: DeviceDirectory = Depends(get_device_directory),
):
    """
    Replace the directory with the bridge's device list.

    Returns 502 when the bridge can't be reached or answers garbage;
    the previous device list is kept in that case.
    """
    try:
        devices = await directory.sync()
    except SyncError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Device sync failed: {e.message}",
        )

    return DeviceListResponse(
        devices=[device.to_dict() for device in devices],
        generation=directory.generation,
    )


@router.post("/refresh", response_model=DeviceListResponse)
async def refresh_devices(
    selected_only: bool = Query(default=False, description="Only refresh devices in the selection"),
    directory: DeviceDirectory = Depends(get_device_directory),
    selection: InMemoryDeviceSelection = Depends(get_device_selection),
    reconciler: StateReconciler = Depends(get_state_reconciler),
):
    """
    Refresh device states from the bridge.

    A failed refresh is not an error: the last known states are returned
    with refresh_completed false.
    """
    generation = directory.generation
    if selected_only:
        ids = [device.id for device in _selected(directory.devices, selection)]
    else:
        ids = directory.device_ids()

    report = await reconciler.refresh(ids, expected_generation=generation)

    wanted = set(ids)
    return DeviceListResponse(
        devices=[device.to_dict() for device in directory.devices if device.id in wanted],
        generation=directory.generation,
        refresh_completed=report.refreshed,
        error=report.error,
    )


@router.get("/selection", response_model=DeviceSelectionBody)
async def get_selection(
    selection: InMemoryDeviceSelection = Depends(get_device_selection),
):
    return DeviceSelectionBody(device_ids=selection.selected_ids())


@router.put("/selection", response_model=DeviceSelectionBody)
async def update_selection(
    payload: DeviceSelectionBody,
    selection: InMemoryDeviceSelection = Depends(get_device_selection),
):
    """Replace the selection. An empty list clears it (no filtering)."""
    device_ids = selection.replace(payload.device_ids)
    logger.info(f"Device selection updated: {len(device_ids)} devices")
    return DeviceSelectionBody(device_ids=device_ids)
