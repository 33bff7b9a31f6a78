"""
Device Directory - In-memory catalog of devices known to the bridge.

The directory is the single mutable store of device truth. It holds an
immutable snapshot (generation + tuple of devices) and replaces it with a
single reference swap, so a reader always sees either the old or the new
snapshot, never a half-applied one.

Writes:
- sync():         full replace from a bridge SYNC (generation + 1)
- apply_states(): merge QUERY results, used only by the reconciler

Both writes are serialized by an asyncio.Lock. Reads take no lock.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from homepilot.ai.intent.device_resolver import contains_all_words, significant_words
from homepilot.bridge.client import SmartHomeBridgeClient, bridge_client
from homepilot.core.exceptions import SyncError
from homepilot.models.device import Device, DeviceStatus

logger = logging.getLogger("homepilot.services.directory")


@dataclass(frozen=True)
class DirectorySnapshot:
    """One immutable version of the device list."""
    generation: int
    devices: Tuple[Device, ...]


class DeviceDirectory:
    """
    Catalog of devices, synchronized from the bridge.

    Usage:
        directory = DeviceDirectory(bridge_client)
        await directory.sync()

        lights = directory.lookup_by_display_name_fragment("kitchen")
        states = await directory.query_states([d.id for d in lights])
    """

    def __init__(self, bridge: Optional[SmartHomeBridgeClient] = None):
        self.bridge = bridge or bridge_client
        self._snapshot = DirectorySnapshot(generation=0, devices=())
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # READS
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    @property
    def generation(self) -> int:
        """Incremented on every successful sync; 0 means never synced."""
        return self._snapshot.generation

    @property
    def is_synced(self) -> bool:
        return self._snapshot.generation > 0

    @property
    def devices(self) -> List[Device]:
        return list(self._snapshot.devices)

    def get(self, device_id: str) -> Optional[Device]:
        for device in self._snapshot.devices:
            if device.id == device_id:
                return device
        return None

    def device_ids(self) -> List[str]:
        return [device.id for device in self._snapshot.devices]

    def lookup_by_display_name_fragment(self, phrase: str) -> List[Device]:
        """
        Devices whose display name contains every significant word of phrase.

        Pure read, backing the name filter of GET /devices. A phrase with
        no significant words matches nothing.
        """
        words = significant_words(phrase)
        if not words:
            return []
        return [
            device for device in self._snapshot.devices
            if contains_all_words(words, device.name)
        ]

    # -------------------------------------------------------------------------
    # BRIDGE CALLS
    # -------------------------------------------------------------------------

    async def sync(self) -> List[Device]:
        """
        Replace the directory with the bridge's current device list.

        Returns:
            The new device list

        Raises:
            SyncError: The previous snapshot is kept
        """
        try:
            devices = await self.bridge.sync_devices()
        except SyncError as e:
            logger.error(f"Device sync failed ({e.reason}): {e.message}")
            raise

        async with self._lock:
            self._snapshot = DirectorySnapshot(
                generation=self._snapshot.generation + 1,
                devices=tuple(devices),
            )
            generation = self._snapshot.generation

        logger.info(f"Directory synced: {len(devices)} devices (generation {generation})")
        return list(devices)

    async def query_states(self, device_ids: Iterable[str]) -> Dict[str, DeviceStatus]:
        """
        Live status for a subset of devices. Does not touch the directory.

        Raises:
            QueryError
        """
        ids = list(dict.fromkeys(device_ids))
        if not ids:
            return {}
        return await self.bridge.query_devices(ids)

    # -------------------------------------------------------------------------
    # WRITES (reconciler only)
    # -------------------------------------------------------------------------

    async def apply_states(
        self,
        states: Mapping[str, DeviceStatus],
        expected_generation: Optional[int] = None,
    ) -> bool:
        """
        Merge queried states into the directory.

        Ids not in the directory are ignored. Returns False without
        changing anything when expected_generation is given and the
        directory has been re-synced since.
        """
        async with self._lock:
            current = self._snapshot
            if expected_generation is not None and current.generation != expected_generation:
                logger.info(
                    f"Discarding state update for generation {expected_generation}, "
                    f"directory is at {current.generation}"
                )
                return False

            if not states:
                return True

            updated = tuple(
                device.with_status(states[device.id]) if device.id in states else device
                for device in current.devices
            )
            self._snapshot = DirectorySnapshot(generation=current.generation, devices=updated)

        return True


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
device_directory = DeviceDirectory()
