"""
Device selection - which devices the user has chosen to control.

The selection lives outside the pipeline; the voice command service only
needs to ask whether a device is selected. An empty selection means no
filter.
"""

from typing import Iterable, List, Protocol


class DeviceSelection(Protocol):
    def is_selected(self, device_id: str) -> bool:
        ...

    def selected_ids(self) -> List[str]:
        ...


class InMemoryDeviceSelection:
    """Selection kept in process memory, used by the HTTP API."""

    def __init__(self, device_ids: Iterable[str] = ()):
        self._ids: List[str] = list(dict.fromkeys(device_ids))

    def is_selected(self, device_id: str) -> bool:
        return device_id in self._ids

    def selected_ids(self) -> List[str]:
        return list(self._ids)

    def replace(self, device_ids: Iterable[str]) -> List[str]:
        """Replace the selection, dropping duplicates. Returns the new selection."""
        self._ids = list(dict.fromkeys(device_ids))
        return self.selected_ids()


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
device_selection = InMemoryDeviceSelection()
