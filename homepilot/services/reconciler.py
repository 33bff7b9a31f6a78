"""
State Reconciler - Brings the directory back in line with the bridge.

After a dispatch the bridge's EXECUTE response only says what it tried.
The reconciler re-queries the devices that were touched and merges the
authoritative states into the directory. It never trusts an outcome's
resulting_state.

Failures are non-fatal: if the QUERY fails the directory is left as is,
the report says so and the dispatch outcomes stay valid.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from homepilot.core.exceptions import QueryError
from homepilot.services.commands import DispatchOutcome
from homepilot.services.device_directory import DeviceDirectory, device_directory

logger = logging.getLogger("homepilot.services.reconciler")


@dataclass
class ReconcileReport:
    """
    Result of one reconciliation.

    Attributes:
        refreshed: States were fetched and merged into the directory
        device_ids: Devices that were re-queried
        updated_ids: Devices the bridge returned a state for
        error: Why the refresh failed, if it did
        discarded: States were fetched but the directory was re-synced meanwhile
    """
    refreshed: bool
    device_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None
    discarded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refreshed": self.refreshed,
            "device_ids": self.device_ids,
            "updated_ids": self.updated_ids,
            "error": self.error,
            "discarded": self.discarded,
        }


class StateReconciler:
    """
    Re-queries devices and merges their state into the directory.

    Usage:
        outcomes = await command_dispatcher.dispatch_all(targets)
        report = await state_reconciler.reconcile(outcomes)
        if not report.refreshed:
            logger.warning(report.error)
    """

    def __init__(self, directory: Optional[DeviceDirectory] = None):
        self.directory = directory or device_directory

    async def reconcile(
        self,
        outcomes: Sequence[DispatchOutcome],
        expected_generation: Optional[int] = None,
    ) -> ReconcileReport:
        """Refresh every device referenced by the outcomes, successful or not."""
        return await self.refresh(
            (outcome.device_id for outcome in outcomes),
            expected_generation=expected_generation,
        )

    async def refresh(
        self,
        device_ids: Iterable[str],
        expected_generation: Optional[int] = None,
    ) -> ReconcileReport:
        """
        Query the given devices and merge the results.

        Args:
            device_ids: Devices to refresh
            expected_generation: Directory generation the caller acted on;
                results are discarded if the directory moved on
        """
        ids = list(dict.fromkeys(device_ids))
        if not ids:
            return ReconcileReport(refreshed=True)

        try:
            states = await self.directory.query_states(ids)
        except QueryError as e:
            logger.warning(f"State refresh failed for {len(ids)} devices ({e.reason}): {e.message}")
            return ReconcileReport(refreshed=False, device_ids=ids, error=e.message)

        applied = await self.directory.apply_states(states, expected_generation=expected_generation)
        if not applied:
            return ReconcileReport(
                refreshed=False,
                device_ids=ids,
                updated_ids=list(states),
                error="Device list changed during refresh",
                discarded=True,
            )

        logger.info(f"Refreshed {len(states)}/{len(ids)} devices")
        return ReconcileReport(refreshed=True, device_ids=ids, updated_ids=list(states))


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
state_reconciler = StateReconciler()
