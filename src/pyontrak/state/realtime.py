"""Push fleet availability changes to observers.

Checkout creation, device return and maintenance edits happen outside
the ingestion core. Their owners call the hooks here after committing
so dashboards see the new availability without polling.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from pyontrak.fanout import FanoutHub
from pyontrak.models.fleet import FanoutMessage, FleetStatus
from pyontrak.state.fleet import FleetStatusAggregator

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FleetStatusNotifier:
    def __init__(
        self,
        aggregator: FleetStatusAggregator,
        fanout: FanoutHub,
        *,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._fanout = fanout
        self._clock = clock
        self._logger = logger or _logger

    def _message(self, device_id: str, status: FleetStatus, updated_at: datetime) -> FanoutMessage:
        return FanoutMessage(
            type="device_borrow_status",
            device_id=device_id,
            data={"borrowStatus": status.value, "updatedAt": updated_at.isoformat()},
        )

    async def broadcast_statuses(self, device_ids: Iterable[str]) -> dict[str, FleetStatus]:
        """Compute and broadcast the status of every id in one batch."""
        ids = list(device_ids)
        try:
            statuses = await self._aggregator.compute(ids)
            updated_at = self._clock()
            for device_id, status in statuses.items():
                await self._fanout.broadcast(self._message(device_id, status, updated_at))
        except Exception:
            self._logger.error("Failed to broadcast fleet status for %d devices", len(ids), exc_info=True)
            raise
        self._logger.debug("Broadcast fleet status for %d devices", len(statuses))
        return statuses

    async def broadcast_status_change(self, device_id: str) -> FleetStatus:
        statuses = await self.broadcast_statuses([device_id])
        return statuses[device_id]

    async def on_checkout_created(self, checkout_id: str, device_ids: Iterable[str]) -> dict[str, FleetStatus]:
        ids = list(device_ids)
        self._logger.info("Checkout %s created for %d devices", checkout_id, len(ids))
        return await self.broadcast_statuses(ids)

    async def on_device_returned(self, device_id: str) -> FleetStatus:
        self._logger.info("Device %s returned", device_id)
        return await self.broadcast_status_change(device_id)

    async def on_maintenance_status_changed(self, device_id: str) -> FleetStatus:
        self._logger.info("Maintenance status changed for device %s", device_id)
        return await self.broadcast_status_change(device_id)
