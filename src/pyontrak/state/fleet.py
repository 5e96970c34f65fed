"""Fleet availability derived from maintenance flags and active checkouts.

Availability is a pure function of two independent facts, so single and
batch lookups must agree. The batch path is the only implementation; a
single-device lookup is a batch of one.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from pyontrak.models.device import ConnectionStatus, Device, MaintenanceStatus
from pyontrak.models.fleet import FleetStatus, FleetStatusCounts
from pyontrak.repositories.base import CheckoutRepository, DeviceRepository

# DAMAGED alone does not block borrowing.
MAINTENANCE_BLOCKING: frozenset[MaintenanceStatus] = frozenset(
    {
        MaintenanceStatus.HAS_PROBLEM,
        MaintenanceStatus.NEEDS_REPAIR,
        MaintenanceStatus.IN_MAINTENANCE,
    }
)

DEFAULT_OFFLINE_THRESHOLD = timedelta(minutes=5)


def derive_fleet_status(maintenance_status: MaintenanceStatus, has_active_checkout: bool) -> FleetStatus:
    if maintenance_status in MAINTENANCE_BLOCKING:
        return FleetStatus.IN_MAINTENANCE
    if has_active_checkout:
        return FleetStatus.IN_USE
    return FleetStatus.AVAILABLE


def compute_connection_status(
    last_seen: datetime | None,
    now: datetime,
    threshold: timedelta = DEFAULT_OFFLINE_THRESHOLD,
) -> ConnectionStatus:
    """``OFFLINE`` when never seen or silent for longer than *threshold*."""
    if last_seen is None:
        return ConnectionStatus.OFFLINE
    if now - last_seen > threshold:
        return ConnectionStatus.OFFLINE
    return ConnectionStatus.ONLINE


class FleetStatusAggregator:
    """Computes :class:`FleetStatus` for sets of devices."""

    def __init__(
        self,
        devices: DeviceRepository,
        checkouts: CheckoutRepository,
        *,
        offline_threshold: timedelta = DEFAULT_OFFLINE_THRESHOLD,
    ) -> None:
        self._devices = devices
        self._checkouts = checkouts
        self._offline_threshold = offline_threshold

    async def compute(self, device_ids: Iterable[str]) -> dict[str, FleetStatus]:
        """Return the status of every requested id.

        Issues exactly one device lookup and one active-checkout lookup.
        Ids with no device record stay ``AVAILABLE``.
        """
        ids = list(dict.fromkeys(device_ids))
        if not ids:
            return {}

        devices = await self._devices.find_by_ids(ids)
        maintenance = {device.id: device.maintenance_status for device in devices}

        active_items = await self._checkouts.find_active_items_by_device_ids(ids)
        in_use = {item.device_id for item in active_items if item.is_active}

        return {
            device_id: derive_fleet_status(maintenance.get(device_id, MaintenanceStatus.NONE), device_id in in_use)
            for device_id in ids
        }

    async def compute_one(self, device_id: str) -> FleetStatus:
        statuses = await self.compute([device_id])
        return statuses[device_id]

    async def summarize(
        self,
        devices: Sequence[Device],
        *,
        now: datetime,
        offline_threshold: timedelta | None = None,
    ) -> FleetStatusCounts:
        """Count devices per connection and fleet status."""
        threshold = self._offline_threshold if offline_threshold is None else offline_threshold
        statuses = await self.compute(device.id for device in devices)
        connection = [compute_connection_status(d.last_seen, now, threshold) for d in devices]
        fleet = [statuses[d.id] for d in devices]
        return FleetStatusCounts(
            total=len(devices),
            online=connection.count(ConnectionStatus.ONLINE),
            offline=connection.count(ConnectionStatus.OFFLINE),
            available=fleet.count(FleetStatus.AVAILABLE),
            in_use=fleet.count(FleetStatus.IN_USE),
            in_maintenance=fleet.count(FleetStatus.IN_MAINTENANCE),
        )

    async def filter_devices(
        self,
        devices: Sequence[Device],
        *,
        now: datetime,
        fleet_status: FleetStatus | None = None,
        connection_status: ConnectionStatus | None = None,
        offline_threshold: timedelta | None = None,
    ) -> list[Device]:
        threshold = self._offline_threshold if offline_threshold is None else offline_threshold
        statuses = await self.compute(device.id for device in devices) if fleet_status is not None else {}
        result: list[Device] = []
        for device in devices:
            if fleet_status is not None and statuses[device.id] != fleet_status:
                continue
            if (
                connection_status is not None
                and compute_connection_status(device.last_seen, now, threshold) != connection_status
            ):
                continue
            result.append(device)
        return result
