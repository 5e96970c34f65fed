"""Current-position updates with distance-based history sampling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from pyontrak.geo import DEFAULT_MIN_SAMPLE_DISTANCE_M, should_sample_location
from pyontrak.models.device import ConnectionStatus, Device
from pyontrak.models.records import LocationSample
from pyontrak.models.telemetry import LocationMessage
from pyontrak.repositories.base import DeviceRepository, LocationHistoryRepository

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class LocationUpdate:
    device: Device
    sampled: bool


class LocationTracker:
    """Applies location fixes to devices.

    The device's current position always follows the latest fix. A
    history sample is appended only for a device's first fix, or once
    the fix is at least ``min_distance`` metres from the last stored
    sample, so consecutive stored samples are never closer than that.

    The last stored position per device is cached after one
    ``find_latest`` lookup.
    """

    def __init__(
        self,
        devices: DeviceRepository,
        history: LocationHistoryRepository,
        *,
        min_distance: float = DEFAULT_MIN_SAMPLE_DISTANCE_M,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._devices = devices
        self._history = history
        self._min_distance = min_distance
        self._clock = clock
        self._logger = logger or _logger
        self._last_sampled: dict[str, tuple[float, float] | None] = {}

    async def _last_sampled_position(self, device_id: str) -> tuple[float, float] | None:
        if device_id not in self._last_sampled:
            latest = await self._history.find_latest(device_id)
            self._last_sampled[device_id] = None if latest is None else (latest.latitude, latest.longitude)
        return self._last_sampled[device_id]

    async def update(self, device: Device, message: LocationMessage) -> LocationUpdate:
        now = self._clock()
        current = (message.latitude, message.longitude)

        updated = await self._devices.update_telemetry(
            device.id,
            {
                "latitude": message.latitude,
                "longitude": message.longitude,
                "last_seen": now,
                "connection_status": ConnectionStatus.ONLINE,
            },
        )

        try:
            previous = await self._last_sampled_position(device.id)
            if not should_sample_location(previous, current, self._min_distance):
                self._logger.debug("Location change for device %s below sampling threshold", device.id)
                return LocationUpdate(device=updated, sampled=False)

            await self._history.append(
                LocationSample(
                    device_id=device.id,
                    latitude=message.latitude,
                    longitude=message.longitude,
                    accuracy=message.accuracy,
                    speed=message.speed,
                    heading=message.heading,
                    created_at=now,
                )
            )
        except Exception:
            # Current position stays updated even when history is not.
            self._logger.error("Failed to record location sample for device %s", device.id, exc_info=True)
            return LocationUpdate(device=updated, sampled=False)

        self._last_sampled[device.id] = current
        self._logger.debug("Location sample stored for device %s", device.id)
        return LocationUpdate(device=updated, sampled=True)
