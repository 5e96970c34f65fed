"""Structural repository interfaces.

Storage is external to the ingestion core; these are the calls it makes.
In-memory implementations live in :mod:`pyontrak.repositories.memory`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Protocol

from pyontrak.models.device import Device
from pyontrak.models.records import ActionLogEntry, CheckoutItem, LocationSample, MetricsRecord


class DeviceRepository(Protocol):
    async def find_by_code(self, device_code: str) -> Device | None:
        ...

    async def find_by_id(self, device_id: str) -> Device | None:
        ...

    async def find_by_ids(self, device_ids: Iterable[str]) -> list[Device]:
        """Batch lookup; a single query regardless of how many ids."""
        ...

    async def update_telemetry(self, device_id: str, patch: Mapping[str, Any]) -> Device:
        """Overwrite the given fields and return the updated record."""
        ...


class LocationHistoryRepository(Protocol):
    async def append(self, sample: LocationSample) -> None:
        ...

    async def find_latest(self, device_id: str) -> LocationSample | None:
        """Most recently stored sample for the device, if any."""
        ...


class MetricsRepository(Protocol):
    async def append(self, record: MetricsRecord) -> None:
        ...


class ActionLogRepository(Protocol):
    async def append(self, entry: ActionLogEntry) -> None:
        ...

    async def find_most_recent(
        self,
        device_id: str,
        action: str,
        start: datetime,
        end: datetime,
    ) -> ActionLogEntry | None:
        """Most recent entry with ``start <= created_at < end``.

        Must be a point lookup over an index on (device, action, time),
        not a scan.
        """
        ...


class CheckoutRepository(Protocol):
    async def find_active_items_by_device_ids(self, device_ids: Iterable[str]) -> list[CheckoutItem]:
        """Unreturned items whose parent checkout is not soft-deleted."""
        ...
