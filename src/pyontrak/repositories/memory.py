"""In-memory repository implementations.

Used by the test suite and the probe script. Every implementation counts
calls per method in ``calls`` so tests can assert query budgets.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pyontrak.exceptions import UnknownDeviceError
from pyontrak.models.device import Device
from pyontrak.models.records import ActionLogEntry, CheckoutItem, LocationSample, MetricsRecord


@dataclass
class InMemoryDeviceRepository:
    devices: dict[str, Device] = field(default_factory=dict)
    calls: Counter[str] = field(default_factory=Counter)

    def add(self, device: Device) -> Device:
        self.devices[device.id] = device
        return device

    async def find_by_code(self, device_code: str) -> Device | None:
        self.calls["find_by_code"] += 1
        for device in self.devices.values():
            if device.device_code == device_code:
                return device
        return None

    async def find_by_id(self, device_id: str) -> Device | None:
        self.calls["find_by_id"] += 1
        return self.devices.get(device_id)

    async def find_by_ids(self, device_ids: Iterable[str]) -> list[Device]:
        self.calls["find_by_ids"] += 1
        return [self.devices[i] for i in dict.fromkeys(device_ids) if i in self.devices]

    async def update_telemetry(self, device_id: str, patch: Mapping[str, Any]) -> Device:
        self.calls["update_telemetry"] += 1
        current = self.devices.get(device_id)
        if current is None:
            raise UnknownDeviceError(device_id)
        updated = current.model_copy(update=dict(patch))
        self.devices[device_id] = updated
        return updated


@dataclass
class InMemoryLocationHistoryRepository:
    samples: list[LocationSample] = field(default_factory=list)
    calls: Counter[str] = field(default_factory=Counter)

    async def append(self, sample: LocationSample) -> None:
        self.calls["append"] += 1
        self.samples.append(sample)

    async def find_latest(self, device_id: str) -> LocationSample | None:
        self.calls["find_latest"] += 1
        for sample in reversed(self.samples):
            if sample.device_id == device_id:
                return sample
        return None

    def for_device(self, device_id: str) -> list[LocationSample]:
        return [s for s in self.samples if s.device_id == device_id]


@dataclass
class InMemoryMetricsRepository:
    records: list[MetricsRecord] = field(default_factory=list)
    calls: Counter[str] = field(default_factory=Counter)

    async def append(self, record: MetricsRecord) -> None:
        self.calls["append"] += 1
        self.records.append(record)


@dataclass
class InMemoryActionLogRepository:
    entries: list[ActionLogEntry] = field(default_factory=list)
    calls: Counter[str] = field(default_factory=Counter)

    async def append(self, entry: ActionLogEntry) -> None:
        self.calls["append"] += 1
        self.entries.append(entry)

    async def find_most_recent(
        self,
        device_id: str,
        action: str,
        start: datetime,
        end: datetime,
    ) -> ActionLogEntry | None:
        self.calls["find_most_recent"] += 1
        best: ActionLogEntry | None = None
        for entry in self.entries:
            if entry.device_id != device_id or entry.action != action:
                continue
            if not start <= entry.created_at < end:
                continue
            if best is None or entry.created_at >= best.created_at:
                best = entry
        return best


@dataclass
class InMemoryCheckoutRepository:
    items: list[CheckoutItem] = field(default_factory=list)
    calls: Counter[str] = field(default_factory=Counter)

    async def find_active_items_by_device_ids(self, device_ids: Iterable[str]) -> list[CheckoutItem]:
        self.calls["find_active_items_by_device_ids"] += 1
        wanted = set(device_ids)
        return [item for item in self.items if item.device_id in wanted and item.is_active]
