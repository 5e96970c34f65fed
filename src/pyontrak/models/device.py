"""Provisioned device record."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConnectionStatus(StrEnum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class MaintenanceStatus(StrEnum):
    NONE = "NONE"
    HAS_PROBLEM = "HAS_PROBLEM"
    NEEDS_REPAIR = "NEEDS_REPAIR"
    IN_MAINTENANCE = "IN_MAINTENANCE"
    DAMAGED = "DAMAGED"


class Device(BaseModel):
    """A provisioned tablet and its live telemetry snapshot.

    The repository owns these records; the ingestion core only reads
    them and writes telemetry patches through
    :meth:`DeviceRepository.update_telemetry`.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str
    device_code: str
    name: str | None = None

    battery: int | None = None
    is_charging: bool | None = None
    wifi_status: bool | None = None
    bluetooth_enabled: bool | None = None
    mobile_data_enabled: bool | None = None
    network_connected: bool | None = None
    screen_on: bool | None = None
    volume_level: int | None = None
    battery_health: str | None = None
    charging_method: str | None = None
    installed_apps_count: int | None = None
    uptime: int | None = None
    boot_time: int | None = None
    """Boot epoch in milliseconds; exceeds 32-bit range."""

    latitude: float | None = None
    longitude: float | None = None
    last_seen: datetime | None = None
    connection_status: ConnectionStatus = ConnectionStatus.OFFLINE
    maintenance_status: MaintenanceStatus = MaintenanceStatus.NONE

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None
