"""Inbound telemetry payloads, one model per topic kind.

Each topic suffix maps to exactly one model. Only the fields listed
here drive decisions; anything else the tablet sends is kept in
``raw`` for opaque storage.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from pyontrak.models._base import EpochTimestamp, OntrakBaseModel


class MessageKind(StrEnum):
    STATUS = "status"
    LOCATION = "location"
    METRICS = "metrics"
    EVENT = "event"


class StatusMessage(OntrakBaseModel):
    """Payload of ``tablet/{device}/status``."""

    battery: int | None = Field(default=None, ge=0, le=100)
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
    timestamp: EpochTimestamp = None

    def telemetry_patch(self) -> dict[str, Any]:
        """Device fields to overwrite; only what the tablet reported."""
        patch = self.provided_fields()
        patch.pop("timestamp", None)
        return patch


class LocationMessage(OntrakBaseModel):
    """Payload of ``tablet/{device}/location``."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float | None = None
    speed: float | None = None
    heading: float | None = None
    timestamp: EpochTimestamp = None


class CapacityInfo(OntrakBaseModel):
    """Byte-scale capacity triple; values exceed 32-bit range."""

    total: int = 0
    used: int = 0
    available: int = 0


class MetricsMessage(OntrakBaseModel):
    """Payload of ``tablet/{device}/metrics``."""

    cpu: float = 0.0
    memory: CapacityInfo = Field(default_factory=CapacityInfo)
    storage: CapacityInfo = Field(default_factory=CapacityInfo)
    network_type: str | None = None
    foreground_app: str | None = None
    timestamp: EpochTimestamp = None


class EventMessage(OntrakBaseModel):
    """Payload of ``tablet/{device}/event``."""

    event_type: str = ""
    message: str | None = None
    timestamp: EpochTimestamp = None


TelemetryMessage = StatusMessage | LocationMessage | MetricsMessage | EventMessage

MESSAGE_MODELS: dict[MessageKind, type[OntrakBaseModel]] = {
    MessageKind.STATUS: StatusMessage,
    MessageKind.LOCATION: LocationMessage,
    MessageKind.METRICS: MetricsMessage,
    MessageKind.EVENT: EventMessage,
}
