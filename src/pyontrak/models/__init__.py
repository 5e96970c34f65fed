"""Data models for tablet telemetry and derived fleet state."""

from pyontrak.models._base import EpochTimestamp, OntrakBaseModel, parse_epoch_timestamp
from pyontrak.models.device import ConnectionStatus, Device, MaintenanceStatus
from pyontrak.models.fleet import FanoutMessage, FanoutType, FleetStatus, FleetStatusCounts
from pyontrak.models.records import ActionLogEntry, CheckoutItem, LocationSample, MetricsRecord
from pyontrak.models.telemetry import (
    MESSAGE_MODELS,
    CapacityInfo,
    EventMessage,
    LocationMessage,
    MessageKind,
    MetricsMessage,
    StatusMessage,
    TelemetryMessage,
)

__all__ = [
    "ActionLogEntry",
    "CapacityInfo",
    "CheckoutItem",
    "ConnectionStatus",
    "Device",
    "EpochTimestamp",
    "EventMessage",
    "FanoutMessage",
    "FanoutType",
    "FleetStatus",
    "FleetStatusCounts",
    "LocationMessage",
    "LocationSample",
    "MESSAGE_MODELS",
    "MaintenanceStatus",
    "MessageKind",
    "MetricsMessage",
    "MetricsRecord",
    "OntrakBaseModel",
    "StatusMessage",
    "TelemetryMessage",
    "parse_epoch_timestamp",
]
