"""Storage interfaces consumed by the ingestion core."""

from pyontrak.repositories.base import (
    ActionLogRepository,
    CheckoutRepository,
    DeviceRepository,
    LocationHistoryRepository,
    MetricsRepository,
)

__all__ = [
    "ActionLogRepository",
    "CheckoutRepository",
    "DeviceRepository",
    "LocationHistoryRepository",
    "MetricsRepository",
]
