"""Append-only records written by the ingestion core, plus checkout input."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LocationSample(BaseModel):
    """A persisted point in a device's location history."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    latitude: float
    longitude: float
    accuracy: float | None = None
    speed: float | None = None
    heading: float | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class MetricsRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    device_id: str
    cpu: float = 0.0
    memory_total: int = 0
    memory_used: int = 0
    memory_available: int = 0
    storage_total: int = 0
    storage_used: int = 0
    storage_available: int = 0
    network_type: str | None = None
    foreground_app: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class ActionLogEntry(BaseModel):
    """A logged device event.

    ``payload`` is the event JSON exactly as received. Entries written
    before payloads were stored as objects may hold a JSON string.
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    action: str
    payload: Any = None
    created_at: datetime = Field(default_factory=_utcnow)


class CheckoutItem(BaseModel):
    """One device on a borrow record.

    Owned by the checkout workflow; read-only here.
    """

    model_config = ConfigDict(frozen=True)

    checkout_id: str
    device_id: str
    returned_at: datetime | None = None
    checkout_deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Unreturned and the parent checkout is not soft-deleted."""
        return self.returned_at is None and self.checkout_deleted_at is None
