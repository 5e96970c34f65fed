"""Derived fleet views and the observer fan-out envelope."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FleetStatus(StrEnum):
    """Derived availability. Precedence: IN_MAINTENANCE > IN_USE > AVAILABLE."""

    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    IN_MAINTENANCE = "IN_MAINTENANCE"


FanoutType = Literal[
    "device_status",
    "device_location",
    "device_metrics",
    "device_event",
    "device_borrow_status",
]


class FanoutMessage(BaseModel):
    """Envelope pushed to every live observer."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    type: FanoutType
    device_id: str
    device_code: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class FleetStatusCounts(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    total: int = 0
    online: int = 0
    offline: int = 0
    available: int = 0
    in_use: int = 0
    in_maintenance: int = 0
