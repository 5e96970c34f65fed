"""Topic routing for tablet telemetry.

Each ``tablet/{device}/{kind}`` message is decoded into its typed model,
matched to a provisioned device and handed to the handler for its kind.
Failures are contained per message: a bad payload, an unknown device or
a repository error is logged and the next message is processed normally.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from pyontrak._constants import EVENT_TOPIC, LOCATION_TOPIC, METRICS_TOPIC, STATUS_TOPIC, TOPIC_RE
from pyontrak._mqtt import ConnectionManager
from pyontrak._redact import redact_for_log
from pyontrak.exceptions import MalformedPayloadError, UnknownDeviceError
from pyontrak.fanout import FanoutHub
from pyontrak.ingestion.classifier import EventClassifier
from pyontrak.ingestion.location import LocationTracker
from pyontrak.ingestion.normalize import decode_json_object, isoformat_or_none
from pyontrak.models.device import ConnectionStatus, Device
from pyontrak.models.fleet import FanoutMessage
from pyontrak.models.records import ActionLogEntry, MetricsRecord
from pyontrak.models.telemetry import (
    MESSAGE_MODELS,
    EventMessage,
    LocationMessage,
    MessageKind,
    MetricsMessage,
    StatusMessage,
)
from pyontrak.repositories.base import ActionLogRepository, DeviceRepository, MetricsRepository

_logger = logging.getLogger(__name__)

_STATUS_BROADCAST_EXCLUDE = frozenset({"id", "device_code", "name", "latitude", "longitude", "maintenance_status"})

INGEST_TOPICS: tuple[str, ...] = (STATUS_TOPIC, LOCATION_TOPIC, METRICS_TOPIC, EVENT_TOPIC)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _capacity_data(total: int, used: int, available: int) -> dict[str, str]:
    # Byte counts go out as strings; observers may not have 64-bit integers.
    return {"total": str(total), "used": str(used), "available": str(available)}


class TopicRouter:
    """Dispatches inbound broker messages to per-kind handlers."""

    def __init__(
        self,
        *,
        devices: DeviceRepository,
        metrics: MetricsRepository,
        action_log: ActionLogRepository,
        classifier: EventClassifier,
        locations: LocationTracker,
        fanout: FanoutHub,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._devices = devices
        self._metrics = metrics
        self._action_log = action_log
        self._classifier = classifier
        self._locations = locations
        self._fanout = fanout
        self._clock = clock
        self._logger = logger or _logger
        self._handlers: dict[MessageKind, Callable[[Device, Any], Awaitable[None]]] = {
            MessageKind.STATUS: self._handle_status,
            MessageKind.LOCATION: self._handle_location,
            MessageKind.METRICS: self._handle_metrics,
            MessageKind.EVENT: self._handle_event,
        }

    def install(self, connection: ConnectionManager) -> None:
        """Register the four ingest topic patterns on *connection*."""
        for topic_pattern in INGEST_TOPICS:
            connection.subscribe(topic_pattern, self.handle_message)

    async def handle_message(self, topic: str, payload: bytes | str) -> None:
        match = TOPIC_RE.match(topic)
        if match is None:
            return
        device_code = match["device_code"]
        kind = MessageKind(match["kind"])

        try:
            data = decode_json_object(payload, topic=topic)
            message = MESSAGE_MODELS[kind].model_validate(data)
        except (MalformedPayloadError, ValidationError) as exc:
            self._logger.warning("Dropping malformed %s payload from %s: %s", kind, device_code, exc)
            return

        self._logger.debug("Received %s from %s: %s", kind, device_code, redact_for_log(message.raw))

        try:
            device = await self._devices.find_by_code(device_code)
            if device is None:
                raise UnknownDeviceError(device_code)
            await self._handlers[kind](device, message)
        except UnknownDeviceError:
            self._logger.warning("Device %s not provisioned, %s message dropped", device_code, kind)
        except Exception:
            self._logger.error("Failed to handle %s message from %s", kind, device_code, exc_info=True)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_status(self, device: Device, message: StatusMessage) -> None:
        patch = message.telemetry_patch()
        patch["connection_status"] = ConnectionStatus.ONLINE
        patch["last_seen"] = self._clock()
        updated = await self._devices.update_telemetry(device.id, patch)

        await self._fanout.broadcast(
            FanoutMessage(
                type="device_status",
                device_id=updated.id,
                device_code=updated.device_code,
                data=updated.model_dump(mode="json", by_alias=True, exclude=set(_STATUS_BROADCAST_EXCLUDE)),
            )
        )

    async def _handle_location(self, device: Device, message: LocationMessage) -> None:
        result = await self._locations.update(device, message)
        updated = result.device

        await self._fanout.broadcast(
            FanoutMessage(
                type="device_location",
                device_id=updated.id,
                device_code=updated.device_code,
                data={
                    "latitude": updated.latitude,
                    "longitude": updated.longitude,
                    "accuracy": message.accuracy,
                    "lastSeen": isoformat_or_none(updated.last_seen),
                    "sampled": result.sampled,
                },
            )
        )

    async def _handle_metrics(self, device: Device, message: MetricsMessage) -> None:
        record = MetricsRecord(
            device_id=device.id,
            cpu=message.cpu,
            memory_total=message.memory.total,
            memory_used=message.memory.used,
            memory_available=message.memory.available,
            storage_total=message.storage.total,
            storage_used=message.storage.used,
            storage_available=message.storage.available,
            network_type=message.network_type,
            foreground_app=message.foreground_app,
            created_at=self._clock(),
        )
        await self._metrics.append(record)

        await self._fanout.broadcast(
            FanoutMessage(
                type="device_metrics",
                device_id=device.id,
                device_code=device.device_code,
                data={
                    "cpu": record.cpu,
                    "memory": _capacity_data(record.memory_total, record.memory_used, record.memory_available),
                    "storage": _capacity_data(record.storage_total, record.storage_used, record.storage_available),
                    "networkType": record.network_type,
                    "foregroundApp": record.foreground_app,
                    "timestamp": record.created_at.isoformat(),
                },
            )
        )

    async def _handle_event(self, device: Device, message: EventMessage) -> None:
        if not await self._classifier.classify(device.id, message.event_type, message.raw):
            return

        now = self._clock()
        await self._action_log.append(
            ActionLogEntry(
                device_id=device.id,
                action=message.event_type,
                payload=message.raw,
                created_at=now,
            )
        )
        self._logger.info("Logged %s event for device %s", message.event_type, device.device_code)

        data: dict[str, Any] = {
            "eventType": message.event_type,
            "timestamp": (message.timestamp or now).isoformat(),
        }
        if message.message is not None:
            data["message"] = message.message
        await self._fanout.broadcast(
            FanoutMessage(
                type="device_event",
                device_id=device.id,
                device_code=device.device_code,
                data=data,
            )
        )
