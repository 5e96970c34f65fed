from __future__ import annotations

# pylint: disable=redefined-outer-name

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest

from pyontrak.models.device import Device, MaintenanceStatus
from pyontrak.repositories.memory import (
    InMemoryActionLogRepository,
    InMemoryCheckoutRepository,
    InMemoryDeviceRepository,
    InMemoryLocationHistoryRepository,
    InMemoryMetricsRepository,
)

# 09:00 in Asia/Bangkok.
FIXED_NOW = datetime(2026, 3, 10, 2, 0, tzinfo=UTC)


@dataclass
class FakeReasonCode:
    value: int = 0

    def __str__(self) -> str:
        return "Success" if self.value == 0 else f"Failure({self.value})"


@dataclass
class FakePublishInfo:
    rc: int = 0


@dataclass
class FakeMqttClient:
    """Stands in for ``paho.mqtt.client.Client``; ``fire_*`` simulate the broker."""

    client_id: str
    subscribed: list[str] = field(default_factory=list)
    unsubscribed: list[str] = field(default_factory=list)
    published: list[tuple[str, Any, int, bool]] = field(default_factory=list)
    connect_args: tuple[str, int, int] | None = None
    credentials: tuple[str, str | None] | None = None
    reconnect_delay: tuple[int, int] | None = None
    connect_timeout: float | None = None
    tls: bool = False
    loop_started: bool = False
    loop_stopped: bool = False
    disconnected: bool = False
    on_connect: Callable[..., None] | None = None
    on_disconnect: Callable[..., None] | None = None
    on_message: Callable[..., None] | None = None

    def enable_logger(self, _logger: Any) -> None:
        return None

    def username_pw_set(self, username: str, password: str | None) -> None:
        self.credentials = (username, password)

    def tls_set(self) -> None:
        self.tls = True

    def reconnect_delay_set(self, min_delay: int, max_delay: int) -> None:
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host: str, port: int, keepalive: int) -> None:
        self.connect_args = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0) -> tuple[int, int]:
        self.subscribed.append(topic)
        return 0, len(self.subscribed)

    def unsubscribe(self, topic: str) -> tuple[int, int]:
        self.unsubscribed.append(topic)
        return 0, 1

    def publish(self, topic: str, payload: Any, qos: int = 0, retain: bool = False) -> FakePublishInfo:
        self.published.append((topic, payload, qos, retain))
        return FakePublishInfo()

    def fire_connect(self, rc: int = 0) -> None:
        assert self.on_connect is not None
        self.on_connect(self, None, None, FakeReasonCode(rc), None)

    def fire_disconnect(self) -> None:
        assert self.on_disconnect is not None
        self.on_disconnect(self, None, None, FakeReasonCode(7), None)

    def fire_message(self, topic: str, payload: dict[str, Any] | bytes) -> None:
        assert self.on_message is not None
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=raw))


@dataclass(eq=False)
class RecordingObserver:
    """Observer connection that records every frame it is sent."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("observer gone")
        self.messages.append(json.loads(message))


@pytest.fixture
def mqtt_clients() -> list[FakeMqttClient]:
    return []


@pytest.fixture
def client_factory(mqtt_clients: list[FakeMqttClient]) -> Callable[[str], FakeMqttClient]:
    def factory(client_id: str) -> FakeMqttClient:
        client = FakeMqttClient(client_id=client_id)
        mqtt_clients.append(client)
        return client

    return factory


@pytest.fixture
def device_repo() -> InMemoryDeviceRepository:
    repo = InMemoryDeviceRepository()
    repo.add(Device(id="dev-1", device_code="TAB-001"))
    repo.add(Device(id="dev-2", device_code="TAB-002", maintenance_status=MaintenanceStatus.IN_MAINTENANCE))
    repo.add(Device(id="dev-3", device_code="TAB-003", maintenance_status=MaintenanceStatus.DAMAGED))
    return repo


@pytest.fixture
def history_repo() -> InMemoryLocationHistoryRepository:
    return InMemoryLocationHistoryRepository()


@pytest.fixture
def metrics_repo() -> InMemoryMetricsRepository:
    return InMemoryMetricsRepository()


@pytest.fixture
def action_log_repo() -> InMemoryActionLogRepository:
    return InMemoryActionLogRepository()


@pytest.fixture
def checkout_repo() -> InMemoryCheckoutRepository:
    return InMemoryCheckoutRepository()
