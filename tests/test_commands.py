from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import pytest
from conftest import FakeMqttClient
from pydantic import ValidationError

from pyontrak._mqtt import ConnectionManager
from pyontrak.commands import CommandAction, DeviceCommand, command_topic, publish_command
from pyontrak.config import OntrakConfig


def test_command_topic() -> None:
    assert command_topic("TAB-001") == "tablet/TAB-001/command"


def test_unknown_action_rejected() -> None:
    with pytest.raises(ValidationError):
        DeviceCommand(action="SELF_DESTRUCT")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_publish_command_sends_action_and_params(
    client_factory: Callable[[str], FakeMqttClient],
    mqtt_clients: list[FakeMqttClient],
) -> None:
    manager = ConnectionManager(OntrakConfig(), client_factory=client_factory)
    manager.connect()
    mqtt_clients[0].fire_connect()
    for _ in range(3):
        await asyncio.sleep(0)

    assert publish_command(manager, "TAB-001", CommandAction.SHOW_MESSAGE, {"text": "Return by 5pm"}) is True
    assert publish_command(manager, "TAB-002", "LOCK_DEVICE") is True

    (topic, payload, qos, retain), (second_topic, second_payload, *_rest) = mqtt_clients[0].published
    assert (topic, qos, retain) == ("tablet/TAB-001/command", 1, False)
    assert json.loads(payload) == {"action": "SHOW_MESSAGE", "params": {"text": "Return by 5pm"}}
    assert second_topic == "tablet/TAB-002/command"
    assert json.loads(second_payload) == {"action": "LOCK_DEVICE", "params": {}}


def test_publish_command_while_disconnected_returns_false(
    client_factory: Callable[[str], FakeMqttClient],
) -> None:
    manager = ConnectionManager(OntrakConfig(), client_factory=client_factory)
    assert publish_command(manager, "TAB-001", CommandAction.RESTART_DEVICE) is False
