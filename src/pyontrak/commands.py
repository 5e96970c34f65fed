"""Remote commands sent to tablets."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyontrak._constants import COMMAND_TOPIC_TEMPLATE
from pyontrak._mqtt import ConnectionManager


class CommandAction(StrEnum):
    """Actions understood by the tablet agent."""

    LOCK_DEVICE = "LOCK_DEVICE"
    UNLOCK_DEVICE = "UNLOCK_DEVICE"
    RESTART_DEVICE = "RESTART_DEVICE"
    OPEN_APP = "OPEN_APP"
    SHOW_MESSAGE = "SHOW_MESSAGE"
    PLAY_SOUND = "PLAY_SOUND"
    ENABLE_KIOSK = "ENABLE_KIOSK"
    DISABLE_KIOSK = "DISABLE_KIOSK"
    OPEN_CAMERA = "OPEN_CAMERA"
    TAKE_PHOTO = "TAKE_PHOTO"
    BLUETOOTH_ON = "BLUETOOTH_ON"
    BLUETOOTH_OFF = "BLUETOOTH_OFF"
    SHUTDOWN_DEVICE = "SHUTDOWN_DEVICE"


class DeviceCommand(BaseModel):
    """Wire body published on ``tablet/{device}/command``."""

    model_config = ConfigDict(frozen=True)

    action: CommandAction
    params: dict[str, Any] = Field(default_factory=dict)


def command_topic(device_code: str) -> str:
    return COMMAND_TOPIC_TEMPLATE.format(device_code=device_code)


def publish_command(
    connection: ConnectionManager,
    device_code: str,
    action: CommandAction | str,
    params: Mapping[str, Any] | None = None,
) -> bool:
    """Publish a command at QoS 1.

    Returns ``False`` if the broker session is down; the command is
    dropped, not queued.
    """
    command = DeviceCommand(action=CommandAction(action), params=dict(params or {}))
    return connection.publish(command_topic(device_code), command.model_dump_json(), qos=1)
