"""Topic layout and event taxonomy shared by the ingestion core."""

from __future__ import annotations

import re

TOPIC_PREFIX = "tablet"

STATUS_TOPIC = f"{TOPIC_PREFIX}/+/status"
LOCATION_TOPIC = f"{TOPIC_PREFIX}/+/location"
METRICS_TOPIC = f"{TOPIC_PREFIX}/+/metrics"
EVENT_TOPIC = f"{TOPIC_PREFIX}/+/event"

COMMAND_TOPIC_TEMPLATE = f"{TOPIC_PREFIX}/{{device_code}}/command"

# Device code is everything between the prefix and the kind suffix.
TOPIC_RE = re.compile(rf"^{TOPIC_PREFIX}/(?P<device_code>.+)/(?P<kind>status|location|metrics|event)$")

IMPORTANT_EVENTS: frozenset[str] = frozenset(
    {
        "BOOT",
        "SHUTDOWN",
        "LOCK",
        "UNLOCK",
        "KIOSK_ENABLED",
        "KIOSK_DISABLED",
        "ERROR",
    }
)

IGNORED_EVENTS: frozenset[str] = frozenset(
    {
        "APP_OPENED",
        "APP_CLOSED",
        "HEARTBEAT",
    }
)

BOOT_EVENT = "BOOT"
