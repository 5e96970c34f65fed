"""Event filtering and BOOT deduplication.

Tablets report every lifecycle event they see. Only a short allow-list
is worth an action-log row, and BOOT needs extra care: agents send
periodic heartbeat pings typed as BOOT, and a real boot should be logged
at most once per device per local calendar day.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from pyontrak._constants import BOOT_EVENT, IGNORED_EVENTS, IMPORTANT_EVENTS
from pyontrak.ingestion.normalize import coerce_stored_payload
from pyontrak.repositories.base import ActionLogRepository

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def should_log_event(event_type: str | None) -> bool:
    """Return ``True`` only for event types on the allow-list.

    Unknown types are rejected; not being ignored is not enough.
    """
    if not event_type:
        return False
    return event_type in IMPORTANT_EVENTS


def is_heartbeat_payload(payload: Any, marker: str) -> bool:
    """Whether *payload* carries the heartbeat marker as its message.

    Raises ``ValueError`` when the payload cannot be read as an object.
    """
    return coerce_stored_payload(payload).get("message") == marker


def local_day_window(moment: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return ``[00:00, next 00:00)`` of *moment*'s calendar day in *tz*."""
    local_date = moment.astimezone(tz).date()
    start = datetime.combine(local_date, time.min, tzinfo=tz)
    end = datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


class EventClassifier:
    """Accept/reject decision for inbound device events."""

    def __init__(
        self,
        action_log: ActionLogRepository,
        *,
        time_zone: str = "Asia/Bangkok",
        heartbeat_marker: str = "Heartbeat",
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._action_log = action_log
        self._tz = ZoneInfo(time_zone)
        self._heartbeat_marker = heartbeat_marker
        self._clock = clock
        self._logger = logger or _logger

    async def classify(
        self,
        device_id: str,
        event_type: str | None,
        payload: Mapping[str, Any] | str,
    ) -> bool:
        """Return whether the event should be written to the action log."""
        if not should_log_event(event_type):
            if event_type in IGNORED_EVENTS:
                self._logger.debug("Ignoring %s event from device %s", event_type, device_id)
            else:
                self._logger.debug("Unknown event type %r from device %s, not logged", event_type, device_id)
            return False
        if event_type == BOOT_EVENT:
            return await self.should_log_boot_event(device_id, payload)
        return True

    async def should_log_boot_event(
        self,
        device_id: str,
        payload: Mapping[str, Any] | str,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Deduplicate BOOT events to one real boot per device per day.

        Heartbeat impostors are rejected outright. A genuine boot is
        accepted when today's most recent BOOT entry is missing or is
        itself a heartbeat impostor. Any failure rejects.
        """
        try:
            if is_heartbeat_payload(payload, self._heartbeat_marker):
                self._logger.debug("Skipping heartbeat BOOT for device %s", device_id)
                return False

            start, end = local_day_window(now or self._clock(), self._tz)
            previous = await self._action_log.find_most_recent(device_id, BOOT_EVENT, start, end)
            if previous is None:
                return True

            if is_heartbeat_payload(previous.payload, self._heartbeat_marker):
                self._logger.debug(
                    "Previous BOOT for device %s was a heartbeat, accepting real boot",
                    device_id,
                )
                return True

            self._logger.debug("Device %s already has a BOOT logged today", device_id)
            return False
        except Exception:
            self._logger.warning("BOOT dedup check failed for device %s, rejecting", device_id, exc_info=True)
            return False
