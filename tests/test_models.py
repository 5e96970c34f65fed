"""Tests for telemetry payload parsing with OntrakBaseModel."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pyontrak.models._base import parse_epoch_timestamp
from pyontrak.models.device import ConnectionStatus, Device
from pyontrak.models.fleet import FanoutMessage
from pyontrak.models.telemetry import EventMessage, LocationMessage, MetricsMessage, StatusMessage

# ------------------------------------------------------------------
# Timestamps
# ------------------------------------------------------------------


class TestEpochTimestamp:
    def test_milliseconds(self) -> None:
        assert parse_epoch_timestamp(1_773_108_000_000) == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    def test_seconds(self) -> None:
        assert parse_epoch_timestamp(1_773_108_000) == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    def test_numeric_string(self) -> None:
        assert parse_epoch_timestamp("1773108000000") == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    def test_iso_string(self) -> None:
        assert parse_epoch_timestamp("2026-03-10T09:00:00+07:00") == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)
        assert parse_epoch_timestamp("2026-03-10T02:00:00Z") == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    def test_naive_datetime_assumed_utc(self) -> None:
        assert parse_epoch_timestamp(datetime(2026, 3, 10, 2, 0)) == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    def test_none(self) -> None:
        assert parse_epoch_timestamp(None) is None

    @pytest.mark.parametrize("value", [{}, [1], True, 1e300, 10**30, float("inf"), "not a date"])
    def test_unreadable_values_raise_value_error(self, value: object) -> None:
        with pytest.raises(ValueError):
            parse_epoch_timestamp(value)


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------


class TestStatusMessage:
    def test_camel_case_keys_and_raw(self) -> None:
        payload = {"battery": 88, "isCharging": False, "bootTime": 1_773_100_000_123, "simSerial": "8966"}
        msg = StatusMessage.model_validate(payload)

        assert msg.battery == 88
        assert msg.is_charging is False
        assert msg.boot_time == 1_773_100_000_123
        assert msg.raw == payload

    def test_patch_contains_only_reported_fields(self) -> None:
        msg = StatusMessage.model_validate(
            {"battery": 40, "wifiStatus": None, "batteryHealth": "  ", "timestamp": 1_773_108_000_000}
        )

        assert msg.telemetry_patch() == {"battery": 40}

    @pytest.mark.parametrize("battery", [-1, 101])
    def test_battery_out_of_range_rejected(self, battery: int) -> None:
        with pytest.raises(ValidationError):
            StatusMessage.model_validate({"battery": battery})


# ------------------------------------------------------------------
# Location / metrics / event
# ------------------------------------------------------------------


class TestLocationMessage:
    def test_parses_fix(self) -> None:
        msg = LocationMessage.model_validate(
            {"latitude": 13.75, "longitude": 100.5, "accuracy": 4.2, "timestamp": 1_773_108_000_000}
        )
        assert (msg.latitude, msg.longitude, msg.accuracy) == (13.75, 100.5, 4.2)
        assert msg.timestamp == datetime(2026, 3, 10, 2, 0, tzinfo=UTC)

    @pytest.mark.parametrize(
        "payload",
        [{"latitude": 91, "longitude": 0}, {"latitude": 0, "longitude": 181}, {"latitude": 1}, {"longitude": 1}],
    )
    def test_invalid_fix_rejected(self, payload: dict[str, float]) -> None:
        with pytest.raises(ValidationError):
            LocationMessage.model_validate(payload)


class TestMetricsMessage:
    def test_large_capacities_preserved(self) -> None:
        msg = MetricsMessage.model_validate(
            {"cpu": 12.5, "storage": {"total": 274_877_906_944, "used": 1, "available": 274_877_906_943}}
        )
        assert msg.storage.total == 274_877_906_944
        assert msg.memory.total == 0

    def test_missing_sections_default_to_zero(self) -> None:
        msg = MetricsMessage.model_validate({})
        assert msg.cpu == 0.0
        assert msg.network_type is None


class TestEventMessage:
    def test_event_fields(self) -> None:
        msg = EventMessage.model_validate({"eventType": "BOOT", "message": "Heartbeat"})
        assert msg.event_type == "BOOT"
        assert msg.message == "Heartbeat"

    def test_missing_event_type_is_empty(self) -> None:
        assert EventMessage.model_validate({"message": "x"}).event_type == ""


# ------------------------------------------------------------------
# Device / fan-out envelope
# ------------------------------------------------------------------


def test_device_defaults() -> None:
    device = Device(id="dev-1", device_code="TAB-001")
    assert device.connection_status is ConnectionStatus.OFFLINE
    assert device.has_position is False
    assert device.model_copy(update={"latitude": 1.0, "longitude": 2.0}).has_position is True


def test_fanout_envelope_omits_missing_device_code() -> None:
    message = FanoutMessage(type="device_borrow_status", device_id="dev-1", data={"borrowStatus": "IN_USE"})
    assert message.to_json() == '{"type":"device_borrow_status","deviceId":"dev-1","data":{"borrowStatus":"IN_USE"}}'
