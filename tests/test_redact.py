from __future__ import annotations

from pyontrak._redact import redact_for_log, redact_url


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "broker_url": "mqtt://broker:1883",
        "mqtt_password": "pw",
        "mapbox_access_token": "pk.abc",
        "nested": {"api_key": "ors-key", "Authorization": "Bearer x"},
        "empty": {"password": ""},
    }

    redacted = redact_for_log(payload)
    assert redacted["broker_url"] == "mqtt://broker:1883"
    assert redacted["mqtt_password"] == "<redacted>"
    assert redacted["mapbox_access_token"] == "<redacted>"
    assert redacted["nested"] == {"api_key": "<redacted>", "Authorization": "<redacted>"}
    assert redacted["empty"]["password"] == ""


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_summarizes_bytes_and_lists() -> None:
    redacted = redact_for_log({"frame": b"\x00\x01\x02", "apps": ["a", {"token": "t"}]})
    assert redacted["frame"] == "<bytes:3b>"
    assert redacted["apps"] == ["a", {"token": "<redacted>"}]


def test_redact_url_masks_credentials() -> None:
    url = "https://api.mapbox.com/directions/v5/mapbox/driving/1,2;3,4?geometries=geojson&access_token=pk.abc"
    assert redact_url(url).endswith("geometries=geojson&access_token=<redacted>")
    assert redact_url("https://ors/v2?coordinates=1,2|3,4&api_key=k&x=1").endswith("api_key=<redacted>&x=1")
