"""Normalization helpers.

Broker payloads and stored action-log payloads are decoded here so handlers
can assume JSON objects.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pyontrak.exceptions import MalformedPayloadError


def decode_json_object(payload: bytes | str, *, topic: str = "") -> dict[str, Any]:
    """Decode a broker payload into a JSON object.

    Raises
    ------
    MalformedPayloadError
        Payload is not UTF-8, not JSON, or not a JSON object.
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
        parsed = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedPayloadError(f"Invalid JSON payload: {exc}", topic=topic) from exc
    if not isinstance(parsed, dict):
        raise MalformedPayloadError("Payload is not a JSON object", topic=topic)
    return parsed


def coerce_stored_payload(value: Any) -> dict[str, Any]:
    """Return a stored action-log payload as a dict.

    Older rows hold the payload as a JSON string. Anything that is not
    an object after decoding raises ``ValueError``.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        parsed = json.loads(value)
        if isinstance(parsed, dict):
            return parsed
    raise ValueError(f"Stored payload is not a JSON object: {type(value).__name__}")


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
