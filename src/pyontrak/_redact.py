"""Helpers for safe debug logging.

Broker credentials and directions-provider keys end up in configuration
objects and request URLs. These helpers mask them before anything is
emitted at DEBUG level.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "mqtt_password",
        "token",
        "access_token",
        "accesstoken",
        "mapbox_access_token",
        "api_key",
        "apikey",
        "ors_api_key",
        "authorization",
        "secret",
    }
)

_URL_SECRET_RE = re.compile(r"(?P<key>access_token|api_key)=[^&]*", re.IGNORECASE)


def redact_url(url: str) -> str:
    """Mask credential query parameters in *url*."""
    return _URL_SECRET_RE.sub(lambda m: f"{m.group('key')}=<redacted>", url)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>" if v else v
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
