"""Runtime configuration for pyontrak."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class OntrakConfig:
    """Ingestion core configuration.

    Parameters
    ----------
    broker_url : str
        MQTT broker URL (``mqtt://host:port`` or ``mqtts://host:port``).
    mqtt_username : str
        Broker username. Empty disables authentication.
    mqtt_password : str
        Broker password.
    mqtt_client_id : str
        Fixed client identity used for every session.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_connect_timeout : float
        Seconds to wait for the broker to accept a connection.
    reconnect_delay : int
        Fixed delay in seconds between automatic reconnect attempts.
        No backoff or jitter.
    mqtt_tls : bool
        Force TLS even for ``mqtt://`` URLs.
    time_zone : str
        IANA time zone that defines a device's calendar day for BOOT
        deduplication.
    heartbeat_marker : str
        Literal ``message`` value that marks a BOOT event as a heartbeat.
    min_sample_distance_m : float
        Minimum distance in metres between stored location samples.
    offline_threshold_seconds : float
        A device not seen for longer than this is reported ``OFFLINE``.
    route_min_distance_m : float
        Default minimum spacing for route simplification.
    route_max_points : int
        Upper bound on points in a simplified route.
    mapbox_access_token : str or None
        Mapbox Directions token. Provider skipped when unset.
    ors_api_key : str or None
        OpenRouteService key. Provider skipped when unset.
    routing_request_interval : float
        Pause in seconds between per-segment directions requests.
    observer_host : str
        Bind address of the websocket observer endpoint.
    observer_port : int
        Port of the websocket observer endpoint.
    """

    broker_url: str = "mqtt://localhost:1883"
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_client_id: str = "ontrak-backend"
    mqtt_keepalive: int = 60
    mqtt_connect_timeout: float = 30.0
    reconnect_delay: int = 5
    mqtt_tls: bool = False
    time_zone: str = "Asia/Bangkok"
    heartbeat_marker: str = "Heartbeat"
    min_sample_distance_m: float = 50.0
    offline_threshold_seconds: float = 5 * 60
    route_min_distance_m: float = 200.0
    route_max_points: int = 15
    mapbox_access_token: str | None = None
    ors_api_key: str | None = None
    routing_request_interval: float = 0.2
    observer_host: str = "0.0.0.0"
    observer_port: int = 3008

    @classmethod
    def from_env(cls, **overrides: Any) -> OntrakConfig:
        """Create configuration from environment variables.

        Reads optional ``ONTRAK_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        OntrakConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "ONTRAK_MQTT_BROKER_URL": "broker_url",
            "ONTRAK_MQTT_USERNAME": "mqtt_username",
            "ONTRAK_MQTT_PASSWORD": "mqtt_password",
            "ONTRAK_MQTT_CLIENT_ID": "mqtt_client_id",
            "ONTRAK_TIME_ZONE": "time_zone",
            "ONTRAK_MAPBOX_ACCESS_TOKEN": "mapbox_access_token",
            "ONTRAK_ORS_API_KEY": "ors_api_key",
            "ONTRAK_OBSERVER_HOST": "observer_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, parsed separately
        _ENV_INT_MAP = {
            "ONTRAK_MQTT_KEEPALIVE": "mqtt_keepalive",
            "ONTRAK_MQTT_RECONNECT_DELAY": "reconnect_delay",
            "ONTRAK_OBSERVER_PORT": "observer_port",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        _ENV_FLOAT_MAP = {
            "ONTRAK_MQTT_CONNECT_TIMEOUT": "mqtt_connect_timeout",
            "ONTRAK_MIN_SAMPLE_DISTANCE_M": "min_sample_distance_m",
            "ONTRAK_OFFLINE_THRESHOLD_SECONDS": "offline_threshold_seconds",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("ONTRAK_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
