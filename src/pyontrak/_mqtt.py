"""Broker session management.

A single paho-mqtt client runs its network loop on a background thread.
Every callback is marshalled onto the owning asyncio loop, so the
subscription registry is only ever touched from the loop thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyontrak.config import OntrakConfig
from pyontrak.exceptions import OntrakConfigError

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], Awaitable[None]]
"""Async handler receiving ``(topic, payload)``."""

ClientFactory = Callable[[str], mqtt.Client]

_SCHEME_DEFAULTS: dict[str, tuple[int, bool]] = {
    "mqtt": (1883, False),
    "tcp": (1883, False),
    "mqtts": (8883, True),
    "ssl": (8883, True),
}


def _parse_broker(raw_broker: str) -> tuple[str, int, bool]:
    """Split a broker URL into ``(host, port, tls)``."""
    value = raw_broker.strip()
    if not value:
        raise OntrakConfigError("Broker URL is empty")

    scheme = "mqtt"
    if "://" in value:
        scheme, value = value.split("://", 1)
        scheme = scheme.lower()
    if scheme not in _SCHEME_DEFAULTS:
        raise OntrakConfigError(f"Unsupported broker scheme: {scheme}")
    default_port, tls = _SCHEME_DEFAULTS[scheme]

    if "/" in value:
        value = value.split("/", 1)[0]
    if "@" in value:
        value = value.rsplit("@", 1)[1]

    host, _, maybe_port = value.rpartition(":")
    if host and maybe_port.isdigit():
        return host, int(maybe_port), tls
    if not value:
        raise OntrakConfigError(f"Broker URL has no host: {raw_broker}")
    return value, default_port, tls


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        clean_session=True,
    )


class ConnectionManager:
    """Owns the broker session and the topic subscription registry.

    Subscriptions are kept across disconnects and replayed on every
    successful (re)connect. Transport failures never raise to callers;
    they are logged and paho retries on a fixed delay.
    """

    def __init__(
        self,
        config: OntrakConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        client_factory: ClientFactory = _default_client_factory,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._client_factory = client_factory
        self._logger = logger or _logger
        self._client: mqtt.Client | None = None
        self._connected = False
        self._registry: dict[str, MessageHandler] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def is_connected(self) -> bool:
        """Whether the broker session is currently live."""
        return self._connected

    @property
    def subscriptions(self) -> tuple[str, ...]:
        """Registered topic patterns, live or pending."""
        return tuple(self._registry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Start the broker session.

        Must be called from the owning event loop. Calling again while a
        session exists only re-asserts liveness; paho keeps reconnecting
        on its own until :meth:`disconnect`.
        """
        if self._client is not None:
            self._logger.debug("MQTT connect requested while session exists connected=%s", self._connected)
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        config = self._config
        host, port, tls = _parse_broker(config.broker_url)
        self._logger.info(
            "Connecting to MQTT broker host=%s port=%s client_id=%s",
            host,
            port,
            config.mqtt_client_id,
        )

        client = self._client_factory(config.mqtt_client_id)
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password or None)
        if tls or config.mqtt_tls:
            client.tls_set()
        # Same delay for min and max: fixed interval, no exponential backoff.
        client.reconnect_delay_set(min_delay=config.reconnect_delay, max_delay=config.reconnect_delay)
        client.connect_timeout = config.mqtt_connect_timeout

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        self._client = client
        client.connect_async(host, port, keepalive=config.mqtt_keepalive)
        client.loop_start()
        self._logger.debug("MQTT network loop started")

    def disconnect(self) -> None:
        """Close the session. The subscription registry is kept."""
        client = self._client
        self._client = None
        was_connected = self._connected
        self._connected = False

        if client is None:
            return
        try:
            if was_connected:
                self._logger.debug("MQTT disconnect requested")
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.info("MQTT connection closed")

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def subscribe(self, topic_pattern: str, handler: MessageHandler) -> None:
        """Register *handler* for *topic_pattern*; last registration wins."""
        if not topic_pattern:
            raise ValueError("Topic pattern must not be empty")
        replaced = topic_pattern in self._registry
        self._registry[topic_pattern] = handler
        if replaced:
            self._logger.debug("Replaced handler for %s", topic_pattern)
            return
        if self._connected and self._client is not None:
            self._subscribe_now(self._client, topic_pattern)

    def unsubscribe(self, topic_pattern: str) -> None:
        if self._registry.pop(topic_pattern, None) is None:
            return
        if self._connected and self._client is not None:
            self._client.unsubscribe(topic_pattern)
            self._logger.debug("Unsubscribed from %s", topic_pattern)

    def _subscribe_now(self, client: mqtt.Client, topic_pattern: str) -> None:
        result, _mid = client.subscribe(topic_pattern, qos=1)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._logger.error("Failed to subscribe to %s: %s", topic_pattern, result)
            return
        self._logger.info("Subscribed to %s", topic_pattern)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, topic: str, message: Any, *, qos: int = 1, retain: bool = False) -> bool:
        """Send *message* if connected.

        Strings and bytes are sent as-is; anything else is JSON encoded.
        Returns ``False`` when the message was dropped. Nothing is queued
        for retry.
        """
        client = self._client
        if client is None or not self._connected:
            self._logger.warning("MQTT not connected, dropping message for %s", topic)
            return False

        payload = message if isinstance(message, (str, bytes)) else json.dumps(message, default=str)
        info = client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.error("Failed to publish to %s: %s", topic, info.rc)
            return False
        self._logger.debug("Published to %s qos=%s", topic, qos)
        return True

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _call_on_loop(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            self._logger.debug("Event loop closed, dropping MQTT callback", exc_info=True)

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._call_on_loop(self._handle_connected, client)

    def _on_disconnect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        self._call_on_loop(self._handle_disconnected, client, reason_code)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        self._call_on_loop(self._dispatch, msg.topic, bytes(msg.payload))

    # ------------------------------------------------------------------
    # Loop-thread handlers
    # ------------------------------------------------------------------

    def _handle_connected(self, client: mqtt.Client) -> None:
        if client is not self._client:
            return
        self._connected = True
        self._logger.info("MQTT connected, restoring %d subscriptions", len(self._registry))
        for topic_pattern in self._registry:
            self._subscribe_now(client, topic_pattern)

    def _handle_disconnected(self, client: mqtt.Client, reason_code: Any) -> None:
        if client is not self._client:
            return
        if self._connected:
            self._logger.warning(
                "MQTT connection lost: %s, reconnecting every %ss",
                reason_code,
                self._config.reconnect_delay,
            )
        self._connected = False

    def _dispatch(self, topic: str, payload: bytes) -> None:
        handlers = [
            handler for pattern, handler in self._registry.items() if mqtt.topic_matches_sub(pattern, topic)
        ]
        if not handlers:
            self._logger.debug("No handler for topic %s", topic)
            return
        loop = cast(asyncio.AbstractEventLoop, self._loop)
        for handler in handlers:
            task = loop.create_task(self._run_handler(handler, topic, payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, handler: MessageHandler, topic: str, payload: bytes) -> None:
        try:
            await handler(topic, payload)
        except Exception:
            self._logger.error("Handler for %s raised", topic, exc_info=True)
