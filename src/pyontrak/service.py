"""High-level async facade wiring the ingestion core together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp
from websockets.asyncio.server import Server

from pyontrak._mqtt import ConnectionManager
from pyontrak.commands import CommandAction, publish_command
from pyontrak.config import OntrakConfig
from pyontrak.exceptions import OntrakError
from pyontrak.fanout import FanoutHub, start_observer_server
from pyontrak.ingestion.classifier import EventClassifier
from pyontrak.ingestion.location import LocationTracker
from pyontrak.ingestion.router import TopicRouter
from pyontrak.repositories.base import (
    ActionLogRepository,
    CheckoutRepository,
    DeviceRepository,
    LocationHistoryRepository,
    MetricsRepository,
)
from pyontrak.routing import RoutingClient
from pyontrak.state.fleet import FleetStatusAggregator
from pyontrak.state.realtime import FleetStatusNotifier

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TelemetryService:
    """Telemetry ingestion and fleet-status sync for one process.

    Usage::

        async with TelemetryService(config, devices=..., ...) as service:
            await service.serve_observers()
            service.publish_command("TAB-001", CommandAction.LOCK_DEVICE)
    """

    def __init__(
        self,
        config: OntrakConfig,
        *,
        devices: DeviceRepository,
        location_history: LocationHistoryRepository,
        metrics: MetricsRepository,
        action_log: ActionLogRepository,
        checkouts: CheckoutRepository,
        session: aiohttp.ClientSession | None = None,
        connection: ConnectionManager | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._connection = connection or ConnectionManager(config)
        self._fanout = FanoutHub()
        self._classifier = EventClassifier(
            action_log,
            time_zone=config.time_zone,
            heartbeat_marker=config.heartbeat_marker,
            clock=clock,
        )
        self._router = TopicRouter(
            devices=devices,
            metrics=metrics,
            action_log=action_log,
            classifier=self._classifier,
            locations=LocationTracker(
                devices,
                location_history,
                min_distance=config.min_sample_distance_m,
                clock=clock,
            ),
            fanout=self._fanout,
            clock=clock,
        )
        self._aggregator = FleetStatusAggregator(
            devices,
            checkouts,
            offline_threshold=timedelta(seconds=config.offline_threshold_seconds),
        )
        self._notifier = FleetStatusNotifier(self._aggregator, self._fanout, clock=clock)
        self._routing: RoutingClient | None = None
        self._observer_server: Server | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TelemetryService:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._routing = RoutingClient(self._config, self._http_session)
        self._router.install(self._connection)
        self._connection.connect()
        _logger.info("Telemetry service started")
        return self

    async def __aexit__(self, *exc: Any) -> None:
        server = self._observer_server
        self._observer_server = None
        if server is not None:
            server.close()
            await server.wait_closed()
        self._connection.disconnect()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._routing = None
        _logger.info("Telemetry service stopped")

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def fanout(self) -> FanoutHub:
        return self._fanout

    @property
    def router(self) -> TopicRouter:
        return self._router

    @property
    def aggregator(self) -> FleetStatusAggregator:
        return self._aggregator

    @property
    def notifier(self) -> FleetStatusNotifier:
        return self._notifier

    @property
    def routing(self) -> RoutingClient:
        if self._routing is None:
            raise OntrakError("Service not started. Use 'async with TelemetryService(...) as service:'")
        return self._routing

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def serve_observers(self, host: str | None = None, port: int | None = None) -> Server:
        """Start the observer websocket endpoint; stopped on exit."""
        if self._observer_server is not None:
            return self._observer_server
        self._observer_server = await start_observer_server(
            self._fanout,
            host or self._config.observer_host,
            port if port is not None else self._config.observer_port,
        )
        return self._observer_server

    def publish_command(
        self,
        device_code: str,
        action: CommandAction | str,
        params: Mapping[str, Any] | None = None,
    ) -> bool:
        return publish_command(self._connection, device_code, action, params)

    async def run_forever(self) -> None:
        """Block until cancelled, keeping the broker session alive."""
        await asyncio.Event().wait()
