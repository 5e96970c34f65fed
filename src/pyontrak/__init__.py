"""pyontrak - Tablet fleet telemetry ingestion and fleet-status sync over MQTT."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyontrak")
except PackageNotFoundError:
    __version__ = "0+local"
from pyontrak._mqtt import ConnectionManager
from pyontrak.commands import CommandAction, publish_command
from pyontrak.config import OntrakConfig
from pyontrak.exceptions import (
    MalformedPayloadError,
    OntrakConfigError,
    OntrakError,
    OntrakTransportError,
    RoutingError,
    UnknownDeviceError,
)
from pyontrak.fanout import FanoutHub
from pyontrak.geo import haversine_distance, should_sample_location, simplify_route
from pyontrak.ingestion.classifier import EventClassifier, should_log_event
from pyontrak.ingestion.router import TopicRouter
from pyontrak.models import (
    ConnectionStatus,
    Device,
    FanoutMessage,
    FleetStatus,
    MaintenanceStatus,
)
from pyontrak.routing import RoutingClient
from pyontrak.service import TelemetryService
from pyontrak.state.fleet import FleetStatusAggregator
from pyontrak.state.realtime import FleetStatusNotifier

__all__ = [
    "__version__",
    "CommandAction",
    "ConnectionManager",
    "ConnectionStatus",
    "Device",
    "EventClassifier",
    "FanoutHub",
    "FanoutMessage",
    "FleetStatus",
    "FleetStatusAggregator",
    "FleetStatusNotifier",
    "MaintenanceStatus",
    "MalformedPayloadError",
    "OntrakConfig",
    "OntrakConfigError",
    "OntrakError",
    "OntrakTransportError",
    "RoutingClient",
    "RoutingError",
    "TelemetryService",
    "TopicRouter",
    "UnknownDeviceError",
    "haversine_distance",
    "publish_command",
    "should_log_event",
    "should_sample_location",
    "simplify_route",
]
