"""Custom exception hierarchy for pyontrak."""

from __future__ import annotations


class OntrakError(Exception):
    """Base exception for all pyontrak errors."""


class OntrakConfigError(OntrakError):
    """Invalid or missing configuration."""


class OntrakTransportError(OntrakError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MalformedPayloadError(OntrakError):
    """Inbound broker payload could not be decoded into an object."""

    def __init__(self, message: str, *, topic: str = "") -> None:
        self.topic = topic
        super().__init__(message)


class UnknownDeviceError(OntrakError):
    """Telemetry referenced a device code that has not been provisioned.

    Devices must exist in the repository before their telemetry is
    accepted; there is no auto-registration.
    """

    def __init__(self, device_code: str) -> None:
        self.device_code = device_code
        super().__init__(f"Unknown device code: {device_code}")


class RoutingError(OntrakError):
    """A directions provider returned no usable route."""

    def __init__(self, message: str, *, provider: str = "") -> None:
        self.provider = provider
        super().__init__(message)
