"""Best-effort broadcast to live dashboard observers.

Observers are websocket connections. There is no backlog and no replay:
an observer that is not connected when a broadcast happens misses it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

import websockets.exceptions
from websockets.asyncio.server import Server, serve

from pyontrak.models.fleet import FanoutMessage

_logger = logging.getLogger(__name__)


class ObserverConnection(Protocol):
    """The subset of a websocket server connection the hub relies on."""

    async def send(self, message: str) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        ...


class FanoutHub:
    """Live observer set with isolated per-observer delivery."""

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._observers: set[ObserverConnection] = set()
        self._logger = logger or _logger

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def register(self, connection: ObserverConnection) -> None:
        self._observers.add(connection)
        self._logger.info("Observer connected, %d live", len(self._observers))

    def unregister(self, connection: ObserverConnection) -> None:
        if connection in self._observers:
            self._observers.discard(connection)
            self._logger.info("Observer disconnected, %d live", len(self._observers))

    async def broadcast(self, message: FanoutMessage | Mapping[str, Any]) -> int:
        """Deliver *message* to every observer and return the delivery count.

        The message is serialized once. An observer whose send fails is
        dropped from the set; the others still receive the message.
        """
        if not self._observers:
            return 0

        if isinstance(message, FanoutMessage):
            text = message.to_json()
            message_type: Any = message.type
        else:
            text = json.dumps(message, default=str)
            message_type = message.get("type")

        observers = list(self._observers)
        results = await asyncio.gather(
            *(observer.send(text) for observer in observers),
            return_exceptions=True,
        )

        delivered = 0
        for observer, result in zip(observers, results):
            if isinstance(result, BaseException):
                self._logger.debug("Dropping observer after failed send: %r", result)
                self.unregister(observer)
            else:
                delivered += 1

        if delivered:
            self._logger.debug("Broadcast %s to %d observers", message_type, delivered)
        return delivered

    async def serve(self, connection: ObserverConnection) -> None:
        """Websocket handler: keep *connection* registered until it closes.

        Observers are receive-only; anything they send is discarded.
        """
        self.register(connection)
        try:
            async for _message in connection:
                pass
        except websockets.exceptions.ConnectionClosed as exc:
            self._logger.debug("Observer connection closed: %s", exc)
        finally:
            self.unregister(connection)


async def start_observer_server(hub: FanoutHub, host: str, port: int) -> Server:
    """Start the websocket endpoint dashboards connect to."""
    server = await serve(hub.serve, host, port)
    _logger.info("Observer websocket server listening on %s:%s", host, port)
    return server
