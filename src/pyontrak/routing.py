"""Road-following paths for location histories.

Each consecutive pair of points is routed through Mapbox Directions,
then OpenRouteService, and finally joined with a straight line when
neither provider answers. Coordinates are ``(latitude, longitude)``
throughout; both providers speak ``[longitude, latitude]``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import aiohttp

from pyontrak._redact import redact_for_log, redact_url
from pyontrak.config import OntrakConfig
from pyontrak.exceptions import OntrakTransportError, RoutingError
from pyontrak.geo import simplify_route

_logger = logging.getLogger(__name__)

MAPBOX_API_URL = "https://api.mapbox.com/directions/v5"
ORS_API_URL = "https://api.openrouteservice.org/v2/directions"

Coordinate = tuple[float, float]

_MAPBOX_PROFILES: dict[str, str] = {
    "driving-car": "driving",
    "foot-walking": "walking",
    "cycling-regular": "cycling",
}


def _to_lat_lon(points: Any) -> list[Coordinate]:
    if not isinstance(points, list) or not points:
        raise ValueError("Route geometry has no coordinates")
    return [(float(lat), float(lon)) for lon, lat, *_ in points]


class RoutingClient:
    """Directions lookups with provider fallback."""

    def __init__(
        self,
        config: OntrakConfig,
        http_session: aiohttp.ClientSession,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._sleep = sleep
        self._logger = logger or _logger

    async def _get_json(
        self,
        url: str,
        *,
        provider: str,
        accept: str,
        params: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        safe_url = redact_url(url)
        self._logger.debug("GET %s params=%s", safe_url, redact_for_log(params))
        try:
            async with self._http.get(url, params=params, headers={"Accept": accept}) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise OntrakTransportError(
                        f"HTTP {resp.status} from {provider}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=safe_url,
                    )
        except OntrakTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise OntrakTransportError(
                f"Request to {provider} failed: {exc}",
                endpoint=safe_url,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OntrakTransportError(
                f"Invalid JSON from {provider}: {text[:200]}",
                endpoint=safe_url,
            ) from exc
        if not isinstance(body, dict):
            raise OntrakTransportError(f"Unexpected response shape from {provider}", endpoint=safe_url)
        return body

    async def _segment_mapbox(self, start: Coordinate, end: Coordinate, profile: str) -> list[Coordinate]:
        token = self._config.mapbox_access_token
        if not token:
            raise RoutingError("Mapbox access token not configured", provider="mapbox")

        coords = f"{start[1]},{start[0]};{end[1]},{end[0]}"
        mapbox_profile = _MAPBOX_PROFILES.get(profile, "driving")
        url = f"{MAPBOX_API_URL}/mapbox/{mapbox_profile}/{coords}"
        body = await self._get_json(
            url,
            provider="mapbox",
            accept="application/json",
            params={"geometries": "geojson", "access_token": token},
        )

        routes = body.get("routes")
        try:
            return _to_lat_lon(routes[0]["geometry"]["coordinates"])  # type: ignore[index]
        except (TypeError, KeyError, IndexError, ValueError) as exc:
            raise RoutingError("Mapbox returned no route", provider="mapbox") from exc

    async def _segment_ors(self, start: Coordinate, end: Coordinate, profile: str) -> list[Coordinate]:
        coords = f"{start[1]},{start[0]}|{end[1]},{end[0]}"
        params = {"coordinates": coords, "geometry": "true"}
        if self._config.ors_api_key:
            params["api_key"] = self._config.ors_api_key
        body = await self._get_json(
            f"{ORS_API_URL}/{profile}",
            provider="openrouteservice",
            accept="application/json, application/geo+json",
            params=params,
        )

        try:
            return _to_lat_lon(body["geometry"]["coordinates"])
        except (TypeError, KeyError, ValueError) as exc:
            raise RoutingError("OpenRouteService returned no route", provider="openrouteservice") from exc

    async def route_segment(
        self,
        start: Coordinate,
        end: Coordinate,
        profile: str = "driving-car",
    ) -> list[Coordinate] | None:
        """Route one leg, or ``None`` when every provider failed."""
        for provider in (self._segment_mapbox, self._segment_ors):
            try:
                return await provider(start, end, profile)
            except (OntrakTransportError, RoutingError) as exc:
                self._logger.warning("Directions lookup failed: %s", exc)
        return None

    async def calculate_route(
        self,
        coordinates: Sequence[Coordinate],
        profile: str = "driving-car",
    ) -> list[Coordinate]:
        """Return a road-following path through *coordinates*.

        Legs that cannot be routed are drawn as straight lines. If no leg
        could be routed at all, the input is returned unchanged.
        """
        points = list(coordinates)
        if len(points) < 2:
            return points

        try:
            route: list[Coordinate] = []
            has_route = False
            for index, (start, end) in enumerate(zip(points, points[1:])):
                segment = await self.route_segment(start, end, profile)
                if segment:
                    has_route = True
                    # Consecutive legs share an endpoint.
                    route.extend(segment if index == 0 else segment[1:])
                else:
                    if index == 0:
                        route.append(start)
                    route.append(end)

                if index < len(points) - 2:
                    await self._sleep(self._config.routing_request_interval)

            if not route or route[-1] != points[-1]:
                route.append(points[-1])
        except Exception:
            self._logger.error("Route calculation failed, returning input points", exc_info=True)
            return points

        return route if has_route else points

    async def calculate_simplified_route(
        self,
        coordinates: Sequence[Coordinate],
        min_distance: float | None = None,
        profile: str = "driving-car",
    ) -> list[Coordinate]:
        """Simplify *coordinates* first, then route the remaining points."""
        simplified = simplify_route(
            coordinates,
            min_distance=self._config.route_min_distance_m if min_distance is None else min_distance,
            max_points=self._config.route_max_points,
        )
        return await self.calculate_route(simplified, profile)
