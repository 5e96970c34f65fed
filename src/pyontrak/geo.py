"""Great-circle distance, location sampling and route simplification."""

from __future__ import annotations

import math
from collections.abc import Sequence

EARTH_RADIUS_M = 6_371_000.0
"""Spherical Earth; good enough at urban scale."""

DEFAULT_MIN_SAMPLE_DISTANCE_M = 50.0
DEFAULT_ROUTE_MIN_DISTANCE_M = 200.0
DEFAULT_ROUTE_MAX_POINTS = 15


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in metres between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_between(a: tuple[float, float], b: tuple[float, float]) -> float:
    return haversine_distance(a[0], a[1], b[0], b[1])


def should_sample_location(
    previous: tuple[float, float] | None,
    current: tuple[float, float],
    min_distance: float = DEFAULT_MIN_SAMPLE_DISTANCE_M,
) -> bool:
    """Decide whether *current* is worth persisting as a history sample.

    The first fix is always kept. After that a fix is kept only once the
    device has moved at least *min_distance* metres from *previous*.
    """
    if previous is None:
        return True
    return distance_between(previous, current) >= min_distance


def simplify_route(
    points: Sequence[tuple[float, float]],
    min_distance: float = DEFAULT_ROUTE_MIN_DISTANCE_M,
    max_points: int = DEFAULT_ROUTE_MAX_POINTS,
) -> list[tuple[float, float]]:
    """Reduce a location history to a short polyline for directions lookups.

    A point closer than *min_distance* to the point before it in the
    history is dropped; the first and last points are always kept. If
    more than *max_points* remain, the result is stride-sampled down,
    still ending on the final point. Identical input always yields
    identical output.
    """
    if max_points < 2:
        raise ValueError("max_points must be at least 2")
    if len(points) <= 2:
        return list(points)

    kept: list[tuple[float, float]] = [points[0]]
    for previous, point in zip(points[:-2], points[1:-1]):
        if distance_between(previous, point) >= min_distance:
            kept.append(point)
    kept.append(points[-1])

    if len(kept) <= max_points:
        return kept

    # Stride over all but the final point so it can be appended unconditionally.
    step = math.ceil((len(kept) - 1) / (max_points - 1))
    sampled = kept[0 : len(kept) - 1 : step]
    sampled.append(kept[-1])
    return sampled
