from __future__ import annotations

import pytest

from pyontrak.geo import haversine_distance, should_sample_location, simplify_route

# Metres per degree of latitude on the 6,371 km sphere.
_M_PER_DEG_LAT = 111_194.93


def _north_of(origin: tuple[float, float], metres: float) -> tuple[float, float]:
    return origin[0] + metres / _M_PER_DEG_LAT, origin[1]


BANGKOK = (13.7563, 100.5018)


def test_haversine_zero_for_identical_points() -> None:
    assert haversine_distance(*BANGKOK, *BANGKOK) == 0.0


def test_haversine_one_degree_latitude() -> None:
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(_M_PER_DEG_LAT, rel=1e-6)


def test_haversine_is_symmetric() -> None:
    other = (13.7650, 100.5380)
    assert haversine_distance(*BANGKOK, *other) == pytest.approx(haversine_distance(*other, *BANGKOK))


def test_first_fix_is_always_sampled() -> None:
    assert should_sample_location(None, BANGKOK) is True


def test_sampling_threshold_is_inclusive_at_fifty_metres() -> None:
    assert should_sample_location(BANGKOK, _north_of(BANGKOK, 49.0)) is False
    assert should_sample_location(BANGKOK, _north_of(BANGKOK, 50.5)) is True


def test_sampling_decision_is_deterministic() -> None:
    new = _north_of(BANGKOK, 51.0)
    decisions = {should_sample_location(BANGKOK, new) for _ in range(100)}
    assert decisions == {True}


def test_sampling_honours_custom_min_distance() -> None:
    new = _north_of(BANGKOK, 120.0)
    assert should_sample_location(BANGKOK, new, min_distance=100.0) is True
    assert should_sample_location(BANGKOK, new, min_distance=150.0) is False


class TestSimplifyRoute:
    def test_dense_cluster_plus_far_point_keeps_endpoints(self) -> None:
        points = [_north_of(BANGKOK, 10.0 * i) for i in range(20)]
        points.append(_north_of(points[-1], 500.0))

        simplified = simplify_route(points)

        assert simplified[0] == points[0]
        assert simplified[-1] == points[-1]
        assert len(simplified) <= 15

    def test_short_inputs_returned_unchanged(self) -> None:
        assert simplify_route([]) == []
        assert simplify_route([BANGKOK]) == [BANGKOK]
        two = [BANGKOK, _north_of(BANGKOK, 5.0)]
        assert simplify_route(two) == two

    def test_spread_points_are_kept_under_the_cap(self) -> None:
        points = [_north_of(BANGKOK, 300.0 * i) for i in range(10)]
        assert simplify_route(points) == points

    @pytest.mark.parametrize("count", [16, 29, 30, 31, 100, 257])
    def test_long_routes_are_capped_and_end_on_final_point(self, count: int) -> None:
        points = [_north_of(BANGKOK, 300.0 * i) for i in range(count)]

        simplified = simplify_route(points)

        assert len(simplified) <= 15
        assert simplified[0] == points[0]
        assert simplified[-1] == points[-1]
        # Stride sampling preserves order.
        indices = [points.index(p) for p in simplified]
        assert indices == sorted(indices)

    def test_identical_input_gives_identical_output(self) -> None:
        points = [_north_of(BANGKOK, 75.0 * i * (1 + i % 3)) for i in range(60)]
        assert simplify_route(points) == simplify_route(list(points))

    def test_custom_cap(self) -> None:
        points = [_north_of(BANGKOK, 300.0 * i) for i in range(40)]
        simplified = simplify_route(points, max_points=5)
        assert len(simplified) <= 5
        assert simplified[-1] == points[-1]

    def test_cap_below_two_rejected(self) -> None:
        with pytest.raises(ValueError):
            simplify_route([BANGKOK, BANGKOK, BANGKOK], max_points=1)
