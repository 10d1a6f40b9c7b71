# tests/core/test_distance.py
"""
Тесты формулы расстояния и описывающего прямоугольника (src/core/geo/distance.py).
"""

import math

import pytest

from src.common.exceptions import InvalidCoordinate
from src.core.geo.distance import (
    Coordinate,
    bounding_box,
    distance,
    validate_coordinate,
)

RIYADH = (24.7136, 46.6753)
RIYADH_SOUTH_EAST = (24.6408, 46.7728)


class TestValidateCoordinate:
    """Тесты проверки координат."""

    def test_valid_point(self) -> None:
        point = validate_coordinate(24.7136, 46.6753)
        assert point == Coordinate(24.7136, 46.6753)

    @pytest.mark.parametrize("lat, lon", [(90, 180), (-90, -180), (0, 0)])
    def test_boundaries_are_valid(self, lat: float, lon: float) -> None:
        assert validate_coordinate(lat, lon).latitude == float(lat)

    @pytest.mark.parametrize(
        "lat, lon, field",
        [
            (120.0, 0.0, "latitude"),
            (-90.5, 0.0, "latitude"),
            (0.0, 180.01, "longitude"),
            (0.0, -200.0, "longitude"),
            (math.nan, 0.0, "latitude"),
            (0.0, math.inf, "longitude"),
        ],
    )
    def test_out_of_range(self, lat: float, lon: float, field: str) -> None:
        with pytest.raises(InvalidCoordinate) as exc_info:
            validate_coordinate(lat, lon)
        assert exc_info.value.context["field"] == field

    def test_rejects_non_numbers(self) -> None:
        with pytest.raises(InvalidCoordinate):
            validate_coordinate("24.7", 46.6)
        with pytest.raises(InvalidCoordinate):
            validate_coordinate(True, 46.6)


class TestDistance:
    """Тесты формулы гаверсинусов."""

    def test_same_point_is_zero(self) -> None:
        assert distance(RIYADH, RIYADH) == 0.0

    def test_riyadh_example(self) -> None:
        """Две точки в Эр-Рияде: около 12 км."""
        km = distance(RIYADH, RIYADH_SOUTH_EAST)
        assert 10 < km < 13

    def test_symmetry(self) -> None:
        assert distance(RIYADH, RIYADH_SOUTH_EAST) == distance(RIYADH_SOUTH_EAST, RIYADH)

    def test_one_degree_of_latitude(self) -> None:
        assert distance((0, 0), (1, 0)) == pytest.approx(111.195, abs=0.01)

    def test_antipodes(self) -> None:
        assert distance((0, 0), (0, 180)) == pytest.approx(math.pi * 6371.0, rel=1e-9)

    def test_accepts_coordinate_objects(self) -> None:
        a = Coordinate(*RIYADH)
        b = Coordinate(*RIYADH_SOUTH_EAST)
        assert distance(a, b) == distance(RIYADH, RIYADH_SOUTH_EAST)

    def test_invalid_point_raises(self) -> None:
        with pytest.raises(InvalidCoordinate):
            distance((120, 0), RIYADH)

    def test_triangle_inequality(self) -> None:
        a, b, c = (24.7, 46.6), (21.5, 39.2), (26.4, 50.1)
        assert distance(a, c) <= distance(a, b) + distance(b, c) + 1e-9


class TestBoundingBox:
    """Тесты описывающего прямоугольника."""

    def test_contains_circle_points(self) -> None:
        origin = Coordinate(*RIYADH)
        box = bounding_box(origin, 15.0)
        lat, lon = RIYADH_SOUTH_EAST
        assert box.min_latitude <= lat <= box.max_latitude
        assert box.min_longitude <= lon <= box.max_longitude

    def test_near_pole_spans_all_longitudes(self) -> None:
        box = bounding_box(Coordinate(89.5, 10.0), 100.0)
        assert box.min_longitude == -180.0
        assert box.max_longitude == 180.0
        assert box.max_latitude == 90.0

    def test_antimeridian_spans_all_longitudes(self) -> None:
        box = bounding_box(Coordinate(0.0, 179.95), 20.0)
        assert (box.min_longitude, box.max_longitude) == (-180.0, 180.0)
