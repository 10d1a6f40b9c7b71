"""
Геометрия: расстояние по большому кругу и проверка координат.
"""

from src.core.geo.distance import (
    EARTH_RADIUS_KM,
    BoundingBox,
    Coordinate,
    bounding_box,
    distance,
    validate_coordinate,
)

__all__ = [
    "EARTH_RADIUS_KM",
    "BoundingBox",
    "Coordinate",
    "bounding_box",
    "distance",
    "validate_coordinate",
]
