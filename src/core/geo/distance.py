# src/core/geo/distance.py
"""
Расстояние по большому кругу (формула гаверсинусов).
Единственная формула расстояния в системе: ею пользуются и поиск
исполнителей, и предварительный фильтр хранилища.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from src.common.exceptions import InvalidCoordinate


EARTH_RADIUS_KM = 6371.0

# Километров в одном градусе широты
KM_PER_DEGREE = math.pi * EARTH_RADIUS_KM / 180.0


@dataclass(frozen=True)
class Coordinate:
    """Проверенная точка на поверхности Земли."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class BoundingBox:
    """Прямоугольник в градусах, содержащий круг поиска."""
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float


def validate_coordinate(latitude: float, longitude: float) -> Coordinate:
    """
    Проверяет диапазоны и возвращает Coordinate.

    Raises:
        InvalidCoordinate: широта вне [-90, 90], долгота вне [-180, 180]
            или значение не является конечным числом
    """
    for field, value, bound in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidCoordinate(
                f"{field} должна быть числом, получено {value!r}",
                field=field,
                value=value,
            )
        if not math.isfinite(value) or not -bound <= value <= bound:
            raise InvalidCoordinate(
                f"{field}={value} вне диапазона [-{bound:g}, {bound:g}]",
                field=field,
                value=value,
            )
    return Coordinate(latitude=float(latitude), longitude=float(longitude))


def _as_coordinate(point: Coordinate | tuple[float, float]) -> Coordinate:
    if isinstance(point, Coordinate):
        return validate_coordinate(point.latitude, point.longitude)
    latitude, longitude = point
    return validate_coordinate(latitude, longitude)


def distance(
    a: Coordinate | tuple[float, float],
    b: Coordinate | tuple[float, float],
) -> float:
    """
    Расстояние между двумя точками в километрах.

    Args:
        a: Первая точка (Coordinate или пара (широта, долгота))
        b: Вторая точка

    Returns:
        Расстояние в км; 0.0 для совпадающих точек

    Raises:
        InvalidCoordinate: если хотя бы одна координата вне диапазона
    """
    first = _as_coordinate(a)
    second = _as_coordinate(b)

    if first == second:
        return 0.0

    lat1 = math.radians(first.latitude)
    lat2 = math.radians(second.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(second.longitude - first.longitude)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    # Ошибки округления могут дать h чуть больше 1 для антиподов
    h = min(1.0, h)

    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def bounding_box(origin: Coordinate, radius_km: float) -> BoundingBox:
    """
    Прямоугольник, гарантированно содержащий круг радиуса radius_km.

    Используется только для грубого отбора строк в хранилище;
    точное расстояние всегда считается через distance().
    """
    lat_delta = radius_km / KM_PER_DEGREE
    min_lat = max(-90.0, origin.latitude - lat_delta)
    max_lat = min(90.0, origin.latitude + lat_delta)

    # У полюсов или при большом радиусе долгота не ограничивается
    widest = max(abs(min_lat), abs(max_lat))
    if widest >= 89.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    lon_delta = lat_delta / math.cos(math.radians(widest))
    min_lon = origin.longitude - lon_delta
    max_lon = origin.longitude + lon_delta
    if min_lon < -180.0 or max_lon > 180.0:
        # Пересечение антимеридиана: отбор только по широте
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    return BoundingBox(min_lat, max_lat, min_lon, max_lon)
