# src/core/matching/service.py
"""
Сервис подбора исполнителей.
Проверяет запрос, ищет кандидатов в радиусе и ранжирует их.
"""

from __future__ import annotations

import math
from typing import Optional

from src.common.constants import ProviderKind, TypeMsg
from src.common.exceptions import InvalidConfiguration, InvalidRadius
from src.common.logger import log_info
from src.core.geo.distance import Coordinate, validate_coordinate
from src.core.matching.models import MatchingRequest, ProviderFilter, RankedCandidate, RankingWeights
from src.core.matching.proximity import ProximityIndex
from src.core.matching.ranking import rank
from src.core.providers.store import ProviderStore


class MatchingService:
    """
    Сервис подбора исполнителей.

    Вся проверка входных данных выполняется до обращения к хранилищу.
    """

    def __init__(
        self,
        store: ProviderStore,
        weights: RankingWeights | None = None,
        *,
        default_radius_km: float | None = None,
        max_radius_km: float | None = None,
        default_limit: int | None = None,
        max_limit: int | None = None,
        recent_window_seconds: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            store: Хранилище исполнителей
            weights: Веса ранжирования (из конфига, если None)
            Остальные параметры по умолчанию берутся из секций search и ranking
        """
        from src.config import settings

        self._index = ProximityIndex(store, timeout=timeout)
        self._weights = weights if weights is not None else RankingWeights.from_settings()
        self._default_radius_km = default_radius_km or settings.search.DEFAULT_RADIUS_KM
        self._max_radius_km = max_radius_km or settings.search.MAX_RADIUS_KM
        self._default_limit = default_limit or settings.search.DEFAULT_LIMIT
        self._max_limit = max_limit or settings.search.MAX_LIMIT
        self._recent_window_seconds = (
            recent_window_seconds or settings.ranking.RECENT_WINDOW_SECONDS
        )

    def build_request(
        self,
        origin: Coordinate | tuple[float, float],
        radius_km: Optional[float] = None,
        capability: Optional[str] = None,
        limit: Optional[int] = None,
        kind: Optional[ProviderKind | str] = None,
        verified_only: bool = False,
    ) -> MatchingRequest:
        """
        Проверяет параметры запроса.

        Raises:
            InvalidCoordinate: точка вне допустимых диапазонов
            InvalidRadius: радиус <= 0, не конечный или больше максимума
            InvalidConfiguration: limit или вид исполнителя некорректны, веса невалидны
        """
        if isinstance(origin, Coordinate):
            point = validate_coordinate(origin.latitude, origin.longitude)
        else:
            point = validate_coordinate(*origin)

        if radius_km is None:
            radius_km = self._default_radius_km
        if (
            isinstance(radius_km, bool)
            or not isinstance(radius_km, (int, float))
            or not math.isfinite(radius_km)
            or radius_km <= 0
        ):
            raise InvalidRadius(f"Радиус должен быть положительным числом, получено {radius_km!r}", value=radius_km)
        if radius_km > self._max_radius_km:
            raise InvalidRadius(
                f"Радиус {radius_km} км больше максимума {self._max_radius_km} км",
                value=radius_km,
                max_radius_km=self._max_radius_km,
            )

        if limit is None:
            limit = self._default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidConfiguration(f"limit должен быть целым >= 1, получено {limit!r}", value=limit)
        if limit > self._max_limit:
            raise InvalidConfiguration(
                f"limit {limit} больше максимума {self._max_limit}",
                value=limit,
                max_limit=self._max_limit,
            )

        if kind is not None:
            try:
                kind = ProviderKind(kind)
            except ValueError as e:
                raise InvalidConfiguration(f"Неизвестный вид исполнителя: {kind!r}", value=kind) from e

        if capability is not None:
            capability = capability.strip() or None

        self._weights.validate()

        return MatchingRequest(
            origin=point,
            radius_km=float(radius_km),
            limit=limit,
            capability=capability,
            kind=kind,
            verified_only=bool(verified_only),
        )

    async def match(
        self,
        origin: Coordinate | tuple[float, float],
        radius_km: Optional[float] = None,
        capability: Optional[str] = None,
        limit: Optional[int] = None,
        kind: Optional[ProviderKind | str] = None,
        verified_only: bool = False,
    ) -> list[RankedCandidate]:
        """
        Подбирает исполнителей вокруг точки.

        Args:
            origin: Точка поиска (Coordinate или пара (широта, долгота))
            radius_km: Радиус поиска (search.DEFAULT_RADIUS_KM, если None)
            capability: Вид транспорта или специализация
            limit: Максимум результатов (search.DEFAULT_LIMIT, если None)
            kind: Только исполнители этого вида
            verified_only: Только исполнители с проверенными документами

        Returns:
            Кандидаты по возрастанию позиции

        Raises:
            InvalidCoordinate, InvalidRadius, InvalidConfiguration: до обращения к хранилищу
            StoreUnavailable: хранилище не ответило
        """
        request = self.build_request(origin, radius_km, capability, limit, kind, verified_only)

        candidates = await self._index.find_within_radius(
            request.origin,
            request.radius_km,
            ProviderFilter(
                capability=request.capability,
                kind=request.kind,
                verified_only=request.verified_only,
            ),
        )

        ranked = rank(
            candidates,
            self._weights,
            request.limit,
            radius_km=request.radius_km,
            recent_window_seconds=self._recent_window_seconds,
        )

        await log_info(
            f"Подбор ({request.origin.latitude}, {request.origin.longitude}) r={request.radius_km} км: "
            f"кандидатов {len(candidates)}, в ответе {len(ranked)}",
            type_msg=TypeMsg.DEBUG,
        )
        return ranked
