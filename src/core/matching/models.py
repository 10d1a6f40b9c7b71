# src/core/matching/models.py
"""
Модели подбора исполнителей.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.common.constants import ProviderKind
from src.common.exceptions import InvalidConfiguration
from src.core.geo.distance import Coordinate
from src.core.providers.capabilities import is_available
from src.core.providers.models import ProviderRecord


@dataclass(frozen=True)
class RankingWeights:
    """Веса композитной оценки: расстояние, рейтинг, свежесть геолокации."""
    distance: float = 0.5
    rating: float = 0.3
    recency: float = 0.2

    @classmethod
    def from_settings(cls) -> "RankingWeights":
        """Веса из секции ranking конфигурации."""
        from src.config import settings

        return cls(
            distance=settings.ranking.DISTANCE_WEIGHT,
            rating=settings.ranking.RATING_WEIGHT,
            recency=settings.ranking.RECENCY_WEIGHT,
        )

    @property
    def total(self) -> float:
        return self.distance + self.rating + self.recency

    def validate(self) -> "RankingWeights":
        """
        Raises:
            InvalidConfiguration: вес отрицательный, не конечный или сумма весов равна 0
        """
        for name, value in (("distance", self.distance), ("rating", self.rating), ("recency", self.recency)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidConfiguration(
                    f"Вес {name} должен быть конечным числом, получено {value!r}",
                    weight=name,
                    value=value,
                )
            if value < 0:
                raise InvalidConfiguration(
                    f"Вес {name} не может быть отрицательным: {value}",
                    weight=name,
                    value=value,
                )
        if self.total <= 0:
            raise InvalidConfiguration(
                "Сумма весов ранжирования должна быть больше 0",
                weights=(self.distance, self.rating, self.recency),
            )
        return self


@dataclass(frozen=True)
class ProviderFilter:
    """
    Фильтр кандидатов.
    По умолчанию пропускает только доступных и активных исполнителей.
    """
    capability: Optional[str] = None
    kind: Optional[ProviderKind] = None
    verified_only: bool = False
    predicate: Callable[[ProviderRecord], bool] = field(default=is_available)

    def accepts(self, record: ProviderRecord) -> bool:
        """Проходит ли исполнитель фильтр (без учёта расстояния)."""
        if self.kind is not None and record.kind != self.kind:
            return False
        if self.capability is not None and not record.has_tag(self.capability):
            return False
        if self.verified_only and not record.is_verified:
            return False
        return self.predicate(record)


@dataclass(frozen=True)
class MatchingRequest:
    """Запрос подбора. Значения уже проверены MatchingService."""
    origin: Coordinate
    radius_km: float
    limit: int
    capability: Optional[str] = None
    kind: Optional[ProviderKind] = None
    verified_only: bool = False


@dataclass(frozen=True)
class Candidate:
    """Исполнитель в радиусе поиска."""
    provider: ProviderRecord
    distance_km: float


@dataclass(frozen=True)
class RankedCandidate:
    """Кандидат с итоговой оценкой и позицией (с 1)."""
    provider_id: int
    provider_kind: ProviderKind
    distance_km: float
    composite_score: float
    rank: int

    def to_dict(self) -> dict:
        """Представление для HTTP-ответа."""
        return {
            "provider_id": self.provider_id,
            "provider_kind": self.provider_kind.value,
            "distance_km": round(self.distance_km, 3),
            "score": round(self.composite_score, 6),
            "rank": self.rank,
        }
