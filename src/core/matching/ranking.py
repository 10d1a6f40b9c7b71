# src/core/matching/ranking.py
"""
Ранжирование кандидатов по композитной оценке.

score = (w_d * d + w_r * r + w_c * c) / (w_d + w_r + w_c), где
    d = 1 - расстояние / радиус (в пределах [0, 1]),
    r = рейтинг / 5,
    c = 1, если геолокация обновлялась в пределах окна свежести, иначе 0.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from src.common.exceptions import InvalidConfiguration
from src.core.matching.models import Candidate, RankedCandidate, RankingWeights

MAX_RATING = 5.0
DEFAULT_RECENT_WINDOW_SECONDS = 300


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _is_recent(updated_at: Optional[datetime], now: datetime, window_seconds: float) -> bool:
    if updated_at is None:
        return False
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    age = (now - updated_at).total_seconds()
    return 0 <= age <= window_seconds


def composite_score(
    candidate: Candidate,
    weights: RankingWeights,
    radius_km: float,
    now: datetime,
    recent_window_seconds: float = DEFAULT_RECENT_WINDOW_SECONDS,
) -> float:
    """Композитная оценка одного кандидата в [0, 1]. Веса должны быть проверены."""
    if radius_km > 0:
        d = _clamp(1.0 - candidate.distance_km / radius_km)
    else:
        d = 1.0
    r = _clamp(float(candidate.provider.rating_average) / MAX_RATING)
    c = 1.0 if _is_recent(candidate.provider.location_updated_at, now, recent_window_seconds) else 0.0

    return (weights.distance * d + weights.rating * r + weights.recency * c) / weights.total


def rank(
    candidates: Sequence[Candidate],
    weights: RankingWeights,
    limit: int,
    *,
    radius_km: Optional[float] = None,
    now: Optional[datetime] = None,
    recent_window_seconds: float = DEFAULT_RECENT_WINDOW_SECONDS,
) -> list[RankedCandidate]:
    """
    Упорядочивает кандидатов и оставляет не больше limit.

    Порядок: выше оценка, затем меньше расстояние, затем больше оценок,
    затем меньший ID исполнителя (и вид).

    Args:
        candidates: Кандидаты в радиусе
        weights: Веса оценки
        limit: Максимум результатов (>= 1)
        radius_km: Радиус нормализации расстояния (по умолчанию наибольшее расстояние)
        now: Момент оценки свежести (по умолчанию текущее время UTC)
        recent_window_seconds: Окно свежести геолокации

    Raises:
        InvalidConfiguration: некорректные веса или limit < 1
    """
    weights.validate()
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidConfiguration(f"limit должен быть целым >= 1, получено {limit!r}", value=limit)

    if not candidates:
        return []

    if now is None:
        now = datetime.now(timezone.utc)
    if radius_km is None:
        radius_km = max(c.distance_km for c in candidates)

    scored = [
        (composite_score(c, weights, radius_km, now, recent_window_seconds), c)
        for c in candidates
    ]
    scored.sort(
        key=lambda item: (
            -item[0],
            item[1].distance_km,
            -item[1].provider.rating_count,
            item[1].provider.id,
            item[1].provider.kind.value,
        )
    )

    return [
        RankedCandidate(
            provider_id=c.provider.id,
            provider_kind=c.provider.kind,
            distance_km=c.distance_km,
            composite_score=score,
            rank=position,
        )
        for position, (score, c) in enumerate(scored[:limit], start=1)
    ]
