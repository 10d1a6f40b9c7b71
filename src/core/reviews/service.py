# src/core/reviews/service.py
"""
Сервис отзывов магазинов и товаров.

Средняя оценка и число отзывов вычисляются из строк reviews при чтении
и кэшируются; записи отзывов только инвалидируют кэш.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from src.common.exceptions import InvalidConfiguration, ReviewableNotFound
from src.core.cache.coordinator import CacheCoordinator
from src.core.cache.dependencies import CachedValue
from src.core.providers.capabilities import display_name, price_of
from src.core.providers.store import ProviderStore, call_store
from src.core.reviews.models import (
    ReviewableRating,
    ReviewableRecord,
    ReviewableSummary,
    ReviewsCount,
)
from src.core.reviews.targets import ReviewableSpec, ReviewTarget

RATING_QUANTUM = Decimal("0.1")


class ReviewableService:
    """Чтение отзывов целей, которые не являются исполнителями."""

    def __init__(
        self,
        store: ProviderStore,
        cache: CacheCoordinator | None = None,
        timeout: float | None = None,
    ) -> None:
        if timeout is None:
            from src.config import settings
            timeout = settings.database.STORE_TIMEOUT
        self._store = store
        self._cache = cache
        self._timeout = timeout

    async def get_record(self, target: ReviewTarget) -> ReviewableRecord:
        """
        Магазин или товар.

        Raises:
            InvalidConfiguration: цель является исполнителем
            ReviewableNotFound: цель не найдена
        """
        record = await self._load_record(target)
        if record is None:
            raise ReviewableNotFound(f"{target.kind}:{target.id} не найден", reviewable=f"{target.kind}:{target.id}")
        return record

    async def get_rating(self, target: ReviewTarget) -> ReviewableRating:
        """Средняя оценка цели (через кэш)."""
        async def load() -> Optional[ReviewableRating]:
            if await self._load_record(target) is None:
                return None
            total, rated, _ = await self._summarize(target)
            average = Decimal(0) if rated == 0 else Decimal(total) / Decimal(rated)
            return ReviewableRating(
                kind=target.kind,
                id=target.id,
                rating_average=average.quantize(RATING_QUANTUM, rounding=ROUND_HALF_UP),
                rating_count=rated,
            )

        return await self._cached(CachedValue.REVIEWABLE_RATING, target, ReviewableRating, load)

    async def get_reviews_count(self, target: ReviewTarget) -> ReviewsCount:
        """Число отзывов цели (через кэш)."""
        async def load() -> Optional[ReviewsCount]:
            if await self._load_record(target) is None:
                return None
            _, _, count = await self._summarize(target)
            return ReviewsCount(kind=target.kind, id=target.id, reviews_count=count)

        return await self._cached(CachedValue.REVIEWABLE_REVIEWS_COUNT, target, ReviewsCount, load)

    async def describe(self, target: ReviewTarget) -> ReviewableSummary:
        """Имя, цена (если цель её объявляет), рейтинг и число отзывов."""
        record = await self.get_record(target)
        rating = await self.get_rating(target)
        count = await self.get_reviews_count(target)
        return ReviewableSummary(
            kind=target.kind,
            id=target.id,
            display_name=display_name(record),
            price=price_of(record),
            rating_average=rating.rating_average,
            rating_count=rating.rating_count,
            reviews_count=count.reviews_count,
        )

    @staticmethod
    def _spec(target: ReviewTarget) -> ReviewableSpec:
        spec = target.spec
        if spec.provider_kind is not None:
            raise InvalidConfiguration(
                f"{target.kind} является исполнителем, рейтинг читается через /providers",
                value=target.kind,
            )
        return spec

    async def _load_record(self, target: ReviewTarget) -> Optional[ReviewableRecord]:
        spec = self._spec(target)
        row = await call_store(
            self._store.get_reviewable(spec.kind, target.id),
            self._timeout,
            "get_reviewable",
            reviewable=f"{target.kind}:{target.id}",
        )
        return ReviewableRecord.from_row(spec.kind, row) if row is not None else None

    async def _summarize(self, target: ReviewTarget) -> tuple[Decimal, int, int]:
        return await call_store(
            self._store.summarize_reviews(target.kind, target.id),
            self._timeout,
            "summarize_reviews",
            reviewable=f"{target.kind}:{target.id}",
        )

    async def _cached(self, value, target, model_class, loader):
        self._spec(target)
        if self._cache is None:
            result = await loader()
        else:
            result = await self._cache.get_or_load(value, target.entity_kind, target.id, model_class, loader)
        if result is None:
            raise ReviewableNotFound(f"{target.kind}:{target.id} не найден", reviewable=f"{target.kind}:{target.id}")
        return result
