# src/core/cache/dependencies.py
"""
Карта зависимостей кэша.

Каждое кэшируемое значение объявляет, каким сущностям оно принадлежит
и изменения каких сущностей делают его устаревшим. Ключи строятся
только здесь.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.common.constants import EntityKind

PROVIDER_OWNERS = frozenset({EntityKind.DRIVER, EntityKind.TECHNICIAN})
REVIEWABLE_OWNERS = frozenset({EntityKind.SHOP, EntityKind.PRODUCT})


class CachedValue(str, Enum):
    """Кэшируемые производные значения."""
    PROVIDER_PROFILE = "provider_profile"
    PROVIDER_RATING = "provider_rating"
    PROVIDER_STATS = "provider_stats"
    REVIEWABLE_RATING = "reviewable_rating"
    REVIEWABLE_REVIEWS_COUNT = "reviewable_reviews_count"


@dataclass(frozen=True)
class CacheDependency:
    """Владельцы значения и сущности, изменение которых его инвалидирует."""
    value: CachedValue
    owners: frozenset[EntityKind]
    invalidated_by: frozenset[EntityKind]
    # Имя поля секции cache_ttl
    ttl_setting: str

    def ttl(self) -> int:
        """TTL значения из конфигурации."""
        from src.config import settings
        return getattr(settings.cache_ttl, self.ttl_setting)


CACHE_DEPENDENCIES: dict[CachedValue, CacheDependency] = {
    CachedValue.PROVIDER_PROFILE: CacheDependency(
        CachedValue.PROVIDER_PROFILE,
        owners=PROVIDER_OWNERS,
        invalidated_by=PROVIDER_OWNERS,
        ttl_setting="PROVIDER_PROFILE_TTL",
    ),
    CachedValue.PROVIDER_RATING: CacheDependency(
        CachedValue.PROVIDER_RATING,
        owners=PROVIDER_OWNERS,
        invalidated_by=PROVIDER_OWNERS | {EntityKind.REVIEW},
        ttl_setting="PROVIDER_RATING_TTL",
    ),
    CachedValue.PROVIDER_STATS: CacheDependency(
        CachedValue.PROVIDER_STATS,
        owners=PROVIDER_OWNERS,
        invalidated_by=PROVIDER_OWNERS | {EntityKind.ORDER, EntityKind.APPOINTMENT},
        ttl_setting="PROVIDER_STATS_TTL",
    ),
    CachedValue.REVIEWABLE_RATING: CacheDependency(
        CachedValue.REVIEWABLE_RATING,
        owners=REVIEWABLE_OWNERS,
        invalidated_by=REVIEWABLE_OWNERS | {EntityKind.REVIEW},
        ttl_setting="REVIEWABLE_RATING_TTL",
    ),
    CachedValue.REVIEWABLE_REVIEWS_COUNT: CacheDependency(
        CachedValue.REVIEWABLE_REVIEWS_COUNT,
        owners=REVIEWABLE_OWNERS,
        invalidated_by=REVIEWABLE_OWNERS | {EntityKind.REVIEW},
        ttl_setting="REVIEWABLE_REVIEWS_COUNT_TTL",
    ),
}


def cache_key(value: CachedValue, owner_kind: EntityKind, owner_id: int) -> str:
    """Ключ значения (без namespace Redis)."""
    return f"{value.value}:{owner_kind.value}:{owner_id}"


def values_owned_by(owner_kind: EntityKind) -> list[CachedValue]:
    """Значения, которые принадлежат сущности этого вида."""
    return [v for v, dep in CACHE_DEPENDENCIES.items() if owner_kind in dep.owners]


def keys_invalidated(
    changed_kind: EntityKind,
    owner_kind: EntityKind,
    owner_id: int,
) -> list[str]:
    """Ключи владельца, которые устаревают при изменении сущности changed_kind."""
    return [
        cache_key(v, owner_kind, owner_id)
        for v, dep in CACHE_DEPENDENCIES.items()
        if owner_kind in dep.owners and changed_kind in dep.invalidated_by
    ]
