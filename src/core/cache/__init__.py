"""
Кэш производных значений: карта зависимостей и координатор.
"""

from src.core.cache.dependencies import (
    CACHE_DEPENDENCIES,
    CacheDependency,
    CachedValue,
    cache_key,
    keys_invalidated,
)
from src.core.cache.coordinator import CacheCoordinator

__all__ = [
    "CACHE_DEPENDENCIES",
    "CacheDependency",
    "CachedValue",
    "cache_key",
    "keys_invalidated",
    "CacheCoordinator",
]
