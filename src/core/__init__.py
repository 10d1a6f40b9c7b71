# src/core/__init__.py
"""
Доменный слой (Core Domain).
Подбор исполнителей, агрегаты и кэш производных значений.
"""

from src.core.providers import ProviderRecord, ProviderRef, ProviderRepository
from src.core.matching import MatchingService
from src.core.aggregates import AggregateService
from src.core.cache import CacheCoordinator

__all__ = [
    "ProviderRecord",
    "ProviderRef",
    "ProviderRepository",
    "MatchingService",
    "AggregateService",
    "CacheCoordinator",
]
