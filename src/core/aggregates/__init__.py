# src/core/aggregates/__init__.py
"""
Домен агрегатов исполнителей.
Рейтинг, счётчики завершённых работ и заработок.
"""

from src.core.aggregates.locks import KeyedLock
from src.core.aggregates.rating import RatingAggregator, average_rating
from src.core.aggregates.stats import StatsAggregator
from src.core.aggregates.service import AggregateService

__all__ = [
    "KeyedLock",
    "RatingAggregator",
    "average_rating",
    "StatsAggregator",
    "AggregateService",
]
