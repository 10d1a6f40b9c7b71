# src/core/matching/__init__.py
"""
Домен подбора исполнителей.
Поиск в радиусе и ранжирование кандидатов.
"""

from src.core.matching.models import (
    Candidate,
    MatchingRequest,
    ProviderFilter,
    RankedCandidate,
    RankingWeights,
)
from src.core.matching.proximity import ProximityIndex, select_within_radius
from src.core.matching.ranking import composite_score, rank
from src.core.matching.service import MatchingService

__all__ = [
    "Candidate",
    "MatchingRequest",
    "ProviderFilter",
    "RankedCandidate",
    "RankingWeights",
    "ProximityIndex",
    "select_within_radius",
    "composite_score",
    "rank",
    "MatchingService",
]
