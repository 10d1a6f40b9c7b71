# src/shared/models/__init__.py
"""
DTO HTTP-интерфейса сервиса подбора.
"""

from src.shared.models.matching_dto import (
    AggregatesDTO,
    ErrorDTO,
    InvalidateRequest,
    InvalidateResponse,
    MatchCandidateDTO,
    RatingDTO,
    RelatedEntityDTO,
    ReviewableSummaryDTO,
    StatsDTO,
)

__all__ = [
    "AggregatesDTO",
    "ErrorDTO",
    "InvalidateRequest",
    "InvalidateResponse",
    "MatchCandidateDTO",
    "RatingDTO",
    "RelatedEntityDTO",
    "ReviewableSummaryDTO",
    "StatsDTO",
]
