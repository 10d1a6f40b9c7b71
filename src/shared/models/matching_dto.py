from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from src.common.constants import EntityKind, ProviderKind
from src.core.matching.models import RankedCandidate
from src.core.providers.models import ProviderAggregates, RatingAggregate, StatsAggregate
from src.core.reviews.models import ReviewableSummary


class MatchCandidateDTO(BaseModel):
    provider_id: int
    provider_kind: ProviderKind
    distance_km: float
    score: float
    rank: int

    @classmethod
    def from_candidate(cls, candidate: RankedCandidate) -> "MatchCandidateDTO":
        return cls(**candidate.to_dict())


class RatingDTO(BaseModel):
    provider_id: int
    provider_kind: ProviderKind
    rating_average: Decimal
    rating_count: int

    @classmethod
    def from_aggregate(cls, aggregate: RatingAggregate) -> "RatingDTO":
        return cls(
            provider_id=aggregate.provider.id,
            provider_kind=aggregate.provider.kind,
            rating_average=aggregate.rating_average,
            rating_count=aggregate.rating_count,
        )


class StatsDTO(BaseModel):
    provider_id: int
    provider_kind: ProviderKind
    total_completed: int
    total_earnings: Decimal

    @classmethod
    def from_aggregate(cls, aggregate: StatsAggregate) -> "StatsDTO":
        return cls(
            provider_id=aggregate.provider.id,
            provider_kind=aggregate.provider.kind,
            total_completed=aggregate.total_completed,
            total_earnings=aggregate.total_earnings,
        )


class AggregatesDTO(BaseModel):
    rating: RatingDTO
    stats: StatsDTO

    @classmethod
    def from_aggregates(cls, aggregates: ProviderAggregates) -> "AggregatesDTO":
        return cls(
            rating=RatingDTO.from_aggregate(aggregates.rating),
            stats=StatsDTO.from_aggregate(aggregates.stats),
        )


class RelatedEntityDTO(BaseModel):
    entity_kind: EntityKind
    entity_id: int = Field(..., ge=1)


class InvalidateRequest(BaseModel):
    entity_kind: EntityKind
    entity_id: int = Field(..., ge=1)
    related: List[RelatedEntityDTO] = Field(default_factory=list)


class InvalidateResponse(BaseModel):
    invalidated: List[str]


class ErrorDTO(BaseModel):
    error_kind: str
    message: str


class ReviewableSummaryDTO(BaseModel):
    kind: str
    id: int
    display_name: str
    price: Optional[Decimal] = None
    rating_average: Decimal
    rating_count: int
    reviews_count: int

    @classmethod
    def from_summary(cls, summary: ReviewableSummary) -> "ReviewableSummaryDTO":
        return cls(**summary.model_dump())
