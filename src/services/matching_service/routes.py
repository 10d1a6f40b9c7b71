from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import ValidationError

from src.common.constants import ProviderKind
from src.common.exceptions import InvalidConfiguration, ProviderNotFound
from src.core.aggregates.service import AggregateService
from src.core.cache.coordinator import CacheCoordinator
from src.core.matching.service import MatchingService
from src.core.providers.models import ProviderRef
from src.core.reviews.service import ReviewableService
from src.core.reviews.targets import parse_review_target
from src.services.matching_service.dependencies import (
    get_aggregate_service,
    get_cache_coordinator,
    get_matching_service,
    get_reviewable_service,
)
from src.shared.models.matching_dto import (
    AggregatesDTO,
    ErrorDTO,
    InvalidateRequest,
    InvalidateResponse,
    MatchCandidateDTO,
    RatingDTO,
    ReviewableSummaryDTO,
    StatsDTO,
)

providers_router = APIRouter(prefix="/providers", tags=["Providers"])
reviewables_router = APIRouter(prefix="/reviewables", tags=["Reviewables"])
cache_router = APIRouter(prefix="/cache", tags=["Cache"])

ERROR_RESPONSES = {
    400: {"model": ErrorDTO},
    404: {"model": ErrorDTO},
    503: {"model": ErrorDTO},
}


@providers_router.get("/match", response_model=List[MatchCandidateDTO], responses=ERROR_RESPONSES)
async def match_providers(
    lat: float = Query(..., description="Широта точки поиска"),
    lon: float = Query(..., description="Долгота точки поиска"),
    radius_km: Optional[float] = Query(None, description="Радиус поиска, км"),
    capability: Optional[str] = Query(None, description="Вид транспорта или специализация"),
    limit: Optional[int] = Query(None, description="Максимум результатов"),
    kind: Optional[str] = Query(None, description="driver или technician"),
    verified_only: bool = Query(False, description="Только проверенные исполнители"),
    service: MatchingService = Depends(get_matching_service),
):
    ranked = await service.match(
        (lat, lon), radius_km, capability=capability, limit=limit, kind=kind, verified_only=verified_only
    )
    return [MatchCandidateDTO.from_candidate(c) for c in ranked]


@providers_router.get("/{kind}/{provider_id}/rating", response_model=RatingDTO, responses=ERROR_RESPONSES)
async def get_provider_rating(
    kind: ProviderKind,
    provider_id: int = Path(..., ge=1),
    service: AggregateService = Depends(get_aggregate_service),
):
    aggregate = await service.get_rating(ProviderRef(kind=kind, id=provider_id))
    return RatingDTO.from_aggregate(aggregate)


@providers_router.get("/{kind}/{provider_id}/stats", response_model=StatsDTO, responses=ERROR_RESPONSES)
async def get_provider_stats(
    kind: ProviderKind,
    provider_id: int = Path(..., ge=1),
    service: AggregateService = Depends(get_aggregate_service),
):
    aggregate = await service.get_stats(ProviderRef(kind=kind, id=provider_id))
    return StatsDTO.from_aggregate(aggregate)


@providers_router.post("/{kind}/{provider_id}/aggregates/recompute", response_model=AggregatesDTO, responses=ERROR_RESPONSES)
async def recompute_provider_aggregates(
    kind: ProviderKind,
    provider_id: int = Path(..., ge=1),
    service: AggregateService = Depends(get_aggregate_service),
):
    ref = ProviderRef(kind=kind, id=provider_id)
    aggregates = await service.recompute_provider_aggregates(ref)
    if aggregates is None:
        raise ProviderNotFound(f"Исполнитель {ref} не найден", provider=str(ref))
    return AggregatesDTO.from_aggregates(aggregates)


@reviewables_router.get("/{kind}/{reviewable_id}", response_model=ReviewableSummaryDTO, responses=ERROR_RESPONSES)
async def get_reviewable_summary(
    kind: str,
    reviewable_id: int = Path(..., ge=1),
    service: ReviewableService = Depends(get_reviewable_service),
):
    try:
        target = parse_review_target({"kind": kind, "id": reviewable_id})
    except ValidationError as e:
        raise InvalidConfiguration(f"Неизвестный вид цели отзыва: {kind!r}", value=kind) from e
    summary = await service.describe(target)
    return ReviewableSummaryDTO.from_summary(summary)


@cache_router.post("/invalidate", response_model=InvalidateResponse, responses=ERROR_RESPONSES)
async def invalidate_cache(
    request: InvalidateRequest,
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    keys = await cache.invalidate(
        request.entity_kind,
        request.entity_id,
        related=[(r.entity_kind, r.entity_id) for r in request.related],
    )
    return InvalidateResponse(invalidated=keys)
