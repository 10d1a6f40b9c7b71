from fastapi import Request

from src.core.aggregates.service import AggregateService
from src.core.cache.coordinator import CacheCoordinator
from src.core.matching.service import MatchingService
from src.core.providers.repository import ProviderRepository
from src.core.reviews.service import ReviewableService
from src.infra.database import get_db
from src.infra.redis_client import get_redis


def build_services(state) -> None:
    """Создаёт сервисы один раз на процесс (блокировки пересчёта общие)."""
    store = ProviderRepository(get_db())
    cache = CacheCoordinator(get_redis(), store)
    state.matching_service = MatchingService(store)
    state.aggregate_service = AggregateService(store, cache)
    state.reviewable_service = ReviewableService(store, cache)
    state.cache_coordinator = cache


def get_matching_service(request: Request) -> MatchingService:
    return request.app.state.matching_service


def get_aggregate_service(request: Request) -> AggregateService:
    return request.app.state.aggregate_service


def get_reviewable_service(request: Request) -> ReviewableService:
    return request.app.state.reviewable_service


def get_cache_coordinator(request: Request) -> CacheCoordinator:
    return request.app.state.cache_coordinator
