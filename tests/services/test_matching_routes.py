# tests/services/test_matching_routes.py
"""
Тесты HTTP API сервиса подбора (src/services/matching_service).
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from src.common.constants import ProviderKind
from src.core.aggregates.service import AggregateService
from src.core.cache.coordinator import CacheCoordinator
from src.core.matching.models import RankingWeights
from src.core.matching.service import MatchingService
from src.core.reviews.service import ReviewableService
from src.services.matching_service.app import app


@pytest.fixture
def client(store, mock_redis: AsyncMock) -> TestClient:
    """Клиент без lifespan: сервисы собираются поверх хранилища в памяти."""
    cache = CacheCoordinator(mock_redis, store, timeout=1.0)
    app.state.matching_service = MatchingService(
        store,
        RankingWeights(distance=1, rating=0, recency=0),
        default_radius_km=10.0,
        max_radius_km=50.0,
        default_limit=10,
        max_limit=100,
        timeout=1.0,
    )
    app.state.aggregate_service = AggregateService(store, cache, timeout=1.0)
    app.state.cache_coordinator = cache
    app.state.reviewable_service = ReviewableService(store, cache, timeout=1.0)
    return TestClient(app)


class TestMatchEndpoint:
    """GET /api/v1/providers/match"""

    def test_returns_ranked_candidates(self, client: TestClient, store) -> None:
        store.add_provider(ProviderKind.DRIVER, 1, latitude=24.7136, longitude=46.6753)
        store.add_provider(ProviderKind.DRIVER, 2, latitude=24.6408, longitude=46.7728)

        response = client.get("/api/v1/providers/match", params={"lat": 24.7136, "lon": 46.6753})

        assert response.status_code == 200
        body = response.json()
        assert [c["provider_id"] for c in body] == [1]
        assert body[0]["provider_kind"] == "driver"
        assert body[0]["rank"] == 1
        assert body[0]["distance_km"] == 0.0

    def test_invalid_coordinate_envelope(self, client: TestClient) -> None:
        response = client.get("/api/v1/providers/match", params={"lat": 120, "lon": 46.6753})

        assert response.status_code == 400
        body = response.json()
        assert body["error_kind"] == "InvalidCoordinate"
        assert body["message"]

    def test_invalid_radius(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/providers/match", params={"lat": 24.7, "lon": 46.6, "radius_km": 500}
        )

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidRadius"

    def test_unknown_kind(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/providers/match", params={"lat": 24.7, "lon": 46.6, "kind": "courier"}
        )

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidConfiguration"

    def test_non_numeric_lat(self, client: TestClient) -> None:
        response = client.get("/api/v1/providers/match", params={"lat": "abc", "lon": 46.6753})

        assert response.status_code == 400
        body = response.json()
        assert body == {"error_kind": "InvalidCoordinate", "message": body["message"]}
        assert "lat" in body["message"]

    def test_missing_lat(self, client: TestClient) -> None:
        response = client.get("/api/v1/providers/match", params={"lon": 46.6753})

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidCoordinate"

    def test_non_numeric_radius(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/providers/match", params={"lat": 24.7, "lon": 46.6, "radius_km": "ten"}
        )

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidRadius"

    def test_non_numeric_limit(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/providers/match", params={"lat": 24.7, "lon": 46.6, "limit": "many"}
        )

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidConfiguration"

    def test_verified_only(self, client: TestClient, store) -> None:
        store.add_provider(ProviderKind.DRIVER, 1, latitude=24.7136, longitude=46.6753, is_verified=False)
        store.add_provider(ProviderKind.DRIVER, 2, latitude=24.7140, longitude=46.6755)

        everyone = client.get("/api/v1/providers/match", params={"lat": 24.7136, "lon": 46.6753})
        verified = client.get(
            "/api/v1/providers/match",
            params={"lat": 24.7136, "lon": 46.6753, "verified_only": "true"},
        )

        assert [c["provider_id"] for c in everyone.json()] == [1, 2]
        assert [c["provider_id"] for c in verified.json()] == [2]


class TestReviewableEndpoint:
    """GET /api/v1/reviewables/{kind}/{id}"""

    def test_product_summary(self, client: TestClient, store) -> None:
        store.add_reviewable("product", 3, name="Масло 5W-30", price=Decimal("45.50"))
        store.add_target_review(1, "product", 3, 5)
        store.add_target_review(2, "product", 3, 4)
        store.add_target_review(3, "product", 3, None)

        response = client.get("/api/v1/reviewables/product/3")

        assert response.status_code == 200
        body = response.json()
        assert body["display_name"] == "Масло 5W-30"
        assert Decimal(str(body["price"])) == Decimal("45.50")
        assert Decimal(str(body["rating_average"])) == Decimal("4.5")
        assert body["rating_count"] == 2
        assert body["reviews_count"] == 3

    def test_shop_has_no_price(self, client: TestClient, store) -> None:
        store.add_reviewable("shop", 2, name="Автомир")

        response = client.get("/api/v1/reviewables/shop/2")

        assert response.status_code == 200
        body = response.json()
        assert body["price"] is None
        assert body["reviews_count"] == 0
        assert Decimal(str(body["rating_average"])) == Decimal("0")

    def test_missing_reviewable(self, client: TestClient) -> None:
        response = client.get("/api/v1/reviewables/shop/404")

        assert response.status_code == 404
        assert response.json()["error_kind"] == "ReviewableNotFound"

    def test_unknown_kind(self, client: TestClient) -> None:
        response = client.get("/api/v1/reviewables/courier/1")

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidConfiguration"

    def test_provider_kind_rejected(self, client: TestClient, store) -> None:
        store.add_provider(ProviderKind.DRIVER, 1)

        response = client.get("/api/v1/reviewables/driver/1")

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidConfiguration"


class TestAggregateEndpoints:
    """Чтение и пересчёт агрегатов."""

    def test_get_rating(self, client: TestClient, store, mock_redis: AsyncMock) -> None:
        store.add_provider(ProviderKind.TECHNICIAN, 4, rating_average=Decimal("4.8"), rating_count=25)

        response = client.get("/api/v1/providers/technician/4/rating")

        assert response.status_code == 200
        body = response.json()
        assert Decimal(str(body["rating_average"])) == Decimal("4.8")
        assert body["rating_count"] == 25
        mock_redis.set_model_if_generation.assert_awaited_once()

    def test_get_stats_not_found(self, client: TestClient) -> None:
        response = client.get("/api/v1/providers/driver/404/stats")

        assert response.status_code == 404
        assert response.json()["error_kind"] == "ProviderNotFound"

    def test_recompute(self, client: TestClient, store, mock_redis: AsyncMock) -> None:
        ref = store.add_provider(ProviderKind.DRIVER, 7)
        for review_id, rating in enumerate([5, 4, 3], start=1):
            store.add_review(review_id, ref, rating)
        store.add_work(1, ref, "delivered", "30.00")

        response = client.post("/api/v1/providers/driver/7/aggregates/recompute")

        assert response.status_code == 200
        body = response.json()
        assert Decimal(str(body["rating"]["rating_average"])) == Decimal("4.0")
        assert body["rating"]["rating_count"] == 3
        assert body["stats"]["total_completed"] == 1
        mock_redis.delete_many.assert_awaited()

    def test_recompute_missing_provider(self, client: TestClient) -> None:
        response = client.post("/api/v1/providers/technician/99/aggregates/recompute")

        assert response.status_code == 404
        assert response.json()["error_kind"] == "ProviderNotFound"

    def test_unknown_kind_in_path(self, client: TestClient) -> None:
        response = client.get("/api/v1/providers/shop/1/rating")

        assert response.status_code == 400
        assert response.json()["error_kind"] == "InvalidConfiguration"


class TestCacheEndpoint:
    """POST /api/v1/cache/invalidate"""

    def test_invalidate_provider(self, client: TestClient, mock_redis: AsyncMock) -> None:
        response = client.post(
            "/api/v1/cache/invalidate",
            json={"entity_kind": "driver", "entity_id": 3},
        )

        assert response.status_code == 200
        assert response.json()["invalidated"] == [
            "provider_profile:driver:3",
            "provider_rating:driver:3",
            "provider_stats:driver:3",
        ]
        mock_redis.delete_many.assert_awaited_once()

    def test_invalidate_deleted_review_with_related(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/cache/invalidate",
            json={
                "entity_kind": "review",
                "entity_id": 12,
                "related": [{"entity_kind": "shop", "entity_id": 2}],
            },
        )

        assert response.status_code == 200
        assert set(response.json()["invalidated"]) == {
            "reviewable_rating:shop:2",
            "reviewable_reviews_count:shop:2",
        }

    def test_invalid_body(self, client: TestClient) -> None:
        response = client.post("/api/v1/cache/invalidate", json={"entity_kind": "order", "entity_id": 0})

        assert response.status_code == 400
        body = response.json()
        assert body["error_kind"] == "InvalidConfiguration"
        assert "entity_id" in body["message"]
