"""
Отзывы: закрытый набор целей отзыва и модели магазинов и товаров.
"""

from src.core.reviews.targets import (
    REVIEWABLE_REGISTRY,
    DriverTarget,
    ProductTarget,
    ReviewableSpec,
    ReviewTarget,
    ShopTarget,
    TechnicianTarget,
    entity_kind_for_reviewable,
    parse_review_target,
)
from src.core.reviews.models import (
    ProductRecord,
    ReviewableRating,
    ReviewableRecord,
    ReviewableSummary,
    ReviewsCount,
    ShopRecord,
)

__all__ = [
    "REVIEWABLE_REGISTRY",
    "DriverTarget",
    "ProductTarget",
    "ReviewableSpec",
    "ReviewTarget",
    "ShopTarget",
    "TechnicianTarget",
    "entity_kind_for_reviewable",
    "parse_review_target",
    "ProductRecord",
    "ReviewableRating",
    "ReviewableRecord",
    "ReviewableSummary",
    "ReviewsCount",
    "ShopRecord",
]
