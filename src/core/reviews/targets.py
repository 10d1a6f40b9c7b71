# src/core/reviews/targets.py
"""
Цели отзывов.

Закрытое объединение вариантов вместо строкового имени типа:
отзыв можно оставить только водителю, техническому специалисту,
магазину или товару.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from src.common.constants import EntityKind, ProviderKind


@dataclass(frozen=True)
class ReviewableSpec:
    """Описание вида цели отзыва."""
    kind: str
    entity_kind: EntityKind
    # Вид исполнителя, чей рейтинг пересчитывается по отзывам (None для магазинов и товаров)
    provider_kind: Optional[ProviderKind] = None
    # Таблица и колонка цены для целей, которые не являются исполнителями
    table: Optional[str] = None
    price_column: Optional[str] = None


REVIEWABLE_REGISTRY: dict[str, ReviewableSpec] = {
    "driver": ReviewableSpec("driver", EntityKind.DRIVER, ProviderKind.DRIVER),
    "technician": ReviewableSpec("technician", EntityKind.TECHNICIAN, ProviderKind.TECHNICIAN),
    "shop": ReviewableSpec("shop", EntityKind.SHOP, table="shops"),
    "product": ReviewableSpec("product", EntityKind.PRODUCT, table="products", price_column="price"),
}


class _TargetBase(BaseModel):
    id: int = Field(..., ge=1, description="ID цели отзыва")

    class Config:
        frozen = True

    @property
    def spec(self) -> ReviewableSpec:
        return REVIEWABLE_REGISTRY[self.kind]  # type: ignore[attr-defined]

    @property
    def entity_kind(self) -> EntityKind:
        """Сущность кэша, которой принадлежат значения цели."""
        return self.spec.entity_kind

    @property
    def provider_kind(self) -> Optional[ProviderKind]:
        return self.spec.provider_kind


class DriverTarget(_TargetBase):
    kind: Literal["driver"] = "driver"


class TechnicianTarget(_TargetBase):
    kind: Literal["technician"] = "technician"


class ShopTarget(_TargetBase):
    kind: Literal["shop"] = "shop"


class ProductTarget(_TargetBase):
    kind: Literal["product"] = "product"


ReviewTarget = Annotated[
    Union[DriverTarget, TechnicianTarget, ShopTarget, ProductTarget],
    Field(discriminator="kind"),
]

_review_target_adapter: TypeAdapter[Any] = TypeAdapter(ReviewTarget)


def parse_review_target(data: Any) -> Union[DriverTarget, TechnicianTarget, ShopTarget, ProductTarget]:
    """
    Разбирает цель отзыва из словаря {"kind": ..., "id": ...}.

    Raises:
        pydantic.ValidationError: неизвестный вид цели или неверный ID
    """
    return _review_target_adapter.validate_python(data)


def entity_kind_for_reviewable(reviewable_type: str) -> Optional[EntityKind]:
    """Сущность кэша по значению reviews.reviewable_type (None для неизвестного)."""
    spec = REVIEWABLE_REGISTRY.get(reviewable_type)
    return spec.entity_kind if spec is not None else None
