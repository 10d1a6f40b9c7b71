# src/core/reviews/models.py
"""
Модели целей отзывов, которые не являются исполнителями (магазины и товары),
и производные значения по их отзывам.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, ClassVar, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from src.core.providers.capabilities import Capability, DeclaresCapabilities


class ReviewableRecord(DeclaresCapabilities, BaseModel):
    """Магазин или товар, которому оставляют отзывы."""

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset({Capability.NAMEABLE})

    kind: Literal["shop", "product"]
    id: int = Field(..., ge=1)
    name: str = ""
    is_active: bool = True

    class Config:
        frozen = True

    def get_display_name(self) -> str:
        """Nameable."""
        return self.name or f"{self.kind} #{self.id}"

    @classmethod
    def from_row(cls, kind: str, row: Mapping[str, Any]) -> "ReviewableRecord":
        """Запись нужного класса по виду цели."""
        if kind == "product":
            return ProductRecord(
                kind="product",
                id=row["id"],
                name=row.get("name") or "",
                is_active=bool(row.get("is_active", True)),
                price=Decimal(str(row.get("price") or 0)),
            )
        return ShopRecord(
            kind="shop",
            id=row["id"],
            name=row.get("name") or "",
            is_active=bool(row.get("is_active", True)),
        )


class ShopRecord(ReviewableRecord):
    kind: Literal["shop"] = "shop"


class ProductRecord(ReviewableRecord):
    """Товар: кроме имени объявляет цену."""

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.NAMEABLE, Capability.PRICEABLE}
    )

    kind: Literal["product"] = "product"
    price: Decimal = Field(Decimal("0"), ge=0)

    def get_price(self) -> Decimal:
        """Priceable."""
        return self.price


class ReviewableRating(BaseModel):
    """Средняя оценка цели по непустым оценкам отзывов."""
    kind: str
    id: int
    rating_average: Decimal = Field(Decimal("0"), ge=0, le=5)
    rating_count: int = Field(0, ge=0)


class ReviewsCount(BaseModel):
    """Количество отзывов цели, включая отзывы без оценки."""
    kind: str
    id: int
    reviews_count: int = Field(0, ge=0)


class ReviewableSummary(BaseModel):
    """Сводка по цели отзыва для внешних клиентов."""
    kind: str
    id: int
    display_name: str
    price: Optional[Decimal] = None
    rating_average: Decimal
    rating_count: int
    reviews_count: int
