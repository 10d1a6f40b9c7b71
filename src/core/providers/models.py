# src/core/providers/models.py
"""
Модели данных исполнителей (водителей и технических специалистов).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, Field, model_validator

from src.common.constants import ProviderKind
from src.core.geo.distance import Coordinate
from src.core.providers.capabilities import Capability, DeclaresCapabilities


class ProviderRef(BaseModel):
    """Ссылка на исполнителя: ID уникален в пределах вида."""

    kind: ProviderKind = Field(..., description="Вид исполнителя")
    id: int = Field(..., ge=1, description="ID профиля исполнителя")

    class Config:
        frozen = True

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ProviderRecord(DeclaresCapabilities, BaseModel):
    """
    Представление исполнителя в памяти.

    Неизменяемо: агрегаты (рейтинг, счётчики, заработок) меняются
    только через пересчёт в хранилище, а не присваиванием полей.
    """

    CAPABILITIES: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.NAMEABLE, Capability.AVAILABLE}
    )

    id: int = Field(..., ge=1, description="ID профиля исполнителя")
    kind: ProviderKind = Field(..., description="Вид исполнителя")
    display_name: str = Field("", description="Отображаемое имя")

    # Геолокация: обе координаты или ни одной
    latitude: Optional[float] = Field(None, ge=-90.0, le=90.0, description="Широта")
    longitude: Optional[float] = Field(None, ge=-180.0, le=180.0, description="Долгота")
    location_updated_at: Optional[datetime] = Field(None, description="Время последнего пинга")

    # Статус
    is_available: bool = Field(False, description="Принимает заказы")
    is_active: bool = Field(True, description="Не деактивирован")
    is_verified: bool = Field(False, description="Документы проверены")

    # Агрегаты
    rating_average: Decimal = Field(Decimal("0"), ge=0, le=5, description="Средний рейтинг")
    rating_count: int = Field(0, ge=0, description="Количество оценок")
    total_completed: int = Field(0, ge=0, description="Завершённых работ")
    total_earnings: Decimal = Field(Decimal("0"), ge=0, description="Общий заработок")
    commission_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Комиссия, %")

    capability_tags: frozenset[str] = Field(
        default_factory=frozenset,
        description="Вид транспорта или специализации",
    )

    class Config:
        frozen = True
        from_attributes = True

    @model_validator(mode="after")
    def check_location_pair(self) -> "ProviderRecord":
        """Частично заданная геолокация недопустима."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError(
                f"Исполнитель {self.kind.value}:{self.id}: "
                "широта и долгота задаются только вместе"
            )
        return self

    @property
    def ref(self) -> ProviderRef:
        """Ссылка на исполнителя."""
        return ProviderRef(kind=self.kind, id=self.id)

    @property
    def has_location(self) -> bool:
        """Известны ли обе координаты."""
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        """Координата исполнителя или None."""
        if not self.has_location:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    def get_display_name(self) -> str:
        """Nameable."""
        return self.display_name or f"{self.kind.value} #{self.id}"

    def is_matchable(self) -> bool:
        """Available: доступен и не деактивирован."""
        return self.is_available and self.is_active

    def has_tag(self, tag: str) -> bool:
        """Есть ли у исполнителя тег возможности (без учёта регистра)."""
        wanted = tag.casefold()
        return any(t.casefold() == wanted for t in self.capability_tags)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], kind: ProviderKind | None = None) -> "ProviderRecord":
        """
        Создаёт запись из строки хранилища.

        Строка с одной координатой из двух считается строкой без геолокации:
        такой исполнитель просто не попадёт в поиск.
        """
        latitude = row.get("latitude")
        longitude = row.get("longitude")
        if latitude is None or longitude is None:
            latitude = longitude = None

        return cls(
            id=row["id"],
            kind=ProviderKind(kind or row["kind"]),
            display_name=row.get("display_name") or "",
            latitude=float(latitude) if latitude is not None else None,
            longitude=float(longitude) if longitude is not None else None,
            location_updated_at=row.get("location_updated_at"),
            is_available=bool(row.get("is_available", False)),
            is_active=bool(row.get("is_active", True)),
            is_verified=bool(row.get("is_verified", False)),
            rating_average=Decimal(str(row.get("rating_average") or 0)),
            rating_count=row.get("rating_count") or 0,
            total_completed=row.get("total_completed") or 0,
            total_earnings=Decimal(str(row.get("total_earnings") or 0)),
            commission_rate=Decimal(str(row.get("commission_rate") or 0)),
            capability_tags=frozenset(row.get("capability_tags") or ()),
        )


class RatingAggregate(BaseModel):
    """Результат пересчёта рейтинга."""

    provider: ProviderRef
    rating_average: Decimal = Field(..., ge=0, le=5)
    rating_count: int = Field(..., ge=0)

    class Config:
        frozen = True


class StatsAggregate(BaseModel):
    """Результат пересчёта статистики завершённых работ."""

    provider: ProviderRef
    total_completed: int = Field(..., ge=0)
    total_earnings: Decimal = Field(..., ge=0)

    class Config:
        frozen = True


class ProviderAggregates(BaseModel):
    """Оба агрегата исполнителя после пересчёта."""

    provider: ProviderRef
    rating: RatingAggregate
    stats: StatsAggregate
