# src/core/providers/kinds.py
"""
Реестр видов исполнителей.

Каждый вид сам объявляет, где хранится его профиль, откуда берутся
завершённые работы и с какой точностью округляется рейтинг.
Имена таблиц и колонок здесь являются доверенными константами для SQL.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.common.constants import (
    AppointmentStatus,
    EntityKind,
    OrderStatus,
    ProviderKind,
)


@dataclass(frozen=True)
class ProviderKindSpec:
    """Описание вида исполнителя."""
    kind: ProviderKind
    entity_kind: EntityKind
    table: str
    # Колонка счётчика завершённых работ в таблице профиля
    completed_column: str
    # Источник завершённых работ
    work_entity_kind: EntityKind
    work_table: str
    work_provider_column: str
    work_amount_column: str
    completed_statuses: tuple[str, ...]
    # Тип сущности в reviews.reviewable_type
    reviewable_type: str
    # SQL-выражение тегов возможностей (вид транспорта / специализации), text[]
    capability_sql: str
    # Знаков после запятой в rating_average
    rating_precision: int = 1
    earnings_precision: int = 2

    def round_rating(self, value: Decimal) -> Decimal:
        """Округляет средний рейтинг до точности вида (half-up)."""
        return value.quantize(Decimal(1).scaleb(-self.rating_precision), rounding=ROUND_HALF_UP)

    def round_earnings(self, value: Decimal) -> Decimal:
        """Округляет сумму заработка до копеек."""
        return value.quantize(Decimal(1).scaleb(-self.earnings_precision), rounding=ROUND_HALF_UP)


PROVIDER_KINDS: dict[ProviderKind, ProviderKindSpec] = {
    ProviderKind.DRIVER: ProviderKindSpec(
        kind=ProviderKind.DRIVER,
        entity_kind=EntityKind.DRIVER,
        table="drivers",
        completed_column="total_deliveries",
        work_entity_kind=EntityKind.ORDER,
        work_table="orders",
        work_provider_column="driver_id",
        work_amount_column="shipping_amount",
        completed_statuses=(OrderStatus.DELIVERED.value,),
        reviewable_type="driver",
        capability_sql="ARRAY_REMOVE(ARRAY[p.vehicle_type], NULL)",
        rating_precision=1,
    ),
    ProviderKind.TECHNICIAN: ProviderKindSpec(
        kind=ProviderKind.TECHNICIAN,
        entity_kind=EntityKind.TECHNICIAN,
        table="technicians",
        completed_column="total_appointments",
        work_entity_kind=EntityKind.APPOINTMENT,
        work_table="appointments",
        work_provider_column="technician_id",
        work_amount_column="total_amount",
        completed_statuses=(AppointmentStatus.COMPLETED.value,),
        reviewable_type="technician",
        capability_sql=(
            "ARRAY(SELECT jsonb_array_elements_text(COALESCE(p.specializations, '[]'::jsonb)))"
        ),
        rating_precision=1,
    ),
}


def get_kind_spec(kind: ProviderKind | str) -> ProviderKindSpec:
    """Возвращает описание вида исполнителя."""
    return PROVIDER_KINDS[ProviderKind(kind)]


def kind_for_entity(entity_kind: EntityKind) -> ProviderKind | None:
    """Вид исполнителя для сущности кэша (None, если сущность не исполнитель)."""
    for spec in PROVIDER_KINDS.values():
        if spec.entity_kind == entity_kind:
            return spec.kind
    return None


def kind_for_work_entity(entity_kind: EntityKind) -> ProviderKind | None:
    """Вид исполнителя, выполняющего работы данного типа (заказы, записи)."""
    for spec in PROVIDER_KINDS.values():
        if spec.work_entity_kind == entity_kind:
            return spec.kind
    return None
