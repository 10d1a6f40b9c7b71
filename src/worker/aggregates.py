# src/worker/aggregates.py
"""
Воркер агрегатов исполнителей.
Пересчитывает рейтинг и статистику по событиям жизненного цикла
и инвалидирует зависимые значения кэша.
"""

from __future__ import annotations

from typing import Any, List, Optional

from src.common.constants import EntityKind, ProviderKind, TypeMsg
from src.common.logger import log_info, log_warning
from src.core.aggregates.service import AggregateService
from src.core.cache.coordinator import CacheCoordinator
from src.core.providers.kinds import get_kind_spec, kind_for_work_entity
from src.core.providers.models import ProviderRef
from src.core.reviews.targets import parse_review_target
from src.infra.event_bus import DomainEvent, EventBus, EventTypes
from src.worker.base import BaseWorker


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class AggregatesWorker(BaseWorker):
    """
    Обрабатывает события отзывов, заказов, записей и профилей.

    Формат payload:
        review.*: review_id, reviewable_type, reviewable_id[, rating_changed]
        order.*: order_id, driver_id[, status, previous_status]
        appointment.*: appointment_id, technician_id[, status, previous_status]
        provider.updated: provider_kind, provider_id
    """

    def __init__(
        self,
        aggregates: AggregateService,
        cache: CacheCoordinator,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        super().__init__(event_bus=event_bus)
        self._aggregates = aggregates
        self._cache = cache

    @property
    def name(self) -> str:
        return "aggregates"

    @property
    def subscriptions(self) -> List[str]:
        return [
            EventTypes.REVIEW_CREATED,
            EventTypes.REVIEW_UPDATED,
            EventTypes.REVIEW_DELETED,
            EventTypes.ORDER_STATUS_CHANGED,
            EventTypes.ORDER_DELETED,
            EventTypes.APPOINTMENT_STATUS_CHANGED,
            EventTypes.APPOINTMENT_DELETED,
            EventTypes.PROVIDER_UPDATED,
        ]

    async def handle_event(self, event: DomainEvent) -> None:
        """Маршрутизирует событие по типу."""
        event_type = event.event_type
        payload = event.payload

        if event_type.startswith("review."):
            await self._handle_review(event_type, payload)
        elif event_type in (EventTypes.ORDER_STATUS_CHANGED, EventTypes.ORDER_DELETED):
            await self._handle_work(EntityKind.ORDER, "order_id", event_type, payload)
        elif event_type in (EventTypes.APPOINTMENT_STATUS_CHANGED, EventTypes.APPOINTMENT_DELETED):
            await self._handle_work(EntityKind.APPOINTMENT, "appointment_id", event_type, payload)
        elif event_type == EventTypes.PROVIDER_UPDATED:
            await self._handle_provider_updated(payload)
        else:
            await log_warning(f"Неизвестный тип события: {event_type}")

    async def _handle_review(self, event_type: str, payload: dict[str, Any]) -> None:
        """
        Отзыв создан, изменён или удалён.
        При изменении рейтинг пересчитывается, только если изменилась оценка.
        """
        review_id = _positive_int(payload.get("review_id"))
        target = parse_review_target(
            {"kind": payload.get("reviewable_type"), "id": payload.get("reviewable_id")}
        )

        recompute = event_type != EventTypes.REVIEW_UPDATED or bool(payload.get("rating_changed"))
        if recompute and target.provider_kind is not None:
            await self._aggregates.recompute_rating(ProviderRef(kind=target.provider_kind, id=target.id))

        if review_id is not None:
            await self._cache.invalidate(
                EntityKind.REVIEW,
                review_id,
                related=[(target.entity_kind, target.id)],
            )
        else:
            await self._cache.invalidate(target.entity_kind, target.id)

        await log_info(
            f"Событие {event_type}: цель {target.kind}:{target.id}, пересчёт={recompute}",
            type_msg=TypeMsg.DEBUG,
        )

    async def _handle_work(
        self,
        entity_kind: EntityKind,
        id_field: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> None:
        """
        Заказ или запись изменили статус или удалены.
        Статистика пересчитывается, если затронут завершённый статус.
        """
        provider_kind = kind_for_work_entity(entity_kind)
        spec = get_kind_spec(provider_kind)
        work_id = _positive_int(payload.get(id_field))
        provider_id = _positive_int(payload.get(spec.work_provider_column))

        if provider_id is None:
            await log_info(
                f"Событие {event_type} без исполнителя ({id_field}={work_id}): пересчёт не нужен",
                type_msg=TypeMsg.DEBUG,
            )
        elif self._touches_completed(payload, spec.completed_statuses):
            await self._aggregates.recompute_stats(ProviderRef(kind=provider_kind, id=provider_id))

        if work_id is not None:
            related = [(spec.entity_kind, provider_id)] if provider_id is not None else []
            await self._cache.invalidate(entity_kind, work_id, related=related)

    @staticmethod
    def _touches_completed(payload: dict[str, Any], completed: tuple[str, ...]) -> bool:
        """Удаление или смена статуса, в которой участвует завершённый статус."""
        status = payload.get("status")
        previous = payload.get("previous_status")
        if status is None and previous is None:
            return True
        return status in completed or previous in completed

    async def _handle_provider_updated(self, payload: dict[str, Any]) -> None:
        """Профиль или геолокация исполнителя изменились: только кэш."""
        kind = ProviderKind(payload.get("provider_kind"))
        provider_id = _positive_int(payload.get("provider_id"))
        if provider_id is None:
            await log_warning(f"provider.updated без provider_id: {payload}")
            return
        await self._cache.invalidate(get_kind_spec(kind).entity_kind, provider_id)
