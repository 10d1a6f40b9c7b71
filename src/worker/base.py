# src/worker/base.py
"""
Базовый класс для воркеров.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from src.common.constants import TypeMsg
from src.common.exceptions import MatchingError
from src.common.logger import log_error, log_info
from src.infra.event_bus import DomainEvent, EventBus, get_event_bus


class BaseWorker(ABC):
    """
    Базовый класс для всех воркеров.
    Подписывается на события и обрабатывает их.

    Событие, обработка которого завершилась ошибкой, логируется
    и подтверждается: повтор не выполняется.
    """

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        """
        Args:
            event_bus: Шина событий
        """
        self.event_bus = event_bus or get_event_bus()
        self._running = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""

    @property
    @abstractmethod
    def subscriptions(self) -> List[str]:
        """Список типов событий для подписки."""

    @abstractmethod
    async def handle_event(self, event: DomainEvent) -> None:
        """Обрабатывает событие."""

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        await log_info(f"Воркер {self.name} запускается...", type_msg=TypeMsg.INFO)

        for event_type in self.subscriptions:
            await self.event_bus.subscribe(
                event_type=event_type,
                handler=self._on_event,
                queue_name=f"{self.event_bus.queue_prefix}.{self.name}.{event_type.replace('.', '_')}",
            )

        await log_info(f"Воркер {self.name} запущен", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает воркер."""
        if not self._running:
            return

        self._running = False
        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    async def _on_event(self, event: DomainEvent) -> None:
        """Обработчик события с логированием ошибок."""
        if not self._running:
            return

        try:
            await log_info(
                f"Воркер {self.name} получил событие {event.event_type}",
                type_msg=TypeMsg.DEBUG,
            )
            await self.handle_event(event)
        except MatchingError as e:
            await log_error(
                f"Событие {event.event_type} не обработано воркером {self.name}: {e}",
                extra={
                    "event_id": event.event_id,
                    "error_kind": e.error_kind,
                    "retryable": e.retryable,
                    **e.context,
                },
            )
        except Exception as e:
            await log_error(
                f"Ошибка в воркере {self.name}: {e}",
                extra={"event_type": event.event_type, "payload": event.payload},
                exc_info=True,
            )
