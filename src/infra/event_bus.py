# src/infra/event_bus.py
"""
Шина событий на базе RabbitMQ.
Доставляет события жизненного цикла (отзывы, заказы, записи, профили)
подписчикам через topic exchange и долговечные очереди.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

import aio_pika
from aio_pika import ExchangeType
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractExchange, AbstractQueue

from src.common.constants import TypeMsg
from src.common.logger import get_logger, log_error, log_info

logger = get_logger("event_bus")


# =============================================================================
# СОБЫТИЯ
# =============================================================================

@dataclass
class DomainEvent:
    """Событие жизненного цикла."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    event_type: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
    payload: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Сериализует событие в JSON."""
        return json.dumps({
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, data: str | bytes) -> DomainEvent:
        """
        Десериализует событие из JSON.

        Raises:
            ValueError: тело не является JSON-объектом
        """
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError("Тело события должно быть JSON-объектом")
        payload = parsed.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValueError("payload события должен быть объектом")
        return cls(
            event_id=parsed.get("event_id") or str(uuid4()),
            event_type=parsed.get("event_type", ""),
            timestamp=parsed.get("timestamp", ""),
            payload=payload,
        )


class EventTypes:
    """Константы типов событий."""
    # Отзывы
    REVIEW_CREATED = "review.created"
    REVIEW_UPDATED = "review.updated"
    REVIEW_DELETED = "review.deleted"

    # Заказы (доставка водителем)
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_DELETED = "order.deleted"

    # Записи к техническим специалистам
    APPOINTMENT_STATUS_CHANGED = "appointment.status_changed"
    APPOINTMENT_DELETED = "appointment.deleted"

    # Профиль исполнителя и пинги геолокации
    PROVIDER_UPDATED = "provider.updated"


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """
    Шина событий на базе RabbitMQ.

    Реализует:
    - Подписку на события через долговечные очереди
    - Подтверждение сообщения после обработки
    - Автоматическое переподключение (connect_robust)
    """

    _instance: EventBus | None = None
    _connection: AbstractConnection | None = None
    _channel: AbstractChannel | None = None
    _exchange: AbstractExchange | None = None
    _handlers: dict[str, list[EventHandler]]

    def __new__(cls) -> EventBus:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._connection = None
        self._channel = None
        self._exchange = None
        self._handlers = {}
        self._exchange_name = "marketplace.events"
        self._queues: dict[str, AbstractQueue] = {}

    @property
    def is_connected(self) -> bool:
        """Проверяет, активно ли соединение."""
        return self._connection is not None and not self._connection.is_closed

    @property
    def queue_prefix(self) -> str:
        """Префикс очередей: имя exchange без суффикса .events."""
        return self._exchange_name.split(".")[0]

    async def connect(
        self,
        url: str | None = None,
        exchange_name: str | None = None,
        prefetch_count: int = 10,
    ) -> None:
        """
        Подключается к RabbitMQ.

        Args:
            url: URL RabbitMQ (если None, берётся из конфига)
            exchange_name: Имя exchange
            prefetch_count: Количество сообщений для prefetch
        """
        if self.is_connected:
            return

        if url is None:
            from src.config import settings
            url = settings.rabbitmq.url
            exchange_name = settings.rabbitmq.RABBITMQ_EXCHANGE
            prefetch_count = settings.rabbitmq.RABBITMQ_PREFETCH_COUNT

        if exchange_name:
            self._exchange_name = exchange_name

        await log_info("Подключение к RabbitMQ...", type_msg=TypeMsg.INFO)

        self._connection = await aio_pika.connect_robust(url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=prefetch_count)

        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            ExchangeType.TOPIC,
            durable=True,
        )

        await log_info(f"Подключение к RabbitMQ установлено (exchange={self._exchange_name})", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с RabbitMQ."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
            self._queues = {}
            self._handlers = {}
            await log_info("Соединение с RabbitMQ закрыто", type_msg=TypeMsg.INFO)

    async def subscribe(
        self,
        event_type: str,
        handler: EventHandler,
        queue_name: str | None = None,
    ) -> bool:
        """
        Подписывается на события определённого типа.

        Args:
            event_type: Тип события (routing_key pattern)
            handler: Асинхронный обработчик события
            queue_name: Имя очереди (если None, строится из префикса и типа)

        Returns:
            True, если подписка оформлена
        """
        if not self.is_connected or self._channel is None or self._exchange is None:
            await log_error(f"Не удалось подписаться на {event_type}: нет соединения с RabbitMQ")
            return False

        self._handlers.setdefault(event_type, []).append(handler)

        if queue_name is None:
            queue_name = f"{self.queue_prefix}.{event_type.replace('.', '_')}"

        if queue_name not in self._queues:
            queue = await self._channel.declare_queue(queue_name, durable=True)
            await queue.bind(self._exchange, routing_key=event_type)
            self._queues[queue_name] = queue
            await queue.consume(self._make_consumer(event_type))

        await log_info(f"Подписка на события: {event_type} ({queue_name})", type_msg=TypeMsg.DEBUG)
        return True

    async def dispatch(self, event_type: str, body: bytes) -> None:
        """
        Разбирает тело сообщения и вызывает обработчики типа.
        Ошибки обработчиков логируются: сообщение всё равно подтверждается.
        """
        try:
            event = DomainEvent.from_json(body)
        except ValueError as e:
            await log_error(f"Некорректное сообщение {event_type}: {e}")
            return

        for handler in self._handlers.get(event_type, []):
            try:
                await handler(event)
            except Exception as e:
                await log_error(
                    f"Ошибка в обработчике {getattr(handler, '__name__', handler)}: {e}",
                    extra={"event_type": event.event_type, "event_id": event.event_id},
                )

    def _make_consumer(self, event_type: str) -> Callable[[aio_pika.abc.AbstractIncomingMessage], Awaitable[None]]:
        """Создаёт consumer, подтверждающий сообщение после обработки."""
        async def consumer(message: aio_pika.abc.AbstractIncomingMessage) -> None:
            async with message.process():
                await self.dispatch(event_type, message.body)

        return consumer

    async def health_check(self) -> bool:
        """Проверяет здоровье подключения к RabbitMQ."""
        return self.is_connected


def get_event_bus() -> EventBus:
    """Возвращает глобальный экземпляр EventBus."""
    return EventBus()


async def init_event_bus() -> None:
    """
    Инициализирует подключение к RabbitMQ.
    Использует настройки из конфигурации.
    """
    from src.config import settings

    event_bus = get_event_bus()
    await event_bus.connect(
        url=settings.rabbitmq.url,
        exchange_name=settings.rabbitmq.RABBITMQ_EXCHANGE,
        prefetch_count=settings.rabbitmq.RABBITMQ_PREFETCH_COUNT,
    )
    await log_info(
        f"RabbitMQ подключён: {settings.rabbitmq.RABBITMQ_HOST}:{settings.rabbitmq.RABBITMQ_PORT}",
        type_msg=TypeMsg.INFO,
    )


async def close_event_bus() -> None:
    """Закрывает подключение к RabbitMQ."""
    event_bus = get_event_bus()
    await event_bus.disconnect()
    await log_info("RabbitMQ отключён", type_msg=TypeMsg.INFO)
